"""
Business categories for notice classification.

Order matters: when two categories score the same, the one declared
first wins.
"""

from __future__ import annotations

from dataclasses import dataclass

FALLBACK_CATEGORY = "Other"


@dataclass(frozen=True)
class Category:
    """A category with its keyword list and per-keyword weight."""

    name: str
    keywords: tuple[str, ...]
    weight: int = 1


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(
        "Seguridad",
        ("alarma", "vigilancia", "monitoreo", "cámara", "seguridad", "custodia", "sereno", "guardia"),
        2,
    ),
    Category(
        "Informática",
        (
            "impresora", "cartucho", "toner", "computadora", "software", "hardware", "servidor",
            "router", "switch", "notebook", "laptop", "licencia", "ups", "scanner",
        ),
        2,
    ),
    Category(
        "Oficina",
        ("papel", "librería", "oficina", "escritorio", "resma", "bibliorato", "tinta", "bolígrafo", "silla", "mueble"),
        1,
    ),
    Category(
        "Limpieza",
        (
            "limpieza", "aseo", "hipoclorito", "jabon", "detergente", "papel higienico",
            "residuos", "fumigación", "desinfección",
        ),
        2,
    ),
    Category(
        "Salud",
        (
            "medicamento", "farmacia", "hospital", "clínica", "médico", "suero", "jeringa",
            "paciente", "asse", "laboratorio", "reactivo",
        ),
        2,
    ),
    Category(
        "Construcción",
        (
            "obra", "reparación", "albañilería", "pintura", "cemento", "arquitectura", "remodelación",
            "impermeabilización", "eléctrica", "sanitaria", "vidrio",
        ),
        2,
    ),
    Category(
        "Vehículos",
        (
            "vehículo", "camioneta", "auto", "motor", "neumático", "cubierta", "aceite",
            "mantenimiento de flota", "taller mecánico", "repuesto",
        ),
        2,
    ),
    Category(
        "Alimentos",
        ("alimento", "comida", "víveres", "carne", "verdura", "cocina", "merienda", "bebida", "supermercado"),
        2,
    ),
)
