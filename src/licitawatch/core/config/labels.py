"""
Label mappings for detail-page field extraction.

Each detail field maps to the label texts that precede its value on a
notice page. Variants are tried in order, so more specific labels come
first. When the site changes its wording, this is the file to edit.
"""

from __future__ import annotations

# =============================================================================
# Detail Field -> Label Variants
# =============================================================================

DETAIL_LABELS: dict[str, list[str]] = {
    "organization": [
        "Organismo",
        "Inciso",
        "Organización",
        "Organizacion",
    ],
    "sub_unit": [
        "Unidad ejecutora",
        "Unidad de compra",
        "Dependencia",
    ],
    "notice_type": [
        "Tipo de compra",
        "Tipo de procedimiento",
        "Tipo de publicación",
        "Tipo de publicacion",
    ],
    "opening_at": [
        "Fecha de apertura",
        "Apertura electrónica",
        "Apertura electronica",
        "Fecha y hora de apertura",
    ],
    "opening_location": [
        "Lugar de apertura",
    ],
    "delivery_location": [
        "Lugar de entrega de ofertas",
        "Lugar de entrega",
    ],
    "document_price": [
        "Precio del pliego",
        "Costo del pliego",
        "Valor del pliego",
    ],
    "extension_deadline": [
        "Plazo para solicitar prórroga",
        "Plazo para solicitar prorroga",
        "Solicitud de prórroga hasta",
        "Prórroga hasta",
    ],
    "clarification_deadline": [
        "Plazo para solicitar aclaraciones",
        "Aclaraciones hasta",
        "Consultas hasta",
    ],
    "resolution_state": [
        "Estado de la resolución",
        "Estado de la resolucion",
        "Estado",
    ],
    "resolution_number": [
        "Número de resolución",
        "Numero de resolucion",
        "Nro. de resolución",
        "Resolución N°",
    ],
    "resolution_at": [
        "Fecha de resolución",
        "Fecha de resolucion",
    ],
    "total_amount": [
        "Monto total adjudicado",
        "Monto adjudicado",
        "Monto total",
        "Importe total",
    ],
    "revolving_funds": [
        "Compra con fondos rotatorios",
        "Fondos rotatorios",
    ],
}

# Labels that open the contact block
CONTACT_LABELS: list[str] = [
    "Datos de contacto",
    "Información de contacto",
    "Informacion de contacto",
    "Contacto",
]

# Labels that only terminate a value; they never produce a field
STOP_LABELS: list[str] = [
    "Descripción",
    "Descripcion",
    "Objeto",
    "Fecha de publicación",
    "Fecha de publicacion",
    "Última modificación",
    "Ultima modificacion",
    "Recepción de ofertas",
    "Recepcion de ofertas",
    "Archivos adjuntos",
    "Documentos adjuntos",
    "Ítems",
    "Items",
    "Volver",
    "Imprimir",
]

# Text that marks a contact "name" candidate as page boilerplate
CONTACT_BOILERPLATE: list[str] = [
    "correo",
    "e-mail",
    "email",
    "mail",
    "contacto",
    "consultas",
    "teléfono",
    "telefono",
    "compras estatales",
    "comprasestatales",
    "agencia reguladora",
    "arce",
    "http",
    "https",
    "www.",
]

# Anchors whose href matches this are treated as the notice attachment
ATTACHMENT_HREF_PATTERN = r"pliego|adjunto|attachment|\.pdf"


def all_field_labels(labels: dict[str, list[str]] | None = None) -> list[str]:
    """Flatten every field label variant into one list."""
    source = labels if labels is not None else DETAIL_LABELS
    return [label for variants in source.values() for label in variants]
