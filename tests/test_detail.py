"""Tests for label-anchored extraction of notice detail pages."""

from datetime import datetime

import httpx
import pytest

from conftest import FakeBackend
from licitawatch.core.backends import FetchError, HttpBackend
from licitawatch.core.config.models import LabelsConfig
from licitawatch.core.extract import (
    DetailExtractor,
    DetailScraper,
    LabelLocator,
    NoticeDetail,
    flatten_html,
    parse_contact,
)


PAGE_URL = "https://www.comprasestatales.gub.uy/consultas/detalle/id/123"

DETAIL_PAGE = """\
<html>
<head>
  <title>Compra</title>
  <script>var label = "Organismo: falso";</script>
  <style>.x { color: red }</style>
</head>
<body>
  <div class="cabezal"><h2>Licitación Abreviada 12/2024</h2></div>
  <table>
    <tr><th>Organismo</th><td>Ministerio de Salud Pública</td></tr>
    <tr><th>Unidad ejecutora</th><td>Hospital Maciel</td></tr>
    <tr><th>Tipo de compra</th><td>Licitación Abreviada</td></tr>
    <tr><th>Fecha de apertura</th><td>15/03/2024 14:30</td></tr>
    <tr><th>Lugar de apertura</th><td>Av. 18 de Julio 1234, Montevideo</td></tr>
    <tr><th>Monto total adjudicado</th><td>$1.234.567,89</td></tr>
    <tr><th>Compra con fondos rotatorios</th><td>No</td></tr>
    <tr><th>Estado de la resolución</th><td>Adjudicada</td></tr>
  </table>
  <p>Descripción: Suministro de hipoclorito</p>
  <div>
    <h3>Datos de contacto</h3>
    <p>Juan Pérez juan.perez@msp.gub.uy Tel: 2400 1234</p>
  </div>
  <div>
    <a href="javascript:void(0)">pliego</a>
    <a href="/files/pliego_123.pdf">Descargar pliego</a>
  </div>
</body>
</html>
"""


@pytest.fixture
def extractor():
    return DetailExtractor()


def test_labelled_fields(extractor):
    detail = extractor.extract(DETAIL_PAGE, PAGE_URL)

    assert detail.organization == "Ministerio de Salud Pública"
    assert detail.sub_unit == "Hospital Maciel"
    assert detail.notice_type == "Licitación Abreviada"
    assert detail.opening_at == datetime(2024, 3, 15, 14, 30)
    assert detail.opening_location == "Av. 18 de Julio 1234, Montevideo"
    assert detail.total_amount == 1234567.89
    assert detail.revolving_funds is False
    assert detail.resolution_state == "Adjudicada"


def test_missing_labels_are_none(extractor):
    detail = extractor.extract(DETAIL_PAGE, PAGE_URL)

    assert detail.delivery_location is None
    assert detail.document_price is None
    assert detail.resolution_at is None
    assert detail.resolution_number is None


def test_contact_block(extractor):
    detail = extractor.extract(DETAIL_PAGE, PAGE_URL)

    assert detail.contact_name == "Juan Pérez"
    assert detail.contact_email == "juan.perez@msp.gub.uy"
    assert detail.contact_phone == "2400 1234"


def test_relative_attachment_resolved_against_origin(extractor):
    detail = extractor.extract(DETAIL_PAGE, PAGE_URL)

    assert detail.attachment_url == "https://www.comprasestatales.gub.uy/files/pliego_123.pdf"


def test_page_without_labels_gives_empty_detail(extractor):
    html = "<html><body><h1>Página en mantenimiento</h1><p>Vuelva más tarde.</p></body></html>"

    detail = extractor.extract(html, PAGE_URL)

    assert detail.is_empty
    assert detail.to_dict() == NoticeDetail().to_dict()


def test_unparsable_page_gives_empty_detail_with_warning(extractor):
    detail = extractor.extract("", PAGE_URL)

    assert detail.is_empty
    assert detail.warnings == ["Unparsable HTML"]


def test_script_and_style_text_is_dropped():
    text = flatten_html(DETAIL_PAGE)

    assert "falso" not in text
    assert "color" not in text
    assert "Organismo\nMinisterio de Salud Pública" in text


def test_label_overrides_from_config():
    extractor = DetailExtractor.from_config(LabelsConfig(fields={"organization": ["Entidad"]}))
    html = "<p>Entidad: Intendencia de Canelones</p><p>Tipo de compra: Compra Directa</p>"

    detail = extractor.extract(html, PAGE_URL)

    assert detail.organization == "Intendencia de Canelones"
    assert detail.notice_type == "Compra Directa"


def test_value_is_bounded():
    locator = LabelLocator(["Fin"], max_value_chars=10)

    assert locator.find_value("Organismo: " + "x" * 50, ["Organismo"]) == "x" * 10


def test_value_ends_at_inline_separator_label():
    locator = LabelLocator(["Organismo", "Estado"])
    text = "Organismo: ABC | Estado: Vigente"

    assert locator.find_value(text, ["Organismo"]) == "ABC"
    assert locator.find_value(text, ["Estado"]) == "Vigente"


def test_label_does_not_match_longer_word():
    locator = LabelLocator(["Monto"])

    assert locator.find_value("Montos varios\nMonto: 100", ["Monto"]) == "100"


def test_first_listed_variant_wins():
    locator = LabelLocator(["Monto total adjudicado", "Monto total"])
    text = "Monto total: 5\nMonto total adjudicado: 7"

    match = locator.locate(text, ["Monto total adjudicado", "Monto total"])

    assert match.label == "Monto total adjudicado"
    assert match.value == "7"


def test_contact_boilerplate_is_not_a_name():
    contact = parse_contact("Correo electrónico: compras@msp.gub.uy")

    assert contact.name is None
    assert contact.email == "compras@msp.gub.uy"
    assert contact.phone is None


def test_contact_name_containing_a_marker_is_kept():
    contact = parse_contact("Marcelo Pérez marcelo.perez@hospital.gub.uy 2400 1234")

    assert contact.name == "Marcelo Pérez"
    assert contact.email == "marcelo.perez@hospital.gub.uy"
    assert contact.phone == "2400 1234"


def test_contact_marker_as_whole_word_is_boilerplate():
    assert parse_contact("Mail: compras@arce.gub.uy").name is None
    assert parse_contact("ARCE - compras@arce.gub.uy").name is None
    assert parse_contact("https://www.arce.gub.uy compras@arce.gub.uy").name is None


def test_contact_short_number_is_not_a_phone():
    contact = parse_contact("Ana Díaz - ana@example.org int. 123")

    assert contact.name == "Ana Díaz"
    assert contact.phone is None


def test_contact_without_email():
    contact = parse_contact("Teléfono 2400 1234")

    assert (contact.name, contact.email, contact.phone) == (None, None, None)


async def test_scraper_fetches_detail_page():
    backend = FakeBackend({PAGE_URL: DETAIL_PAGE})
    scraper = DetailScraper(backend)

    detail = await scraper.scrape(PAGE_URL)

    assert detail.organization == "Ministerio de Salud Pública"
    assert backend.requests[0].page_type == "detail"


async def test_scraper_propagates_fetch_errors():
    scraper = DetailScraper(FakeBackend())

    with pytest.raises(FetchError):
        await scraper.scrape(PAGE_URL)


async def test_scraper_decodes_page_by_meta_charset():
    page = (
        '<html><head><meta charset="ISO-8859-1"></head><body>'
        "<p>Organismo: Administración de los Servicios de Salud</p>"
        "<p>Lugar de apertura: Policlínica Maroñas</p>"
        "</body></html>"
    ).encode("iso-8859-1")
    scraper = DetailScraper(FakeBackend({PAGE_URL: page}))

    detail = await scraper.scrape(PAGE_URL)

    assert detail.organization == "Administración de los Servicios de Salud"
    assert detail.opening_location == "Policlínica Maroñas"


async def test_scraper_uses_header_charset():
    page = "<html><body><p>Organismo: Intendencia de Paysandú</p></body></html>".encode("cp1252")
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, content=page, headers={"Content-Type": "text/html; charset=windows-1252"})
    )
    backend = HttpBackend(max_retries=1, transport=transport)

    detail = await DetailScraper(backend).scrape(PAGE_URL)
    await backend.close()

    assert detail.organization == "Intendencia de Paysandú"
