"""Tests for the value parsers."""

from datetime import datetime

import pytest

from licitawatch.core.normalize import (
    clean_html_text,
    parse_amount,
    parse_date,
    parse_flag,
    parse_pub_date,
    strip_artifacts,
)


def test_amount_with_thousands_and_decimals():
    assert parse_amount("$1.234.567,89") == 1234567.89


def test_amount_without_digits_is_none():
    assert parse_amount("no disponible") is None
    assert parse_amount("") is None
    assert parse_amount(None) is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("$ 25.000", 25000.0),
        ("U$S 1.500,5", 1500.5),
        ("12", 12.0),
    ],
)
def test_amount_formats(text, expected):
    assert parse_amount(text) == expected


def test_date_found_inside_text():
    assert parse_date("Apertura: 15/03/2024 14:30 hs.") == datetime(2024, 3, 15, 14, 30)


def test_date_single_digit_parts():
    assert parse_date("5/3/2024 9:05") == datetime(2024, 3, 5, 9, 5)


def test_impossible_date_is_none():
    assert parse_date("31/02/2024 10:00") is None


def test_date_without_time_is_none():
    assert parse_date("15/03/2024") is None
    assert parse_date(None) is None


def test_flags():
    assert parse_flag("Sí") is True
    assert parse_flag("si, con fondos") is True
    assert parse_flag("Yes") is True
    assert parse_flag("No") is False
    assert parse_flag("No aplica") is False
    assert parse_flag("Nosotros") is None
    assert parse_flag("quizás") is None
    assert parse_flag(None) is None


def test_pub_date_rfc822_becomes_naive_utc():
    assert parse_pub_date("Mon, 04 Mar 2024 10:15:00 -0300") == datetime(2024, 3, 4, 13, 15)


def test_pub_date_garbage_is_none():
    assert parse_pub_date("???") is None
    assert parse_pub_date("   ") is None
    assert parse_pub_date(None) is None


def test_strip_artifacts():
    raw = "Ministerio <b>de</b> Salud {display:none} &nbsp; javascript:void(0)"
    assert strip_artifacts(raw) == "Ministerio de Salud"
    assert strip_artifacts("<br/> &amp; ") is None


def test_clean_html_text():
    assert clean_html_text("Compra &lt;b&gt;urgente&lt;/b&gt; &amp; otros") == "Compra urgente & otros"
    assert clean_html_text(None) == ""
