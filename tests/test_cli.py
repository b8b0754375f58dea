"""Smoke tests for the commands that need no network."""

from typer.testing import CliRunner

from licitawatch import __version__
from licitawatch.cli.main import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_classify_text():
    result = runner.invoke(app, ["classify", "Compra de hipoclorito", "para", "limpieza"])

    assert result.exit_code == 0
    assert "Limpieza" in result.stdout


def test_classify_scores_table():
    result = runner.invoke(app, ["classify", "--scores", "servicio de vigilancia"])

    assert result.exit_code == 0
    assert "Seguridad" in result.stdout
    assert "Alimentos" in result.stdout


def test_validate_good_and_bad_files(tmp_path):
    good = tmp_path / "good.yaml"
    good.write_text("ingestion:\n  batch_size: 5\n", encoding="utf-8")
    bad = tmp_path / "bad.yaml"
    bad.write_text("ingestion:\n  batch_size: 0\n", encoding="utf-8")

    assert runner.invoke(app, ["validate", str(good)]).exit_code == 0
    assert runner.invoke(app, ["validate", str(bad)]).exit_code == 1
