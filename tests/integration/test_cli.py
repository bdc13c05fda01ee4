"""Integration tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from dndcrawler import pipeline as pipeline_module
from dndcrawler.cli import EXIT_CONFIG_ERROR, EXIT_FAILURE, cli
from tests.helpers import BASE_URL, LIST_PATH, PHB, detail_page, listing_page, spell_locator

LIGHT = spell_locator("light", 7)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def offline(monkeypatch, site):
    """Route the default session factory to the in-memory catalog."""
    monkeypatch.setattr(pipeline_module, "_default_session_factory", lambda config: site.session(config.crawler))
    site.add_page(LIST_PATH, listing_page([("Light", LIGHT, PHB)]))
    site.add_page(LIGHT, detail_page("Light"))
    return site


class TestCrawlCommand:
    def test_crawl_to_file(self, runner, offline, tmp_path):
        target = tmp_path / "spells.json"

        result = runner.invoke(
            cli,
            ["--log-level", "ERROR", "crawl", "--base-url", BASE_URL, "--engine", "http", "--output", str(target)],
            obj={},
        )

        assert result.exit_code == 0, result.output
        records = json.loads(target.read_text(encoding="utf-8"))
        assert [record["name"] for record in records] == ["Light"]

    def test_crawl_failure_exit_code(self, runner, offline, tmp_path):
        offline.fail(LIGHT)
        target = tmp_path / "spells.json"

        result = runner.invoke(
            cli,
            [
                "--log-level",
                "ERROR",
                "crawl",
                "--engine",
                "http",
                "--retry-limit",
                "1",
                "--output",
                str(target),
            ],
            obj={},
        )

        assert result.exit_code == EXIT_FAILURE
        assert offline.requests[LIGHT] == 1
        assert not target.exists()

    def test_crawl_with_unknown_rulebook_finds_nothing(self, runner, offline, tmp_path):
        target = tmp_path / "spells.json"

        result = runner.invoke(
            cli,
            ["--log-level", "ERROR", "crawl", "--engine", "http", "--rulebook", "Book of Vile Darkness", "-o", str(target)],
            obj={},
        )

        assert result.exit_code == 0
        assert not target.exists()
        assert offline.detail_requests() == 0

    def test_invalid_environment_config(self, runner, monkeypatch):
        monkeypatch.setenv("DNDCRAWLER_CRAWLER__RETRY_LIMIT", "0")

        result = runner.invoke(cli, ["crawl"], obj={})

        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_unwritable_output_exit_code(self, runner, offline, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        result = runner.invoke(
            cli,
            ["--log-level", "ERROR", "crawl", "--engine", "http", "-o", str(blocker / "spells.json")],
            obj={},
        )

        assert result.exit_code == EXIT_FAILURE
        assert not isinstance(result.exception, OSError)


class TestParseCommand:
    def test_parse_saved_page(self, runner, tmp_path):
        page = tmp_path / "acid-arrow.html"
        page.write_text(detail_page(), encoding="utf-8")

        result = runner.invoke(
            cli,
            ["--log-level", "ERROR", "parse", str(page), "--reference", spell_locator("acid-arrow", 1922)],
            obj={},
        )

        assert result.exit_code == 0, result.output
        record = json.loads(result.output)
        assert record["id"] == "1922"
        assert record["name"] == "Acid Arrow"
        assert record["components"] == ["Verbal", "Somatic", "Material"]

    def test_parse_page_without_name(self, runner, tmp_path):
        page = tmp_path / "broken.html"
        page.write_text(detail_page(name=None), encoding="utf-8")

        result = runner.invoke(
            cli, ["--log-level", "ERROR", "parse", str(page), "--reference", "/spells/x/broken--1/"], obj={}
        )

        assert result.exit_code == EXIT_FAILURE

    def test_parse_rejects_reference_without_id(self, runner, tmp_path):
        page = tmp_path / "page.html"
        page.write_text(detail_page(), encoding="utf-8")

        result = runner.invoke(cli, ["parse", str(page), "--reference", "/spells/no-id/"], obj={})

        assert result.exit_code == 2

    def test_parse_page_with_xml_declaration(self, runner, tmp_path):
        page = tmp_path / "light.html"
        page.write_bytes(('<?xml version="1.0" encoding="utf-8"?>\n' + detail_page("Lumière")).encode("utf-8"))

        result = runner.invoke(
            cli, ["--log-level", "ERROR", "parse", str(page), "--reference", spell_locator("light", 7)], obj={}
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["name"] == "Lumière"
