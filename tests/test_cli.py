"""Tests for the command line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from gleaner.cli import cli
from gleaner.driver import sync_driver

CONFIG_YAML = """
writer:
  type: api
  uri: https://api.example.com/events
scrapers:
  - name: concerts
    url: https://a.test/
    item: .event
    fields:
      - name: title
        location:
          selector: .title
  - name: theatre
    url: https://b.test/
    item: .event
    renderJs: true
    fields:
      - name: title
        location:
          selector: .title
"""

PAGES = {
    "https://a.test/": (
        '<html><body><div class="event"><h2 class="title">Jazz &amp; Blues</h2>'
        "</div></body></html>"
    ),
    "https://b.test/": (
        '<html><body><div class="event"><h2 class="title">Hamlet</h2>'
        "</div></body></html>"
    ),
}


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


@pytest.fixture
def fake_pages(monkeypatch, fake_fetcher):
    monkeypatch.setattr(
        sync_driver, "make_fetcher", lambda scraper, global_config: fake_fetcher(PAGES)
    )


def test_list(config_path: Path) -> None:
    result = CliRunner().invoke(cli, ["list", str(config_path)])
    assert result.exit_code == 0
    assert "concerts: https://a.test/" in result.output
    assert "theatre: https://b.test/ [renderJs]" in result.output


def test_list_without_scrapers(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("scrapers: []\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["list", str(path)])
    assert result.exit_code == 0
    assert "No scrapers found." in result.output


def test_run_single_scraper_to_stdout(config_path: Path, fake_pages) -> None:
    result = CliRunner().invoke(
        cli, ["run", str(config_path), "-s", "concerts", "--stdout"]
    )
    assert result.exit_code == 0, result.output
    assert '"title": "Jazz & Blues"' in result.output
    assert "Hamlet" not in result.output


def test_run_unknown_scraper(config_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["run", str(config_path), "-s", "opera", "--stdout"]
    )
    assert result.exit_code != 0
    assert "No scraper named 'opera'" in result.output


def test_run_invalid_config(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    path.write_text("scrapers: [", encoding="utf-8")
    result = CliRunner().invoke(cli, ["run", str(path), "--stdout"])
    assert result.exit_code != 0
    assert "invalid YAML" in result.output
