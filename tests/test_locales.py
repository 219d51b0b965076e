from __future__ import annotations

from pathlib import Path

from mpa_builder.bundle_config import generate, page_targets
from mpa_builder.config import default_config
from mpa_builder.locales import load_catalog, load_catalogs


def test_load_catalogs_sorted_by_locale(project: Path) -> None:
    (project / "config" / "locales" / "de.yml").write_text("Hello: Hallo\n", encoding="utf-8")
    catalogs = load_catalogs(project / "config" / "locales")
    assert list(catalogs) == ["de", "en", "fr"]
    assert catalogs["de"] == {"Hello": "Hallo"}


def test_load_catalogs_missing_dir(tmp_path: Path) -> None:
    assert load_catalogs(tmp_path / "nope") == {}


def test_hidden_files_are_not_locales(project: Path) -> None:
    (project / "config" / "locales" / ".gitkeep").write_text("", encoding="utf-8")
    assert list(load_catalogs(project / "config" / "locales")) == ["en", "fr"]

    targets = page_targets(generate(default_config({}), project))
    assert len(targets) == 2 * 3
    assert not any(t["filename"].startswith(".gitkeep") for t in targets)


def test_load_catalogs(project: Path) -> None:
    catalogs = load_catalogs(project / "config" / "locales")
    assert list(catalogs) == ["en", "fr"]
    assert catalogs["fr"] == {"Hello": "Bonjour"}


def test_load_catalog_plural_entries(tmp_path: Path) -> None:
    path = tmp_path / "fr.json"
    path.write_text('{"%s cat": {"one": "%s chat", "other": "%s chats"}}', encoding="utf-8")
    assert load_catalog(path) == {"%s cat": {"one": "%s chat", "other": "%s chats"}}


def test_load_catalog_broken_file_is_empty(tmp_path: Path, capsys) -> None:
    path = tmp_path / "fr.json"
    path.write_text('{"Hello": ', encoding="utf-8")
    assert load_catalog(path) == {}
    assert "Could not read locale file" in capsys.readouterr().err


def test_load_catalog_non_mapping_is_empty(tmp_path: Path, capsys) -> None:
    path = tmp_path / "fr.json"
    path.write_text('["Hello"]', encoding="utf-8")
    assert load_catalog(path) == {}
    assert "not a key/value mapping" in capsys.readouterr().err


def test_load_catalog_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "fr.yml"
    path.write_text("", encoding="utf-8")
    assert load_catalog(path) == {}
