"""
Locale discovery.

Each file in the locales directory is one supported locale; its stem is the
locale code (``config/locales/fr.json`` → ``fr``).  The file holds a flat
message catalog:

    {
      "Hello": "Bonjour",
      "Hello %s": "Bonjour %s",
      "%s cat": {"one": "%s chat", "other": "%s chats"}
    }
"""

from pathlib import Path

import yaml

from mpa_builder import log
from mpa_builder.config import scan


def load_catalog(path: Path) -> dict:
    """Read one catalog; a broken file yields an empty catalog."""
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as err:
        log.warn(f"Could not read locale file {path}: {err}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        log.warn(f"Locale file {path} is not a key/value mapping, ignoring it")
        return {}
    return data


def load_catalogs(locales_dir: Path) -> dict[str, dict]:
    """Map every locale code found in *locales_dir* to its catalog, in sorted order.

    Hidden files (``.gitkeep`` and the like) are not locales.
    """
    return {entry.stem: load_catalog(entry) for entry in scan(locales_dir)}
