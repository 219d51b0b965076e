"""
Builder configuration.

The configuration is a nested dict with the sections ``input``, ``output``,
``config``, ``static``, ``build`` and ``dev``.  A project may override any of
it with a YAML (or JSON) file, by default ``config/build.conf``:

    input:
      baseDir: src
    build:
      gzip: true
      gzipExtensions: [js, css, svg]

Overrides are deep-merged onto the defaults.  ``static.ignore`` and
``build.gzipExtensions`` are replaced as a whole; every other list is
appended to the default one.
"""

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from mpa_builder import log

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_FILE = "config/build.conf"

# Dotted keys whose override value replaces the default instead of merging.
REPLACE_KEYS = frozenset({"static.ignore", "build.gzipExtensions"})

# Suffixes tried, in order, after the bare path.
CONFIG_SUFFIXES = (".yml", ".yaml", ".json")


def default_config(environ: Mapping[str, str] | None = None) -> dict:
    """Return a fresh copy of the default configuration."""
    env = os.environ if environ is None else environ
    return {
        "input": {
            "baseDir": "app",
            "assetsDir": "assets",
            "manifestDir": "manifest",
            "entriesDir": "assets",
            "viewsDir": "views",
            "viewIndexFile": "index.pug",
        },
        "output": {
            "baseDir": "public",
            "assetsDir": "assets",
            "staticDir": "",
        },
        "config": {
            "baseDir": "config",
            "localesDir": "locales",
            "appConfigFile": "app.conf",
            "defaultLocale": "en",
        },
        "static": {
            "baseDir": "static",
            "ignore": ["**/.*"],
        },
        "build": {
            "publicPath": env.get("PUBLIC_PATH") or "/",
            "linter": True,
            "gzip": False,
            "gzipExtensions": ["js", "css"],
            "analyzer": False,
        },
        "dev": {
            "publicPath": "/",
            "linter": False,
            "port": 8080,
            "autoOpenBrowser": False,
        },
    }


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge(base: dict, override: dict | None, replace=REPLACE_KEYS, _prefix: str = "") -> dict:
    """Deep-merge *override* onto *base* and return a new dict.

    Neither argument is modified.
    """
    result = copy.deepcopy(base)
    if not override:
        return result

    for key, value in override.items():
        dotted = f"{_prefix}{key}"
        current = result.get(key)

        if dotted in replace:
            result[key] = copy.deepcopy(value)
        elif isinstance(current, dict) and isinstance(value, dict):
            result[key] = merge(current, value, replace, _prefix=f"{dotted}.")
        elif isinstance(current, list) and isinstance(value, list):
            result[key] = current + copy.deepcopy(value)
        else:
            result[key] = copy.deepcopy(value)

    return result


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _candidates(path: Path) -> list[Path]:
    return [path] + [path.with_name(path.name + suffix) for suffix in CONFIG_SUFFIXES]


def read_record(path: Path) -> tuple[dict | None, Path | None]:
    """Parse the first existing candidate of *path* as a YAML mapping.

    Returns ``(None, None)`` if nothing usable is found.
    """
    for candidate in _candidates(path):
        if not candidate.is_file():
            continue
        try:
            data = yaml.safe_load(candidate.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError):
            return None, None
        if not isinstance(data, dict):
            return None, None
        return data, candidate
    return None, None


def load_project_config(cwd: Path, config_file: str = DEFAULT_CONFIG_FILE) -> tuple[dict | None, Path | None]:
    """Load the project's override file relative to *cwd*.

    A missing or broken file is not an error for fresh projects; the caller
    simply gets ``(None, None)`` and uses the defaults.
    """
    return read_record(Path(cwd) / config_file)


def resolve_config(cwd: Path, config_file: str = DEFAULT_CONFIG_FILE,
                   input_dir: str | None = None, output_dir: str | None = None,
                   analyze: bool = False,
                   environ: Mapping[str, str] | None = None) -> tuple[dict, Path | None]:
    """Build the active configuration: defaults, project file, CLI flags."""
    config = default_config(environ)
    project_config, config_path = load_project_config(cwd, config_file)
    if project_config is not None:
        config = merge(config, project_config)

    if input_dir:
        config["input"]["baseDir"] = input_dir
    if output_dir:
        config["output"]["baseDir"] = output_dir
    if analyze:
        config["build"]["analyzer"] = True

    return config, config_path


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectPaths:
    """Absolute locations derived from the configuration."""

    cwd: Path
    source_dir: Path
    build_dir: Path
    config_dir: Path
    static_dir: Path
    entries_dir: Path
    views_dir: Path
    manifest_dir: Path
    assets_dir: Path
    locales_dir: Path
    app_config_file: Path


def resolve_paths(config: dict, cwd: Path) -> ProjectPaths:
    cwd = Path(cwd).resolve()
    source_dir = (cwd / config["input"]["baseDir"]).resolve()
    config_dir = (cwd / config["config"]["baseDir"]).resolve()
    return ProjectPaths(
        cwd=cwd,
        source_dir=source_dir,
        build_dir=(cwd / config["output"]["baseDir"]).resolve(),
        config_dir=config_dir,
        static_dir=(cwd / config["static"]["baseDir"]).resolve(),
        entries_dir=(source_dir / (config["input"].get("entriesDir") or "")).resolve(),
        views_dir=(source_dir / config["input"]["viewsDir"]).resolve(),
        manifest_dir=(source_dir / config["input"]["manifestDir"]).resolve(),
        assets_dir=(source_dir / config["input"]["assetsDir"]).resolve(),
        locales_dir=(config_dir / config["config"]["localesDir"]).resolve(),
        app_config_file=(config_dir / config["config"]["appConfigFile"]).resolve(),
    )


def scan(directory: Path) -> list[Path]:
    """Sorted ``*.*`` files directly inside *directory* (hidden ones skipped).

    Entries, views and locales are all discovered this way.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        entry for entry in directory.glob("*.*")
        if entry.is_file() and not entry.name.startswith(".")
    )


def load_app_config(paths: ProjectPaths) -> dict:
    """Application data injected into the pages as ``$config``."""
    data, _ = read_record(paths.app_config_file)
    if data is None:
        log.info("No app config found")
        return {}
    return data
