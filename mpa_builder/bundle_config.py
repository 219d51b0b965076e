"""
Webpack configuration for a multi-page, multi-locale site.

Everything is derived from the configuration and a scan of the project:

  app/assets/*        — one bundle entry per file
  app/views/*         — one page template per file
  config/locales/*    — one locale per file (stem is the locale code)
  app/manifest/*      — copied through file-loader, untouched otherwise
  static/             — copied verbatim into the output, if present

Each (locale, page) pair becomes one HTML target.  Pages of the default
locale are written at the output root, the others under ``<locale>/``:

  index → index.html       fr/index.html
  404   → 404.html         fr/404.html
  about → about/index.html fr/about/index.html

The result is plain data (plus ``jsconfig`` markers) and is the same for the
same inputs, so it can be compared, rendered or inspected freely.
"""

import json
import re
from pathlib import Path, PurePosixPath

from mpa_builder.config import ProjectPaths, load_app_config, resolve_paths, scan
from mpa_builder.jsconfig import I18N_KEY, Call, Plugin, Regex, Require
from mpa_builder.locales import load_catalogs

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEVELOPMENT = "development"
PRODUCTION = "production"
MODES = (DEVELOPMENT, PRODUCTION)

DEV_CLIENT = Path(__file__).resolve().parent / "client" / "dev-client.js"

NOT_FOUND_PAGE = "404"

# Chunks split out of every entry and injected in every page.
RUNTIME_CHUNK = "manifest"
COMMON_CHUNK = "common"

URL_LOADER_LIMIT = 10000
GZIP_THRESHOLD = 10240
GZIP_MIN_RATIO = 0.8

HTML_MINIFY = {
    "removeComments": True,
    "collapseWhitespace": True,
    "removeAttributeQuotes": True,
}

IMAGE_RE = r"\.(jpe?g|png|gif|svg|ico)(\?.*)?$"
MEDIA_RE = r"\.(mp4|webm|ogg|mp3|wav|flac|aac)(\?.*)?$"
FONT_RE = r"\.(woff2?|eot|ttf|otf)(\?.*)?$"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _posix(*parts: str) -> str:
    return str(PurePosixPath(*parts))


def output_page_path(page: str, locale: str, default_locale: str, index_page: str = "index") -> str:
    """Output file, relative to the build dir, for *page* in *locale*."""
    subdir = PurePosixPath("") if locale == default_locale else PurePosixPath(locale)
    if page == index_page:
        return str(subdir / "index.html")
    if page == NOT_FOUND_PAGE:
        return str(subdir / f"{NOT_FOUND_PAGE}.html")
    return str(subdir / page / "index.html")


def page_targets(plan: dict) -> list[dict]:
    """Options of every HTML target in a generated *plan*."""
    return [
        plugin.options for plugin in plan["plugins"]
        if isinstance(plugin, Plugin) and plugin.module == "html-webpack-plugin"
    ]


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def javascript_loaders() -> list[dict]:
    return [{"loader": "babel-loader", "options": {"presets": ["@babel/preset-env"]}}]


def template_loaders(paths: ProjectPaths) -> list[dict]:
    return javascript_loaders() + [
        {"loader": "pug-loader", "options": {"root": str(paths.source_dir)}},
    ]


def stylesheet_loaders(paths: ProjectPaths, inline: bool, source_map: bool, minify: bool) -> list[dict]:
    """Sass → PostCSS → CSS, then either injected by JS or extracted to files."""
    if inline:
        first = {"loader": "style-loader"}
    else:
        first = {"loader": Require("mini-css-extract-plugin", "loader")}

    return [
        first,
        {"loader": "css-loader", "options": {"sourceMap": source_map}},
        {
            "loader": "postcss-loader",
            "options": {
                "sourceMap": source_map,
                "postcssOptions": {"plugins": ["autoprefixer"]},
            },
        },
        {
            "loader": "sass-loader",
            "options": {
                "sourceMap": source_map,
                "sassOptions": {
                    "includePaths": [str(paths.assets_dir)],
                    "outputStyle": "compressed" if minify else "expanded",
                },
            },
        },
    ]


def file_loaders(output_dir: str = "") -> list[dict]:
    return [{
        "loader": "file-loader",
        "options": {"name": _posix(output_dir, "[name].[hash:7].[ext]")},
    }]


def url_loaders(output_dir: str = "") -> list[dict]:
    return [{
        "loader": "url-loader",
        "options": {
            "limit": URL_LOADER_LIMIT,
            "name": _posix(output_dir, "[name].[hash:7].[ext]"),
        },
    }]


def module_rules(config: dict, paths: ProjectPaths, debug: bool) -> list[dict]:
    manifest_dir = str(paths.manifest_dir)
    assets = config["output"]["assetsDir"]
    node_modules = Regex("node_modules")

    return [
        {
            "test": Regex(r"\.js$"),
            "exclude": [node_modules, manifest_dir],
            "use": javascript_loaders(),
        },
        {
            "test": Regex(r"\.pug$"),
            "exclude": [node_modules, manifest_dir],
            "use": template_loaders(paths),
        },
        {
            "test": Regex(r"\.(scss|sass)$"),
            "use": stylesheet_loaders(paths, inline=debug, source_map=debug, minify=not debug),
        },
        {
            # Manifest files skip every other loader and are emitted as-is.
            "test": Regex(r".*"),
            "include": [manifest_dir],
            "type": "javascript/auto",
            "use": file_loaders(),
        },
        {
            "test": Regex(IMAGE_RE),
            "exclude": [manifest_dir],
            "type": "javascript/auto",
            "use": url_loaders(_posix(assets, "images")),
        },
        {
            "test": Regex(MEDIA_RE),
            "exclude": [manifest_dir],
            "type": "javascript/auto",
            "use": url_loaders(_posix(assets, "media")),
        },
        {
            "test": Regex(FONT_RE),
            "exclude": [manifest_dir],
            "type": "javascript/auto",
            "use": url_loaders(_posix(assets, "fonts")),
        },
    ]


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------

def html_plugins(config: dict, pages: list[Path], entry_names: set[str],
                 locales: list[str]) -> list[Plugin]:
    """One HTML target per locale × page.

    Templates reach the locale's ``__``/``__n`` either directly (template
    parameters) or through ``htmlWebpackPlugin.options``.
    """
    default_locale = config["config"]["defaultLocale"]
    index_page = Path(config["input"]["viewIndexFile"]).stem

    plugins = []
    for locale in locales:
        for page in pages:
            name = page.stem
            chunks = [RUNTIME_CHUNK, COMMON_CHUNK]
            if name in entry_names:
                chunks.append(name)

            plugins.append(Plugin("html-webpack-plugin", None, {
                "filename": output_page_path(name, locale, default_locale, index_page),
                "template": str(page),
                "chunks": chunks,
                "inject": True,
                "minify": dict(HTML_MINIFY),
                "templateParameters": Call("localize", (locale,)),
                "__": Call("localize", (locale,), "__"),
                "__n": Call("localize", (locale,), "__n"),
            }))
    return plugins


def build_plugins(config: dict, paths: ProjectPaths, debug: bool, app_config: dict) -> list[Plugin]:
    """Plugins that do not depend on the page set, in application order."""
    mode = DEVELOPMENT if debug else PRODUCTION
    assets = config["output"]["assetsDir"]

    plugins = [
        Plugin("webpack", "DefinePlugin", {
            "process.env.NODE_ENV": json.dumps(mode),
            "$config": json.dumps(app_config, default=str),
        }),
    ]

    if paths.static_dir.is_dir():
        plugins.append(Plugin("copy-webpack-plugin", None, {
            "patterns": [{
                "from": str(paths.static_dir),
                "to": str(paths.build_dir / config["output"]["staticDir"]),
                "globOptions": {"ignore": list(config["static"]["ignore"])},
            }],
        }))

    if debug:
        if config["dev"]["linter"]:
            plugins.append(Plugin("eslint-webpack-plugin", None, {
                "context": str(paths.source_dir),
                "extensions": ["js"],
                "exclude": ["node_modules", config["input"]["manifestDir"]],
            }))
        return plugins

    plugins.append(Plugin("mini-css-extract-plugin", None, {
        "filename": _posix(assets, "stylesheets", "[name].[contenthash].css"),
    }))

    if config["build"]["gzip"]:
        extensions = "|".join(re.escape(ext) for ext in config["build"]["gzipExtensions"])
        plugins.append(Plugin("compression-webpack-plugin", None, {
            "filename": "[path][base].gz",
            "algorithm": "gzip",
            "test": Regex(rf"\.({extensions})$"),
            "threshold": GZIP_THRESHOLD,
            "minRatio": GZIP_MIN_RATIO,
        }))

    if config["build"]["analyzer"]:
        plugins.append(Plugin("webpack-bundle-analyzer", "BundleAnalyzerPlugin", {
            "analyzerMode": "static",
            "openAnalyzer": False,
            "reportFilename": _posix(assets, "report.html"),
        }))

    return plugins


def optimization(debug: bool) -> dict:
    settings = {
        "splitChunks": {
            "cacheGroups": {
                COMMON_CHUNK: {
                    "name": COMMON_CHUNK,
                    "test": Regex(r"[\\/]node_modules[\\/].*\.js$"),
                    "chunks": "all",
                },
            },
        },
        "runtimeChunk": {"name": RUNTIME_CHUNK},
        "minimize": not debug,
    }
    if debug:
        settings["emitOnErrors"] = False
    else:
        settings["minimizer"] = [
            Plugin("terser-webpack-plugin"),
            Plugin("css-minimizer-webpack-plugin"),
        ]
    return settings


def i18n_options(config: dict, catalogs: dict[str, dict]) -> dict:
    """node-i18n settings with every catalog inlined."""
    return {
        "locales": list(catalogs),
        "defaultLocale": config["config"]["defaultLocale"],
        "staticCatalog": catalogs,
        "updateFiles": False,
        "syncFiles": False,
        "retryInDefaultLocale": False,
    }


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def generate(config: dict, cwd: Path, mode: str = PRODUCTION) -> dict:
    """Build the webpack configuration description.

    Args:
        config: The merged builder configuration.
        cwd:    Project root every configured path is relative to.
        mode:   ``"development"`` or ``"production"``.

    The ``i18n`` entry is consumed when the plan is rendered and never
    reaches webpack.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown build mode {mode!r}, expected one of {MODES}")

    debug = mode == DEVELOPMENT
    paths = resolve_paths(config, cwd)
    app_config = load_app_config(paths)

    entries = scan(paths.entries_dir)
    pages = scan(paths.views_dir)
    catalogs = load_catalogs(paths.locales_dir)
    if not catalogs:
        catalogs = {config["config"]["defaultLocale"]: {}}

    assets = config["output"]["assetsDir"]
    entry_names = {entry.stem for entry in entries}

    if debug:
        entry = {e.stem: [str(DEV_CLIENT), str(e)] for e in entries}
        output = {
            "path": str(paths.build_dir),
            "publicPath": config["dev"]["publicPath"],
            "filename": "[name].js",
            "chunkFilename": "[id].js",
            "sourceMapFilename": "[name].map",
        }
    else:
        entry = {e.stem: str(e) for e in entries}
        output = {
            "path": str(paths.build_dir),
            "publicPath": config["build"]["publicPath"],
            "filename": _posix(assets, "[name].[chunkhash].js"),
            "chunkFilename": _posix(assets, "[id].[chunkhash].js"),
            "sourceMapFilename": _posix(assets, "[name].[fullhash].map"),
        }

    return {
        "mode": mode,
        "devtool": "eval-cheap-source-map" if debug else False,
        "context": str(paths.source_dir),
        "stats": {
            "colors": True,
            "modules": True,
            "reasons": True,
            "errorDetails": True,
        },
        "entry": entry,
        "output": output,
        "module": {"rules": module_rules(config, paths, debug)},
        "resolve": {
            "extensions": [".js", ".sass", ".scss", ".pug"],
            "modules": [str(paths.source_dir), str(paths.cwd / "node_modules")],
        },
        "optimization": optimization(debug),
        "plugins": build_plugins(config, paths, debug, app_config)
                   + html_plugins(config, pages, entry_names, list(catalogs)),
        I18N_KEY: i18n_options(config, catalogs),
    }
