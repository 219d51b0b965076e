"""
Rendering of the webpack configuration description into a JS module.

The description built by ``bundle_config`` is plain Python data plus a few
marker values for the things JSON cannot express:

  Regex("\\.js$")                      → new RegExp("\\.js$", "")
  Require("mini-css-extract-plugin",
          "loader")                    → require("mini-css-extract-plugin")["loader"]
  Plugin("webpack", "DefinePlugin",
         {...})                        → new (require("webpack")["DefinePlugin"])({...})
  Call("localize", ("fr",))           → localize("fr")
  Call("localize", ("fr",), "__")     → localize("fr")["__"]

``render_config`` wraps the rendered value in ``webpack.config.js.j2``,
which also defines the helper functions ``Call`` markers may refer to.  The
plan's ``i18n`` entry is not part of the webpack configuration: it holds the
node-i18n options the template builds its translator from.
"""

import json
import re
from dataclasses import dataclass, field

from jinja2 import Environment, PackageLoader, StrictUndefined

# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


@dataclass
class Regex:
    source: str
    flags: str = ""

    def matches(self, text: str) -> bool:
        return re.search(self.source, text) is not None


@dataclass
class Require:
    module: str
    attr: str | None = None


@dataclass
class Plugin:
    module: str
    export: str | None = None
    options: dict | None = None


@dataclass
class Call:
    function: str
    args: tuple = field(default_factory=tuple)
    attr: str | None = None


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

INDENT = "  "

# Plan entry holding the node-i18n options rather than webpack configuration.
I18N_KEY = "i18n"

# Used when a plan carries no locales; catalogs stay in memory either way.
NO_I18N = {"staticCatalog": {}, "updateFiles": False, "syncFiles": False}


def _require(module: str, attr: str | None) -> str:
    expr = f"require({json.dumps(module)})"
    if attr:
        expr += f"[{json.dumps(attr)}]"
    return expr


def to_js(value, level: int = 0) -> str:
    """Render *value* as JavaScript source text."""
    pad = INDENT * (level + 1)
    end = INDENT * level

    if isinstance(value, Regex):
        return f"new RegExp({json.dumps(value.source)}, {json.dumps(value.flags)})"
    if isinstance(value, Require):
        return _require(value.module, value.attr)
    if isinstance(value, Plugin):
        args = "" if value.options is None else to_js(value.options, level)
        return f"new ({_require(value.module, value.export)})({args})"
    if isinstance(value, Call):
        args = ", ".join(to_js(arg, level) for arg in value.args)
        expr = f"{value.function}({args})"
        if value.attr:
            expr += f"[{json.dumps(value.attr)}]"
        return expr
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [f"{pad}{json.dumps(str(k))}: {to_js(v, level + 1)}" for k, v in value.items()]
        return "{\n" + ",\n".join(items) + f"\n{end}}}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [f"{pad}{to_js(v, level + 1)}" for v in value]
        return "[\n" + ",\n".join(items) + f"\n{end}]"
    if value is None or isinstance(value, (bool, int, float, str)):
        return json.dumps(value)
    # Paths and other simple objects
    return json.dumps(str(value))


_env = Environment(
    loader=PackageLoader("mpa_builder", "templates"),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)
_env.filters["tojs"] = to_js


def render_config(plan: dict) -> str:
    """Render the full ``webpack.config.js`` module for *plan*."""
    config = dict(plan)
    i18n = config.pop(I18N_KEY, None) or NO_I18N
    template = _env.get_template("webpack.config.js.j2")
    return template.render(config=config, i18n=i18n)
