from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from mpa_builder.bundler import WatchProcess


def write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small two-locale site: entries index/about, pages index/404/about."""
    write(tmp_path / "app" / "assets" / "index.js", "console.log('index');\n")
    write(tmp_path / "app" / "assets" / "about.js", "console.log('about');\n")
    write(tmp_path / "app" / "views" / "index.pug", "h1= __('Hello')\n")
    write(tmp_path / "app" / "views" / "404.pug", "h1 Not found\n")
    write(tmp_path / "app" / "views" / "about.pug", "h1= __('About')\n")
    write(tmp_path / "app" / "manifest" / "robots.txt", "User-agent: *\n")
    write(tmp_path / "config" / "locales" / "en.json", json.dumps({"Hello": "Hello"}))
    write(tmp_path / "config" / "locales" / "fr.json", json.dumps({"Hello": "Bonjour"}))
    return tmp_path


class FakeProc:
    """A finished ``webpack --watch`` child: canned output and exit status."""

    def __init__(self, output: str, returncode: int = 0):
        self.stdout = io.StringIO(output)
        self.returncode = returncode

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        return self.returncode


class FakeBundler:
    """Stands in for ``Webpack``; records the plans it was asked to compile.

    ``watch()`` ends the dev session with Ctrl-C unless *watch_output* is
    given, in which case webpack "exits" after printing it.
    """

    def __init__(self, stats=None, error=None, watch_output=None, watch_returncode=2):
        self.stats = stats
        self.error = error
        self.watch_output = watch_output
        self.watch_returncode = watch_returncode
        self.compiled: list[dict] = []
        self.watched: list[dict] = []

    def compile(self, plan):
        self.compiled.append(plan)
        if self.error is not None:
            raise self.error
        return self.stats

    def watch(self, plan, on_compile, on_exit=None):
        self.watched.append(plan)
        if self.watch_output is None:
            raise KeyboardInterrupt
        return WatchProcess(FakeProc(self.watch_output, self.watch_returncode), on_compile, on_exit)


@pytest.fixture
def fake_bundler_cls():
    return FakeBundler


@pytest.fixture
def fake_proc_cls():
    return FakeProc
