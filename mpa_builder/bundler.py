"""
webpack adapter.

The configuration description is rendered to
``node_modules/.cache/mpa-builder/webpack.config.js`` inside the project, so
that every ``require()`` in it resolves against the project's own
``node_modules``.  webpack itself is run through its CLI:

  compile()  — one production run, stats read back from ``--json <file>``
  watch()    — ``--watch`` run; each finished compilation is reported to a
               callback as a ``CompileEvent``, and so is webpack exiting on
               its own
"""

import json
import re
import subprocess
import threading
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from mpa_builder.jsconfig import render_config
from mpa_builder.spawn import SpawnError, resolve_bin, spawn

CACHE_DIR = Path("node_modules") / ".cache" / "mpa-builder"
CONFIG_NAME = "webpack.config.js"
STATS_NAME = "stats.json"

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
_SUCCESS_RE = re.compile(r"compiled successfully|compiled with \d+ warnings?")
_FAILURE_RE = re.compile(r"compiled with (\d+) errors?")

# Output lines kept to explain an unexpected exit.
TAIL_LINES = 20


class CompileError(RuntimeError):
    """webpack crashed before producing any stats."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def _message(item) -> str:
    if isinstance(item, dict):
        text = item.get("message", "")
        where = item.get("moduleName")
        return f"{where}\n{text}" if where else text
    return str(item)


@dataclass
class Asset:
    name: str
    size: int


@dataclass
class Stats:
    """The parts of webpack's JSON stats the builder reports on."""

    hash: str = ""
    time: int | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "Stats":
        return cls(
            hash=data.get("hash", ""),
            time=data.get("time"),
            errors=[_message(e) for e in data.get("errors", [])],
            warnings=[_message(w) for w in data.get("warnings", [])],
            assets=[
                Asset(name=a["name"], size=int(a.get("size", 0)))
                for a in sorted(data.get("assets", []), key=lambda a: a["name"])
            ],
        )

    def has_errors(self) -> bool:
        return bool(self.errors)

    def summary(self) -> str:
        lines = []
        if self.hash:
            lines.append(f"Hash: {self.hash}")
        if self.time is not None:
            lines.append(f"Time: {self.time}ms")

        if self.assets:
            width = max(len(a.name) for a in self.assets)
            lines.append("")
            lines.append(f"{'Asset'.rjust(width)}  Size")
            for asset in self.assets:
                lines.append(f"{asset.name.rjust(width)}  {asset.size / 1024:.2f} KiB")

        for label, messages in (("WARNING", self.warnings), ("ERROR", self.errors)):
            for text in messages:
                lines.append("")
                lines.append(f"{label} {text}")

        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Watch mode
# ---------------------------------------------------------------------------

@dataclass
class CompileEvent:
    ok: bool
    errors: list[str] = field(default_factory=list)


def _error_blocks(lines: list[str]) -> list[str]:
    """Group ``ERROR ...`` paragraphs out of raw webpack CLI output."""
    blocks: list[str] = []
    current: list[str] | None = None
    for line in lines:
        if line.startswith("ERROR"):
            if current:
                blocks.append("\n".join(current).strip())
            current = [line]
        elif current is not None:
            if not line.strip() or line.startswith(("WARNING", "webpack ")):
                blocks.append("\n".join(current).strip())
                current = None
            else:
                current.append(line)
    if current:
        blocks.append("\n".join(current).strip())
    return blocks


class WatchProcess:
    """A running ``webpack --watch`` and the thread reading its output.

    webpack only leaves watch mode on its own when it cannot go on (broken
    configuration, missing CLI, crash).  That exit is reported as a failed
    ``CompileEvent`` carrying the last lines of output, then to *on_exit*
    with the exit status.
    """

    def __init__(self, proc: subprocess.Popen, on_compile: Callable[[CompileEvent], None],
                 on_exit: Callable[[int], None] | None = None):
        self.proc = proc
        self.on_compile = on_compile
        self.on_exit = on_exit
        self.returncode: int | None = None
        self._stopping = False
        self._thread = threading.Thread(target=self._read, name="webpack-watch", daemon=True)
        self._thread.start()

    def _read(self) -> None:
        pending: list[str] = []
        recent: deque[str] = deque(maxlen=TAIL_LINES)
        for raw in self.proc.stdout:
            line = _ANSI_RE.sub("", raw.rstrip("\n"))
            pending.append(line)
            recent.append(line)

            failure = _FAILURE_RE.search(line)
            if failure:
                errors = _error_blocks(pending) or ["\n".join(pending).strip()]
                self.on_compile(CompileEvent(ok=False, errors=errors))
                pending = []
            elif _SUCCESS_RE.search(line):
                self.on_compile(CompileEvent(ok=True))
                pending = []

        self.returncode = self.proc.wait()
        if self._stopping:
            return

        report = f"webpack exited with code {self.returncode}"
        tail = "\n".join(recent).strip()
        if tail:
            report += "\n" + tail
        self.on_compile(CompileEvent(ok=False, errors=[report]))
        if self.on_exit is not None:
            self.on_exit(self.returncode)

    def running(self) -> bool:
        return self.proc.poll() is None

    def wait(self, timeout: float | None = None) -> None:
        """Block until webpack's output has been read to the end."""
        self._thread.join(timeout=timeout)

    def stop(self, timeout: float = 5.0) -> None:
        self._stopping = True
        if self.running():
            self.proc.terminate()
            try:
                self.proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                self.proc.kill()
                self.proc.wait()
        self._thread.join(timeout=timeout)


# ---------------------------------------------------------------------------
# Bundler
# ---------------------------------------------------------------------------

class Webpack:
    """Runs the project's webpack CLI against a generated configuration."""

    def __init__(self, cwd: Path, executable: str | None = None):
        self.cwd = Path(cwd).resolve()
        self.executable = executable or resolve_bin("webpack", self.cwd)

    @property
    def cache_dir(self) -> Path:
        return self.cwd / CACHE_DIR

    def write_config(self, plan: dict) -> Path:
        path = self.cache_dir / CONFIG_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_config(plan), encoding="utf-8")
        return path

    def compile(self, plan: dict) -> Stats:
        """Run one compilation and return its stats.

        Compilation errors are reported through ``Stats.errors``; only a run
        that produced no stats at all raises ``CompileError``.
        """
        config_path = self.write_config(plan)
        stats_path = self.cache_dir / STATS_NAME
        if stats_path.exists():
            stats_path.unlink()

        try:
            spawn(self.executable, ["--config", config_path, "--json", stats_path],
                  cwd=self.cwd, capture_output=True, text=True)
        except SpawnError as err:
            if not stats_path.is_file():
                raise CompileError(str(err), output=err.output) from err

        try:
            data = json.loads(stats_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as err:
            raise CompileError(f"Could not read webpack stats from {stats_path}: {err}") from err
        return Stats.from_json(data)

    def watch(self, plan: dict, on_compile: Callable[[CompileEvent], None],
              on_exit: Callable[[int], None] | None = None) -> WatchProcess:
        """Start webpack in watch mode; returns immediately."""
        config_path = self.write_config(plan)
        argv = [self.executable, "--config", str(config_path), "--watch", "--no-color"]
        try:
            proc = subprocess.Popen(
                argv,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except OSError as err:
            raise CompileError(f"Could not start webpack ({err}): {' '.join(argv)}") from err
        return WatchProcess(proc, on_compile, on_exit)
