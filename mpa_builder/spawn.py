"""
Thin wrapper around ``subprocess`` for the external Node.js tools.

A run either finishes with exit code 0 or raises ``SpawnError``.
"""

import shutil
import subprocess
from pathlib import Path


class SpawnError(RuntimeError):
    """An external process could not be started or exited non-zero."""

    def __init__(self, argv: list[str], returncode: int, reason: str | None = None,
                 output: str = ""):
        self.argv = argv
        self.returncode = returncode
        self.output = output
        message = reason or f"Process exited with code {returncode}"
        super().__init__(f"{message}: {' '.join(argv)}")


def resolve_bin(name: str, cwd: Path) -> str:
    """Find an executable, preferring the project's ``node_modules/.bin``."""
    local = Path(cwd) / "node_modules" / ".bin" / name
    if local.is_file():
        return str(local)
    return shutil.which(name) or name


def _captured(proc: subprocess.CompletedProcess) -> str:
    parts = []
    for stream in (proc.stdout, proc.stderr):
        if isinstance(stream, bytes):
            stream = stream.decode("utf-8", errors="replace")
        if stream:
            parts.append(stream)
    return "".join(parts)


def spawn(command: str, args=(), cwd: Path | None = None, **kwargs) -> subprocess.CompletedProcess:
    """Run *command* with *args* to completion.

    Extra keyword arguments go straight to ``subprocess.run`` (e.g.
    ``capture_output=True``).  Output is inherited by default.
    """
    argv = [command, *[str(a) for a in args]]
    try:
        proc = subprocess.run(argv, cwd=cwd, **kwargs)
    except OSError as err:
        raise SpawnError(argv, 127, reason=f"Could not start process ({err})") from err

    if proc.returncode != 0:
        raise SpawnError(argv, proc.returncode, output=_captured(proc))
    return proc
