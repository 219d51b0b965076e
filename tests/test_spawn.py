from __future__ import annotations

import sys
from pathlib import Path

import pytest

from mpa_builder.spawn import SpawnError, resolve_bin, spawn


def test_spawn_success() -> None:
    proc = spawn(sys.executable, ["-c", "print('ok')"], capture_output=True, text=True)
    assert proc.stdout.strip() == "ok"


def test_spawn_nonzero_exit_raises_with_code_and_output() -> None:
    with pytest.raises(SpawnError) as excinfo:
        spawn(sys.executable, ["-c", "import sys; print('bad'); sys.exit(3)"],
              capture_output=True, text=True)
    assert excinfo.value.returncode == 3
    assert "bad" in excinfo.value.output


def test_spawn_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(SpawnError) as excinfo:
        spawn(str(tmp_path / "does-not-exist"))
    assert excinfo.value.returncode == 127


def test_resolve_bin_prefers_project_node_modules(tmp_path: Path) -> None:
    local = tmp_path / "node_modules" / ".bin" / "webpack"
    local.parent.mkdir(parents=True)
    local.write_text("#!/bin/sh\n", encoding="utf-8")
    assert resolve_bin("webpack", tmp_path) == str(local)


def test_resolve_bin_falls_back_to_name(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("mpa_builder.spawn.shutil.which", lambda name: None)
    assert resolve_bin("eslint", tmp_path) == "eslint"
