from __future__ import annotations

from pathlib import Path

import pytest

from mpa_builder import __version__, cli
from mpa_builder.bundler import Stats
from mpa_builder.spawn import SpawnError


def test_missing_input_dir_exits_1(tmp_path: Path, capsys) -> None:
    exit_code = cli.main(["clean"], cwd=tmp_path)
    captured = capsys.readouterr()
    assert exit_code == 1
    assert "does not exist" in captured.err
    assert str(tmp_path.resolve() / "app") in captured.err


def test_input_dir_flag_is_checked(project: Path, capsys) -> None:
    assert cli.main(["-i", "src", "clean"], cwd=project) == 1
    assert str(project.resolve() / "src") in capsys.readouterr().err


def test_unrecognized_command_exits_1(project: Path, capsys) -> None:
    exit_code = cli.main(["deploy"], cwd=project)
    captured = capsys.readouterr()
    assert exit_code == 1
    assert "Unrecognized command deploy" in captured.err
    assert "usage:" in captured.err


def test_unknown_flag_exits_1(project: Path, capsys) -> None:
    assert cli.main(["--bogus", "clean"], cwd=project) == 1
    err = capsys.readouterr().err
    assert "unrecognized arguments: --bogus" in err
    assert "usage:" in err


def test_extra_argument_exits_1(project: Path, capsys) -> None:
    assert cli.main(["clean", "now"], cwd=project) == 1
    assert "unrecognized arguments: now" in capsys.readouterr().err


def test_no_command_prints_help(project: Path, capsys) -> None:
    assert cli.main([], cwd=project) == 1
    assert "where <command> is one of" in capsys.readouterr().out


def test_version_flag(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_clean_command(project: Path, capsys) -> None:
    (project / "public").mkdir()
    assert cli.main(["clean"], cwd=project) == 0
    assert not (project / "public").exists()
    out = capsys.readouterr().out
    assert "with default config" in out
    assert "Clean complete" in out


def test_output_dir_flag(project: Path) -> None:
    (project / "dist").mkdir()
    (project / "public").mkdir()
    assert cli.main(["-o", "dist", "clean"], cwd=project) == 0
    assert not (project / "dist").exists()
    assert (project / "public").exists()


def test_reports_project_config(project: Path, capsys) -> None:
    (project / "config" / "build.conf").write_text("output:\n  baseDir: out\n", encoding="utf-8")
    (project / "out").mkdir()
    assert cli.main(["clean"], cwd=project) == 0
    assert not (project / "out").exists()
    assert "with config config/build.conf" in capsys.readouterr().out


def test_broken_project_config_uses_defaults(project: Path, capsys) -> None:
    (project / "config" / "build.conf").write_text("output: [oops\n", encoding="utf-8")
    (project / "public").mkdir()
    assert cli.main(["clean"], cwd=project) == 0
    assert not (project / "public").exists()
    assert "with default config" in capsys.readouterr().out


def test_lint_exit_code_is_propagated(project: Path, monkeypatch) -> None:
    def spawn(command, args=(), cwd=None, **kwargs):
        raise SpawnError([command], 2)

    monkeypatch.setattr("mpa_builder.tasks.spawn", spawn)
    assert cli.main(["lint"], cwd=project) == 2


def test_lint_fix_flag(project: Path, monkeypatch) -> None:
    seen = []
    monkeypatch.setattr("mpa_builder.tasks.spawn",
                        lambda command, args=(), cwd=None, **kw: seen.append(list(args)))
    assert cli.main(["--fix", "lint"], cwd=project) == 0
    assert seen[0][0] == "--fix"


def test_build_with_failing_lint_never_compiles(project: Path, monkeypatch, fake_bundler_cls) -> None:
    created = []

    def make_bundler(cwd):
        bundler = fake_bundler_cls(stats=Stats())
        created.append(bundler)
        return bundler

    def spawn(command, args=(), cwd=None, **kwargs):
        raise SpawnError([command], 1)

    monkeypatch.setattr("mpa_builder.tasks.Webpack", make_bundler)
    monkeypatch.setattr("mpa_builder.tasks.spawn", spawn)

    assert cli.main(["build"], cwd=project) == 1
    assert all(not b.compiled for b in created)


def test_build_command_with_analyzer(project: Path, monkeypatch, fake_bundler_cls) -> None:
    bundler = fake_bundler_cls(stats=Stats())
    monkeypatch.setattr("mpa_builder.tasks.Webpack", lambda cwd: bundler)
    (project / "config" / "build.conf").write_text("build:\n  linter: false\n", encoding="utf-8")

    assert cli.main(["-a", "build"], cwd=project) == 0

    plan = bundler.compiled[0]
    assert any(getattr(p, "module", None) == "webpack-bundle-analyzer" for p in plan["plugins"])


def test_build_failure_exits_1(project: Path, monkeypatch, fake_bundler_cls) -> None:
    bundler = fake_bundler_cls(stats=Stats(errors=["boom"]))
    monkeypatch.setattr("mpa_builder.tasks.Webpack", lambda cwd: bundler)
    (project / "config" / "build.conf").write_text("build:\n  linter: false\n", encoding="utf-8")

    assert cli.main(["build"], cwd=project) == 1
