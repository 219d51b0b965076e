"""
The four builder tasks: clean, lint, build and dev.

Each task logs its own progress and, on failure, raises ``TaskFailed`` after
reporting what went wrong.  Turning that into a process exit status is left
to the CLI.
"""

import shutil
import threading
import webbrowser
from pathlib import Path
from typing import Callable

from mpa_builder import log
from mpa_builder.bundle_config import DEVELOPMENT, PRODUCTION, generate, page_targets
from mpa_builder.bundler import CompileError, CompileEvent, Webpack
from mpa_builder.config import resolve_paths
from mpa_builder.dev_server import DevServer, OutputWatcher, ReloadChannel
from mpa_builder.spawn import SpawnError, resolve_bin, spawn


class TaskFailed(Exception):
    """A task could not complete; *exit_code* is what the process should exit with."""

    def __init__(self, message: str, exit_code: int = 1):
        self.exit_code = exit_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# clean
# ---------------------------------------------------------------------------

def clean(config: dict, cwd: Path) -> None:
    """Remove the build directory."""
    output_dir = resolve_paths(config, cwd).build_dir

    log.info(f"Cleaning {log.cyan(output_dir)}...")

    try:
        if output_dir.exists():
            shutil.rmtree(output_dir)
    except OSError as err:
        print(err)
        log.fail("Clean failed")
        raise TaskFailed(f"Could not remove {output_dir}: {err}") from err

    log.succeed("Clean complete")


# ---------------------------------------------------------------------------
# lint
# ---------------------------------------------------------------------------

def lint(config: dict, cwd: Path, fix: bool = False) -> None:
    """Run eslint over the input directory, optionally applying fixes."""
    input_dir = resolve_paths(config, cwd).source_dir

    if fix:
        log.info(f"Linting and fixing {log.cyan(input_dir)}...")
    else:
        log.info(f"Linting {log.cyan(input_dir)}...")

    args = ["--fix"] if fix else []
    args.append(input_dir)

    try:
        spawn(resolve_bin("eslint", cwd), args, cwd=cwd)
    except SpawnError as err:
        log.fail(f"Linter exited with code {err.returncode}")
        raise TaskFailed(str(err), exit_code=err.returncode or 1) from err

    log.succeed("Linter completed successfully")


# ---------------------------------------------------------------------------
# build
# ---------------------------------------------------------------------------

def build(config: dict, cwd: Path, bundler=None) -> None:
    """Lint (if enabled), clean, then compile once for production."""
    if config["build"]["linter"]:
        try:
            lint(config, cwd, fix=False)
        except TaskFailed as err:
            print()
            log.error("Linter failed")
            print()
            raise TaskFailed("Linter failed") from err

    clean(config, cwd)

    log.info("Building...")

    bundler = bundler or Webpack(cwd)
    plan = generate(config, cwd, mode=PRODUCTION)
    log.info(f"{len(plan['entry'])} entries, {len(page_targets(plan))} pages")

    try:
        stats = bundler.compile(plan)
    except CompileError as err:
        print(err.output or err)
        log.fail("Build failed")
        raise TaskFailed(f"Build failed: {err}") from err

    print(stats.summary())

    if stats.has_errors():
        log.fail("Build failed")
        raise TaskFailed(f"Build failed with {len(stats.errors)} error(s)")

    log.succeed("Build complete")


# ---------------------------------------------------------------------------
# dev
# ---------------------------------------------------------------------------

class DevSession:
    """Wires the watching bundler to the reload channel.

    Compile errors are forwarded to the browser instead of ending the
    session.  webpack exiting does end it: *on_stop* is called and
    ``exit_code`` is set.
    """

    def __init__(self, config: dict, channel: ReloadChannel, url: str,
                 open_browser: Callable[[str], object] = webbrowser.open,
                 on_stop: Callable[[], None] | None = None):
        self.config = config
        self.channel = channel
        self.url = url
        self.open_browser = open_browser
        self.on_stop = on_stop
        self.ready = threading.Event()
        self.exit_code: int | None = None

    def on_compile(self, event: CompileEvent) -> None:
        if not event.ok:
            log.warn("Compilation failed:\n" + "\n\n".join(event.errors))
            self.channel.publish({"action": "errors", "errors": event.errors})
            return

        if self.ready.is_set():
            # Script and stylesheet edits leave the pages untouched on disk.
            self.channel.publish({"action": "reload"})
            return

        self.channel.publish({"action": "built"})
        self.ready.set()
        log.info(f"Running dev server at {log.cyan(self.url)}...")
        if self.config["dev"].get("autoOpenBrowser"):
            self.open_browser(self.url)

    def on_emit(self, path: Path) -> None:
        self.channel.publish({"action": "reload", "path": str(path)})

    def on_exit(self, returncode: int) -> None:
        log.error(f"webpack exited with code {returncode}, stopping the dev server")
        self.exit_code = returncode
        if self.on_stop is not None:
            self.on_stop()


def dev(config: dict, cwd: Path, bundler=None,
        open_browser: Callable[[str], object] = webbrowser.open) -> None:
    """Serve the site with watch-mode compilation until interrupted."""
    paths = resolve_paths(config, cwd)
    bundler = bundler or Webpack(cwd)
    plan = generate(config, cwd, mode=DEVELOPMENT)

    channel = ReloadChannel()
    try:
        server = DevServer(paths.build_dir, config["dev"]["port"], channel)
    except OSError as err:
        log.error(f"Could not start dev server on port {config['dev']['port']}: {err}")
        raise TaskFailed(str(err)) from err

    session = DevSession(config, channel, server.url, open_browser, on_stop=server.shutdown)
    watcher = OutputWatcher(paths.build_dir, session.on_emit)
    watcher.start()

    log.info("Starting webpack in watch mode...")
    process = None
    try:
        process = bundler.watch(plan, session.on_compile, session.on_exit)
        server.serve_forever()
        if session.exit_code is not None:
            raise TaskFailed(f"webpack exited with code {session.exit_code}")
    except KeyboardInterrupt:
        print()
        log.info("Stopping dev server...")
    except CompileError as err:
        log.error(str(err))
        raise TaskFailed(str(err)) from err
    finally:
        channel.close()
        watcher.stop()
        if process is not None:
            process.stop()
        server.server_close()
