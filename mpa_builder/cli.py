"""
Command-line entry point.

Usage:
    mpa-builder build
    mpa-builder dev
    mpa-builder -c config/site.conf -o dist build
    mpa-builder --fix lint
"""

import argparse
import sys
from pathlib import Path

from mpa_builder import NAME, __version__, log, tasks
from mpa_builder.config import DEFAULT_CONFIG_FILE, resolve_config, resolve_paths

COMMANDS = ("clean", "build", "dev", "lint")

USAGE = f"""{NAME} [options] <command>

  where <command> is one of:
    build:  builds the project in production
      dev:  runs the project on a local dev server with live reloading
    clean:  wipes the built files
     lint:  lints the input directory"""


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class ArgumentParser(argparse.ArgumentParser):
    """Bad usage is a fatal error like any other: status 1, not 2."""

    def error(self, message):
        log.error(message)
        self.print_usage(sys.stderr)
        self.exit(1)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog=NAME, usage=USAGE)
    parser.add_argument(
        "command",
        nargs="?",
        default="",
        help="one of: " + ", ".join(COMMANDS),
    )
    parser.add_argument(
        "-c", "--config",
        dest="config_file",
        default=DEFAULT_CONFIG_FILE,
        help=f"the config file relative to project root (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "-i", "--inputDir",
        dest="input_dir",
        default=None,
        help="the input directory relative to project root",
    )
    parser.add_argument(
        "-o", "--outputDir",
        dest="output_dir",
        default=None,
        help="the output directory relative to project root",
    )
    parser.add_argument(
        "-a", "--analyze",
        action="store_true",
        help="run the bundle analyzer on build",
    )
    parser.add_argument(
        "-f", "--fix",
        action="store_true",
        help="let the linter automatically fix issues",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=__version__,
    )
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, cwd: Path | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exit_:
        # --help and --version exit cleanly
        if not exit_.code:
            raise
        return exit_.code
    base_dir = Path(cwd or Path.cwd()).resolve()

    if not args.command:
        parser.print_help()
        return 1

    if args.command not in COMMANDS:
        log.error(f"Unrecognized command {log.cyan(args.command)}. Try {log.cyan(f'{NAME} --help')}")
        parser.print_usage(sys.stderr)
        return 1

    config, config_path = resolve_config(
        base_dir,
        args.config_file,
        input_dir=args.input_dir,
        output_dir=args.output_dir,
        analyze=args.analyze,
    )
    paths = resolve_paths(config, base_dir)

    if not paths.source_dir.is_dir():
        log.error(f"Input directory {log.cyan(paths.source_dir)} does not exist")
        return 1

    with_config = f" with config {log.cyan(args.config_file)}" if config_path else " with default config"
    log.info(
        f"{log.cyan(f'v{__version__}')}: Using input dir {log.cyan(config['input']['baseDir'])} "
        f"and output dir {log.cyan(config['output']['baseDir'])}{with_config}"
    )

    try:
        if args.command == "clean":
            tasks.clean(config, base_dir)
        elif args.command == "build":
            tasks.build(config, base_dir)
        elif args.command == "dev":
            tasks.dev(config, base_dir)
        elif args.command == "lint":
            tasks.lint(config, base_dir, fix=args.fix)
    except tasks.TaskFailed as err:
        return err.exit_code

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
