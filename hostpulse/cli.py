"""
HostPulse - Command Line Interface

This module provides the CLI argument parsing, logging setup
and main entry point for the health sweep.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from hostpulse import __version__
from hostpulse.core.check import CheckResult
from hostpulse.core.config import SweepConfig, load_config
from hostpulse.core.errors import ConfigError
from hostpulse.core.orchestrator import CheckOrchestrator, SweepResult
from hostpulse.output.json_formatter import JSONFormatter
from hostpulse.output.text_reporter import ReportStyle, TextReporter


logger = logging.getLogger("hostpulse")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PROBLEMS = 2
EXIT_INTERRUPTED = 130

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("hostpulse")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False


class CLI:
    """Command Line Interface for the health sweep.

    Handles argument parsing, configuration loading, and orchestrates
    the sweep and its output.
    """

    def __init__(self) -> None:
        """Initialize the CLI."""
        self.args: Optional[argparse.Namespace] = None
        self.config: Optional[SweepConfig] = None

    def parse_args(self, argv: Optional[list[str]] = None) -> argparse.Namespace:
        """Parse command line arguments.

        Args:
            argv: Command line arguments (defaults to sys.argv[1:])

        Returns:
            Parsed arguments namespace
        """
        parser = argparse.ArgumentParser(
            prog="hostpulse",
            description="Single-shot Linux host health check",
            epilog=(
                "Exit codes: 0=all checks OK, 1=error, "
                "2=at least one WARNING or UNKNOWN, 130=interrupted"
            ),
        )

        parser.add_argument(
            "--output", "-o",
            type=str,
            default=None,
            help="Output file path (default: stdout)"
        )

        parser.add_argument(
            "--json",
            action="store_true",
            help="Emit JSON instead of the text report"
        )

        parser.add_argument(
            "--pretty",
            action="store_true",
            help="Pretty-print JSON output with indentation"
        )

        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable debug logging on stderr"
        )

        parser.add_argument(
            "--no-color",
            action="store_true",
            help="Disable colored output"
        )

        parser.add_argument(
            "--timeout",
            type=float,
            default=None,
            help="Per-check timeout in seconds (default: 10)"
        )

        parser.add_argument(
            "--sequential",
            action="store_true",
            help="Run checks one at a time instead of concurrently"
        )

        parser.add_argument(
            "--refresh-package-lists",
            action="store_true",
            help="Run 'apt-get update' before counting pending updates"
        )

        parser.add_argument(
            "--config",
            type=str,
            default=None,
            help="JSON file with configuration overrides"
        )

        parser.add_argument(
            "--only",
            action="append",
            default=None,
            metavar="CHECK_ID",
            help="Run only the given check (repeatable)"
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {__version__}",
        )

        self.args = parser.parse_args(argv)
        return self.args

    def load_config(self) -> SweepConfig:
        """Build the configuration from file, environment and flags."""
        if self.args is None:
            raise RuntimeError("Arguments must be parsed before loading configuration")

        self.config = load_config(
            config_path=self.args.config,
            check_timeout=self.args.timeout,
            max_workers=1 if self.args.sequential else None,
            refresh_package_lists=True if self.args.refresh_package_lists else None,
        )
        return self.config

    def run_sweep(self) -> int:
        """Run the sweep and write the report.

        Returns:
            Exit code (0=all OK, 1=error, 2=problems found, 130=interrupted)
        """
        config = self.config or self.load_config()
        orchestrator = CheckOrchestrator(config)

        def progress_callback(
            event_type: str, check_id: str, check_name: str, result: Optional[CheckResult]
        ) -> None:
            if event_type == "complete" and result is not None:
                logger.debug("%s finished: %s", check_id, result.status.value)

        try:
            sweep = orchestrator.run_all(
                check_ids=self.args.only if self.args else None,
                progress_callback=progress_callback,
            )
        except KeyError as e:
            raise ValueError(str(e).strip("'\"")) from None

        try:
            self._write(sweep)
        except BrokenPipeError:
            # Common when piping to tools like `head`; treat as graceful termination.
            return EXIT_OK
        except (OSError, UnicodeError) as e:
            print(f"Error writing report: {e}", file=sys.stderr)
            return EXIT_ERROR

        if sweep.interrupted:
            return EXIT_INTERRUPTED
        if sweep.has_problems:
            return EXIT_PROBLEMS
        return EXIT_OK

    def _write(self, sweep: SweepResult) -> None:
        args = self.args
        output_path = Path(args.output) if args and args.output else None

        if args and args.json:
            formatter = JSONFormatter(pretty=args.pretty)
            if output_path:
                formatter.write_to_file(sweep, output_path)
            else:
                formatter.write_to_stdout(sweep)
            return

        color = not (args and args.no_color)
        if output_path:
            output_path.write_text(TextReporter(ReportStyle.plain()).format(sweep), encoding="utf-8")
        else:
            TextReporter(ReportStyle.for_stream(sys.stdout, color=color)).write(sweep)

    def main(self, argv: Optional[list[str]] = None) -> int:
        """Main entry point for the CLI.

        Args:
            argv: Command line arguments (defaults to sys.argv[1:])

        Returns:
            Exit code (0=all OK, 1=error, 2=problems found, 130=interrupted)
        """
        try:
            self.parse_args(argv)
            configure_logging(verbose=self.args.verbose)
            self.load_config()
            return self.run_sweep()

        except (ConfigError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR
        except KeyboardInterrupt:
            print("\nHealth check interrupted by user", file=sys.stderr)
            return EXIT_INTERRUPTED
        except Exception as e:
            print(f"Unexpected error: {e}", file=sys.stderr)
            if self.args and self.args.verbose:
                logger.exception("unexpected error")
            return EXIT_ERROR


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the hostpulse command.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    cli = CLI()
    return cli.main(argv)


if __name__ == "__main__":
    sys.exit(main())
