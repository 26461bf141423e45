"""
Command line entry point: ``run-tests <identifier> [options] [-- pytest args]``.

Runs the pytest suite with the e2e plugin enabled and only the tests that
declare one of the given identifiers. The exit code is 0 only if every
selected test passed; selecting nothing is a failure as well.
"""

import argparse
import logging
import sys
from collections.abc import Sequence

import pytest

from e2e_harness.core.common.logging_utils import configure_logging
from e2e_harness.core.config.app_config import EnvironmentName, LogLevel

PLUGIN = "e2e_harness.testing.pytest_plugin"

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run-tests",
        description="Run end-to-end API tests selected by identifier",
    )
    parser.add_argument(
        "identifiers",
        nargs="+",
        metavar="identifier",
        help="Test identifier(s) to run, e.g. TEST-1234",
    )
    parser.add_argument(
        "--env",
        dest="environment",
        choices=[e.value for e in EnvironmentName],
        default=None,
        help="Environment to run against (default: $E2E_ENV or qa)",
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        default=None,
        help="Path to the YAML configuration file (default: $E2E_CONFIG)",
    )
    parser.add_argument(
        "--tests-dir",
        dest="tests_dir",
        default="tests",
        help="Directory holding the test suite (default: tests)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=[level.value for level in LogLevel],
        default=LogLevel.INFO.value,
        help="Console log level",
    )
    parser.add_argument(
        "--no-notify",
        dest="no_notify",
        action="store_true",
        help="Do not send post-run notifications",
    )
    return parser


def build_pytest_args(
    args: argparse.Namespace, extra: Sequence[str] = ()
) -> list[str]:
    """Translate CLI options into a pytest argument list."""
    pytest_args = [args.tests_dir, "-p", PLUGIN]
    for identifier in args.identifiers:
        pytest_args.extend(["--test-id", identifier])
    if args.environment:
        pytest_args.extend(["--e2e-env", args.environment])
    if args.config_file:
        pytest_args.extend(["--e2e-config", args.config_file])
    if args.no_notify:
        pytest_args.append("--e2e-no-notify")
    pytest_args.extend(extra)
    return pytest_args


def parse_cli_args(
    argv: Sequence[str] | None = None,
) -> tuple[argparse.Namespace, list[str]]:
    """Parse CLI options; arguments after "--" and unknown options go to pytest."""
    argv = list(sys.argv[1:] if argv is None else argv)
    passthrough: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, passthrough = argv[:split], argv[split + 1 :]
    args, unknown = build_cli_parser().parse_known_args(argv)
    return args, unknown + passthrough


def main(argv: Sequence[str] | None = None) -> int:
    args, extra = parse_cli_args(argv)

    configure_logging(level=args.log_level, environment=args.environment)

    pytest_args = build_pytest_args(args, extra)
    logger.info("Running pytest %s", " ".join(pytest_args))
    exit_code = pytest.main(pytest_args)
    return int(exit_code)


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
