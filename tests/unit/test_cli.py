from unittest.mock import patch

import pytest

from e2e_harness import cli


def parse(argv: list[str]):
    return cli.parse_cli_args(argv)


def test_build_pytest_args_minimal() -> None:
    args, extra = parse(["TEST-1234"])

    assert cli.build_pytest_args(args, extra) == [
        "tests",
        "-p",
        cli.PLUGIN,
        "--test-id",
        "TEST-1234",
    ]


def test_build_pytest_args_with_options() -> None:
    args, extra = parse(
        [
            "TEST-1",
            "TEST-2",
            "--env",
            "stage",
            "--config",
            "e2e.yaml",
            "--tests-dir",
            "suite",
            "--no-notify",
            "--",
            "-x",
        ]
    )

    assert cli.build_pytest_args(args, extra) == [
        "suite",
        "-p",
        cli.PLUGIN,
        "--test-id",
        "TEST-1",
        "--test-id",
        "TEST-2",
        "--e2e-env",
        "stage",
        "--e2e-config",
        "e2e.yaml",
        "--e2e-no-notify",
        "-x",
    ]


def test_arguments_after_double_dash_go_to_pytest() -> None:
    args, extra = parse(["TEST-1", "--", "-x", "-k", "smoke", "--env"])

    assert args.identifiers == ["TEST-1"]
    assert args.environment is None
    assert cli.build_pytest_args(args, extra) == [
        "tests",
        "-p",
        cli.PLUGIN,
        "--test-id",
        "TEST-1",
        "-x",
        "-k",
        "smoke",
        "--env",
    ]


def test_unknown_options_go_to_pytest() -> None:
    args, extra = parse(["TEST-1", "--maxfail=2"])

    assert args.identifiers == ["TEST-1"]
    assert extra == ["--maxfail=2"]


def test_identifier_is_required(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        parse([])

    assert exc_info.value.code == 2
    assert "identifier" in capsys.readouterr().err


def test_unknown_environment_rejected() -> None:
    with pytest.raises(SystemExit):
        parse(["TEST-1", "--env", "dev"])


@pytest.mark.parametrize("exit_code", [0, 1, 5])
def test_main_returns_pytest_exit_code(exit_code: int) -> None:
    with patch("e2e_harness.cli.configure_logging") as configure_logging, patch(
        "e2e_harness.cli.pytest.main", return_value=exit_code
    ) as pytest_main:
        result = cli.main(["TEST-9", "--env", "qa", "--log-level", "DEBUG"])

    assert result == exit_code
    configure_logging.assert_called_once_with(level="DEBUG", environment="qa")
    pytest_main.assert_called_once_with(
        ["tests", "-p", cli.PLUGIN, "--test-id", "TEST-9", "--e2e-env", "qa"]
    )


def test_run_exits_with_main_result() -> None:
    with patch("e2e_harness.cli.main", return_value=1):
        with pytest.raises(SystemExit) as exc_info:
            cli.run()

    assert exc_info.value.code == 1
