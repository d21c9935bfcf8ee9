import pytest

import dharma_cli.main as main_module
from dharma_cli.config import settings


@pytest.fixture(autouse=True)
def no_log_files(monkeypatch):
    monkeypatch.setattr(main_module, "setup_logging", lambda *args, **kwargs: None)


def test_no_subcommand_prints_usage_and_fails(capsys):
    assert main_module.main([]) == 2
    assert "usage" in capsys.readouterr().err


def test_unknown_unit_is_rejected():
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["borrow", "1", "--unit", "lovelace"])
    assert excinfo.value.code == 2


def test_non_numeric_amount_is_rejected():
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["borrow", "lots"])
    assert excinfo.value.code == 2


def test_parser_normalizes_unit():
    args = main_module.build_parser().parse_args(["borrow", "2", "-u", "GWEI"])
    assert args.unit == "gwei"
    assert str(args.amount) == "2"


def test_authenticate_stores_token(monkeypatch, tmp_path):
    path = tmp_path / "auth.json"
    monkeypatch.setattr(settings, "AUTH_TOKEN_PATH", path)

    assert main_module.main(["authenticate", "tok-1"]) == 0
    assert "tok-1" in path.read_text()


def test_authenticate_reports_write_failure(monkeypatch, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    monkeypatch.setattr(settings, "AUTH_TOKEN_PATH", blocker / "auth.json")

    assert main_module.main(["authenticate", "tok-1"]) == 1


def test_fatal_errors_exit_non_zero(monkeypatch):
    from dharma_cli.domain.errors import LendingServiceError

    async def failing_borrow(amount, unit):
        raise LendingServiceError("attestor offline")

    monkeypatch.setattr(main_module, "borrow", failing_borrow)

    assert main_module.main(["borrow", "1"]) == 1
