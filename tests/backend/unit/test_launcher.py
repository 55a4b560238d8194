from bingoparty.launcher import parse_args


def test_parse_args_defaults_come_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("BINGOPARTY_HOST", "0.0.0.0")
    monkeypatch.setenv("BINGOPARTY_PORT", "8123")
    monkeypatch.delenv("BINGOPARTY_LOG_LEVEL", raising=False)

    args = parse_args([])

    assert args.host == "0.0.0.0"
    assert args.port == 8123
    assert args.log_level == "INFO"
    assert args.reload is False


def test_parse_args_overrides(monkeypatch) -> None:
    args = parse_args(["--host", "localhost", "--port", "9001", "--log-level", "debug", "--reload"])

    assert args.host == "localhost"
    assert args.port == 9001
    assert args.log_level == "debug"
    assert args.reload is True
