from unittest.mock import patch

import pytest

from herald.__main__ import build_parser
from herald.__main__ import main
from herald.auth.passwords import check_password


def test_hash_password_prints_usable_hash(capsys):
    assert main(["hash-password", "--password", "s3cret", "--time-cost", "1"]) == 0

    encoded = capsys.readouterr().out.strip()
    assert check_password("s3cret", encoded)


def test_hash_password_prompt_mismatch(capsys):
    with patch("herald.__main__.getpass.getpass", side_effect=["one", "two"]):
        assert main(["hash-password"]) == 1
    assert "do not match" in capsys.readouterr().err


def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_serve_runs_factory(monkeypatch):
    monkeypatch.setenv("PORT", "4321")

    with patch("uvicorn.run") as run:
        assert main(["serve", "--host", "127.0.0.1"]) == 0

    run.assert_called_once()
    assert run.call_args.args == ("herald.main:create_app",)
    assert run.call_args.kwargs["factory"] is True
    assert run.call_args.kwargs["port"] == 4321
    assert run.call_args.kwargs["host"] == "127.0.0.1"
