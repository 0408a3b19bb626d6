"""
Test Command Line Interface
===========================

Tests for the client-side modes of main.py. No server is started.
"""

import pytest
from pathlib import Path

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import main


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Config and data directories under tmp_path, no endpoint configured."""
    for name in ("ORDER_ENDPOINT", "ORDER_PUBLIC_TOKEN", "ORDER_BAR_OPEN_DEFAULT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BAR_ORDER_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("BAR_ORDER_DATA_DIR", str(tmp_path / "data"))
    return tmp_path


def test_bar_flag_round_trip(cli_env, capsys):
    assert main.main(["--bar", "closed"]) == 0
    assert "CLOSED" in capsys.readouterr().out

    assert main.main(["--bar", "toggle"]) == 0
    assert "OPEN" in capsys.readouterr().out


def test_order_refused_while_closed(cli_env, capsys):
    main.main(["--bar", "closed"])
    capsys.readouterr()

    assert main.main(["--order", "Ada", "Martini"]) == 1
    assert "Bar is closed." in capsys.readouterr().out


def test_order_falls_back_to_sms(cli_env, capsys, monkeypatch):
    opened = []
    monkeypatch.setattr("webbrowser.open", opened.append)

    assert main.main(["--order", "Ada", "Martini"]) == 0
    assert "Opening message" in capsys.readouterr().out
    assert len(opened) == 1
    assert opened[0].startswith("sms:?&body=")


def test_init_writes_config(cli_env, capsys):
    assert main.main(["--init"]) == 0
    assert (cli_env / "config" / "config.yaml").exists()


@pytest.mark.parametrize("text", ["relay: oops\n", "relay:\n  port: '8800'\n", "- just\n- a list\n"])
def test_malformed_config_exits_nonzero(cli_env, text):
    path = cli_env / "bad.yaml"
    path.write_text(text, encoding="utf-8")

    assert main.main(["--config", str(path), "--status"]) == 1


def test_unexpected_error_exits_nonzero(cli_env, monkeypatch):
    def explode(config, action):
        raise RuntimeError("disk full")

    monkeypatch.setattr(main, "run_bar", explode)

    assert main.main(["--bar", "open"]) == 1


def test_missing_config_file_exits_nonzero(cli_env):
    assert main.main(["--config", str(cli_env / "absent.yaml"), "--status"]) == 1
