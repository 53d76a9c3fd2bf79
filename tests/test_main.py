"""Tests for the interactive console in main.py."""

from unittest.mock import patch

import pytest

import main as console_module


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(console_module, "setup_logging", lambda *a, **kw: None)


def run_console(lines: list[str]) -> None:
    with patch("builtins.input", side_effect=lines):
        console_module.main()


def test_pub_prints_via_wildcard(capsys):
    run_console(["pub orders 42", "exit"])
    assert "[*] orders: 42" in capsys.readouterr().out


def test_sub_after_dropping_wildcard_printer(capsys):
    run_console(["unsub 0", "sub orders", "pub orders 1", "exit"])
    out = capsys.readouterr().out
    assert "subscription 1 (channel id 1)" in out
    assert "[orders] orders: 1" in out
    assert "[*]" not in out


def test_handles_keep_increasing(capsys):
    run_console(["sub a", "unsub 1", "sub b", "exit"])
    out = capsys.readouterr().out
    assert "subscription 1" in out
    assert "subscription 2" in out


def test_unbalanced_quote_does_not_end_console(capsys):
    run_console(['pub a "oops', "pub a 2", "exit"])
    out = capsys.readouterr().out
    assert "cannot parse command" in out
    assert "[*] a: 2" in out


def test_replay_and_last(capsys):
    run_console(['pub greet "hello"', "sub greet replay", "last greet", "exit"])
    out = capsys.readouterr().out
    assert "[greet] greet: 'hello'" in out
    assert "  'hello'" in out


def test_unknown_command_then_end_of_input(capsys):
    run_console(["frobnicate", EOFError()])
    assert "unknown command" in capsys.readouterr().out
