"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON and plain rendering of responses and tables
- Notification cards
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from storyworker import output as output_module
from storyworker.output import (
    OutputFormat,
    OutputManager,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("storyworker.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("storyworker.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_tty_but_no_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_disables_color(self, tty, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert OutputManager().format == OutputFormat.PLAIN

    def test_term_dumb_disables_color(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert OutputManager().format == OutputFormat.PLAIN


# ------------------------------------------------------------------ #
# stdout / stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(no_color=True).format_response({"cached": 5})
        out, err = capfd.readouterr()
        assert "cached\t5" in out
        assert err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        getattr(OutputManager(no_color=True), method)("hello")
        out, err = capfd.readouterr()
        assert out == ""
        assert "hello" in err

    def test_notification_goes_to_stderr(self, capfd, non_tty):
        OutputManager(no_color=True).notification("Cerita Baru", "body", "[view] Lihat")
        out, err = capfd.readouterr()
        assert out == ""
        assert "[Cerita Baru] body" in err
        assert "[view] Lihat" in err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_notifications(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("info")
        mgr.success("done")
        mgr.notification("T", "B")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_errors_and_warnings(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "Warning: careful" in err
        assert "Error: broken" in err

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        OutputManager(no_color=True, verbose=True).debug("shown")
        assert "[debug] shown" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Rendering
# ------------------------------------------------------------------ #


class TestJsonFormat:
    def test_dict_as_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"a": 1})
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_string_that_is_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response('{"listStory": []}')
        assert json.loads(capfd.readouterr().out) == {"listStory": []}

    def test_plain_string_passed_through(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response("body{}")
        assert capfd.readouterr().out == "body{}\n"


class TestPlainFormat:
    def test_list_of_dicts_as_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response(
            [{"id": "a", "synced": True}, {"id": "b", "synced": False}]
        )
        assert capfd.readouterr().out.splitlines() == ["a\tTrue", "b\tFalse"]


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(
            ["Store", "Entries"], [["storymap-static-v1", "5"]]
        )
        assert json.loads(capfd.readouterr().out) == [
            {"Store": "storymap-static-v1", "Entries": "5"}
        ]

    def test_table_plain_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(["Id", "Synced"], [["a", "no"]])
        assert capfd.readouterr().out.splitlines() == ["Id\tSynced", "a\tno"]

    def test_table_rich_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH).print_table(["Id"], [["story-1"]], title="favorites")
        assert "story-1" in capfd.readouterr().out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self, non_tty):
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_output_used_by_helpers(self, capfd, non_tty):
        set_output(OutputManager(no_color=True))
        output_module.info("via helper")
        assert "via helper" in capfd.readouterr().err

    def test_reset_output(self, non_tty):
        mgr = OutputManager()
        set_output(mgr)
        reset_output()
        assert get_output() is not mgr
