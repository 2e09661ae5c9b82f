"""Tests for the output system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb colour disabling
- stdout vs stderr discipline
- Quiet and verbose modes, including the library ``debug`` trace
- JSON, plain and rich rendering of payloads and tables
- Global instance management and convenience functions
"""

from __future__ import annotations

import json

import pytest

from storefront_client import output as output_module
from storefront_client.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("storefront_client.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("storefront_client.output._is_tty", lambda: True)


def _plain(**kwargs) -> OutputManager:
    return OutputManager(format=OutputFormat.PLAIN, no_color=True, **kwargs)


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

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_format_is_kept(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON
        assert OutputManager(format=OutputFormat.RICH).format == OutputFormat.RICH


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        _plain().print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "error", "warning", "success", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        getattr(_plain(), method)("something happened")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "something happened" in captured.err

    def test_no_diagnostics_leak_to_stdout_in_json(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.info("loading...")
        mgr.format_response({"result": "ok"})
        mgr.success("done")
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"result": "ok"}
        assert "loading..." in captured.err
        assert "done" in captured.err


class TestDiagnosticFormatting:
    def test_warning_prefix(self, capfd, non_tty):
        _plain().warning("careful")
        assert "Warning: careful" in capfd.readouterr().err

    def test_error_prefix(self, capfd, non_tty):
        _plain().error("broken")
        assert "Error: broken" in capfd.readouterr().err

    def test_suggest_has_arrow(self, capfd, non_tty):
        _plain().suggest("Run: storefront login")
        assert "→ Run: storefront login" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Quiet / verbose
# ------------------------------------------------------------------ #


class TestQuietMode:
    @pytest.mark.parametrize("method", ["info", "success", "suggest"])
    def test_quiet_suppresses(self, capfd, non_tty, method):
        getattr(_plain(quiet=True), method)("should not appear")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_quiet_keeps(self, capfd, non_tty, method):
        getattr(_plain(quiet=True), method)("important")
        assert "important" in capfd.readouterr().err

    def test_quiet_does_not_suppress_stdout_data(self, capfd, non_tty):
        _plain(quiet=True).print_data("important data")
        assert "important data" in capfd.readouterr().out


class TestVerboseMode:
    def test_debug_hidden_by_default(self, capfd, non_tty):
        _plain().debug("should not appear")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        _plain(verbose=True).debug("GET http://api.test/api/v1/favorites")
        err = capfd.readouterr().err
        assert "[debug] GET http://api.test/api/v1/favorites" in err

    def test_rich_debug_escapes_markup(self, capfd, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager(format=OutputFormat.PLAIN, verbose=True).debug("cache hit: [products]")
        assert "[products]" in capfd.readouterr().err

    def test_library_trace_is_silent_without_manager(self, capfd, non_tty):
        output_module.debug("cache miss: favorites/list")
        assert capfd.readouterr().err == ""


# ------------------------------------------------------------------ #
# Payload rendering
# ------------------------------------------------------------------ #


class TestJsonFormat:
    def test_dict_as_json(self, capfd, non_tty):
        data = {"products": [{"id": "p1", "price": 9.5}]}
        OutputManager(format=OutputFormat.JSON).format_response(data)
        assert json.loads(capfd.readouterr().out) == data

    def test_json_output_is_indented(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"key": "value"})
        assert "\n" in capfd.readouterr().out.strip()

    def test_unicode_is_not_escaped(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"name": "Café lamp"})
        assert "Café lamp" in capfd.readouterr().out


class TestPlainFormat:
    def test_dict_as_key_value(self, capfd, non_tty):
        _plain().format_response({"name": "Lamp", "stock": 3})
        assert capfd.readouterr().out.strip().split("\n") == ["name\tLamp", "stock\t3"]

    def test_list_of_dicts_as_rows(self, capfd, non_tty):
        _plain().format_response([{"id": "p1", "name": "Lamp"}, {"id": "p2", "name": "Desk"}])
        assert capfd.readouterr().out.strip().split("\n") == ["p1\tLamp", "p2\tDesk"]

    def test_scalar(self, capfd, non_tty):
        _plain().format_response(42)
        assert capfd.readouterr().out.strip() == "42"

    def test_mixed_list(self, capfd, non_tty):
        _plain().format_response(["o1", {"id": "o2", "status": "shipped"}])
        assert capfd.readouterr().out.strip().split("\n") == ["o1", "o2\tshipped"]


class TestRichFormat:
    def test_scalar_is_printed_as_text(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response("pending")
        assert "pending" in capfd.readouterr().out

    def test_quiet_rich_info_is_dropped(self, capfd, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager(format=OutputFormat.RICH, quiet=True).info("No orders.")
        assert capfd.readouterr().err == ""


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(
            ["ID", "Name"], [["p1", "Lamp"], ["p2", "Desk"]]
        )
        assert json.loads(capfd.readouterr().out) == [
            {"ID": "p1", "Name": "Lamp"},
            {"ID": "p2", "Name": "Desk"},
        ]

    def test_table_plain_mode(self, capfd, non_tty):
        _plain().print_table(["ID", "Name"], [["p1", "Lamp"]], title="Products")
        assert capfd.readouterr().out.strip().split("\n") == ["ID\tName", "p1\tLamp"]

    def test_table_rich_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(
            ["ID", "Name"], [["p1", "Lamp"]], title="Products"
        )
        out = capfd.readouterr().out
        assert "Products" in out
        assert "Lamp" in out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        custom = OutputManager(format=OutputFormat.JSON)
        set_output(custom)
        assert get_output() is custom

    def test_reset_output_clears(self):
        set_output(OutputManager(format=OutputFormat.JSON))
        reset_output()
        assert output_module._output is None


class TestConvenienceFunctions:
    def test_format_response_convenience(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.JSON))
        output_module.format_response({"ok": True})
        assert json.loads(capfd.readouterr().out) == {"ok": True}

    def test_print_table_convenience(self, capfd, non_tty):
        set_output(_plain())
        output_module.print_table(["A"], [["1"]])
        assert capfd.readouterr().out.strip().split("\n") == ["A", "1"]

    def test_diagnostic_convenience(self, capfd, non_tty):
        set_output(_plain(verbose=True))
        output_module.info("i")
        output_module.warning("w")
        output_module.debug("d")
        err = capfd.readouterr().err
        assert "i" in err
        assert "Warning: w" in err
        assert "[debug] d" in err
