"""Tests for UCI options and search limits."""

import chess
import pytest

from engine.limits import SearchLimits, now
from engine.options import Option, OptionsMap


@pytest.fixture
def options():
    return OptionsMap()


class TestOptionsMap:
    def test_defaults(self, options):
        assert options["Move Overhead"] == 10
        assert options["nodestime"] == 0
        assert options["Ponder"] is False

    def test_names_are_case_insensitive(self, options):
        assert options["move overhead"] == 10
        assert options["NODESTIME"] == 0
        assert "ponder" in options
        assert "Hash" not in options

    def test_set_spin(self, options):
        options.set("Move Overhead", "250")
        assert options["Move Overhead"] == 250

    def test_set_check(self, options):
        options.set("ponder", "true")
        assert options["Ponder"] is True
        options.set("Ponder", "False")
        assert options["Ponder"] is False

    def test_out_of_range_keeps_value(self, options):
        options.set("nodestime", "600")
        with pytest.raises(ValueError):
            options.set("nodestime", "10001")
        with pytest.raises(ValueError):
            options.set("Move Overhead", "-1")
        assert options["nodestime"] == 600
        assert options["Move Overhead"] == 10

    def test_bad_values(self, options):
        with pytest.raises(ValueError):
            options.set("Move Overhead", "fast")
        with pytest.raises(ValueError):
            options.set("Ponder", "yes")

    def test_unknown_option(self, options):
        with pytest.raises(KeyError):
            options.set("Threads", "4")
        with pytest.raises(KeyError):
            options["Threads"]

    def test_uci_lines(self, options):
        assert options.uci_lines() == [
            "option name Move Overhead type spin default 10 min 0 max 5000",
            "option name nodestime type spin default 0 min 0 max 10000",
            "option name Ponder type check default false",
        ]

    def test_uci_line_reports_default_not_value(self):
        option = Option("Ponder", "check", False)
        option.set("true")
        assert option.value is True
        assert option.uci_line().endswith("default false")


class TestSearchLimits:
    def test_defaults(self):
        limits = SearchLimits()
        assert limits.time == {chess.WHITE: 0, chess.BLACK: 0}
        assert limits.inc == {chess.WHITE: 0, chess.BLACK: 0}
        assert limits.movestogo == 0
        assert limits.npmsec == 0
        assert not limits.use_time_management()

    def test_instances_do_not_share_clocks(self):
        a, b = SearchLimits(), SearchLimits()
        a.time[chess.WHITE] = 1_000
        assert b.time[chess.WHITE] == 0

    def test_from_clock(self):
        limits = SearchLimits.from_clock(5_000, 50, 20, chess.BLACK)
        assert limits.time[chess.BLACK] == 5_000
        assert limits.inc[chess.BLACK] == 50
        assert limits.time[chess.WHITE] == 0
        assert limits.movestogo == 20
        assert limits.use_time_management()

    def test_start_time_is_now(self):
        before = now()
        limits = SearchLimits()
        assert before <= limits.start_time <= now()
