"""Unit tests for the bar/line tokenizer."""

from chordchart.models import ChordToken
from chordchart.tokenizer import tokenize_bar, tokenize_bar_line


def _symbols(bars: list[list[ChordToken]]) -> list[list[str]]:
    return [[token.symbol for token in bar] for bar in bars]


def test_empty_line_has_no_bars() -> None:
    assert tokenize_bar_line("") == []
    assert tokenize_bar_line("   ") == []


def test_pipes_only_line_gives_one_empty_bar_per_pipe() -> None:
    assert tokenize_bar_line("| |") == [[], []]
    assert tokenize_bar_line("|") == [[]]


def test_bars_and_tokens_keep_source_order() -> None:
    bars = tokenize_bar_line("| C G | Am F |")
    assert _symbols(bars) == [["C", "G"], ["Am", "F"]]


def test_blank_segments_between_bars_are_separators() -> None:
    bars = tokenize_bar_line("|Am.| |C D| |Am.|")
    assert _symbols(bars) == [["Am"], ["C", "D"], ["Am"]]
    assert _symbols(tokenize_bar_line("|C||G|")) == [["C"], ["G"]]


def test_line_without_pipes_is_one_bar() -> None:
    assert _symbols(tokenize_bar_line("C G Am")) == [["C", "G", "Am"]]


def test_trailing_dots_count_as_duration_dots() -> None:
    (bar,) = tokenize_bar_line("| C.. G |")
    assert bar == [ChordToken("C", 2), ChordToken("G", 0)]


def test_ellipsis_is_normalized_to_dots() -> None:
    (bar,) = tokenize_bar_line("| Am… |")
    assert bar == [ChordToken("Am", 1)]


def test_standalone_dot_attaches_to_previous_token() -> None:
    assert tokenize_bar("C . G") == [ChordToken("C", 1), ChordToken("G", 0)]
    assert tokenize_bar("C .. …") == [ChordToken("C", 3)]


def test_standalone_dot_without_previous_token_is_dropped() -> None:
    assert tokenize_bar(". C") == [ChordToken("C", 0)]
    assert tokenize_bar("  .  ") == []


def test_rest_tokens_are_kept() -> None:
    (bar,) = tokenize_bar_line("| % NC |")
    assert [token.is_rest for token in bar] == [True, True]
