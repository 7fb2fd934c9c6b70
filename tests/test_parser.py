"""Unit tests for the unified parse entry point."""

import pytest

from chordchart.chart_parser import parse_chart
from chordchart.parser import ChartParseError, detect_dialect, extract_text_from_html, parse


def test_empty_input_is_no_document() -> None:
    assert parse("") is None
    assert parse("  \n\t\n") is None


def test_chart_dialect_detected() -> None:
    document = parse("Verse 1\n| C | G |\nx2")
    assert document is not None
    assert document.dialect == "chart"
    assert document.sections().bar_count == 4


def test_chordmark_dialect_detected() -> None:
    document = parse("#v\nC G\n_Hello _world")
    assert document is not None
    assert document.dialect == "chordmark"


def test_detect_dialect() -> None:
    assert detect_dialect("A:\n| C |\n\nB:\n| G |") == "chart"
    assert detect_dialect("key G\n| C |") == "chordmark"
    assert detect_dialect("| C |\nsome words") == "chordmark"


def test_results_are_cached_by_text() -> None:
    text = "Chorus\n| F | C |"
    assert parse(text) is parse(text)


def test_require_sections_raises_when_nothing_found() -> None:
    with pytest.raises(ChartParseError, match="No sections found in chord chart"):
        parse("just some lyrics", require_sections=True)
    with pytest.raises(ChartParseError):
        parse("", require_sections=True)


def test_without_requirement_lyrics_only_still_parse() -> None:
    document = parse("just some lyrics")
    assert document is not None
    assert document.sections().sections == ()


def test_chart_parse_error_is_value_error() -> None:
    assert issubclass(ChartParseError, ValueError)


def test_html_input_is_reduced_to_text() -> None:
    document = parse("<p>Verse 1</p><p>| C | G |</p>")
    assert document is not None
    assert [s.label for s in document.sections().sections] == ["Verse 1"]


def test_extract_text_from_html_breaks_lines() -> None:
    assert extract_text_from_html("C<br>G<br/>Am") == "C\nG\nAm"


def test_extract_text_from_html_replaces_nbsp() -> None:
    assert extract_text_from_html("<div>C&nbsp;&nbsp;G</div>") == "C  G"


def test_extract_text_from_html_unescapes_entities() -> None:
    assert extract_text_from_html("<p>Tom &amp; Jerry</p>") == "Tom & Jerry"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("| C6/9 | G |", [("Main", 2)]),
        ("| am | F |", [("Main", 2)]),
        ("Verse 1 (soft)\n| C | G |", [("Verse 1", 2)]),
        ("Chorus\n| C | G |\n| H | F |", [("Chorus", 4)]),
    ],
)
def test_unusual_chart_lines_keep_the_chart_dialect(text: str, expected: list[tuple[str, int]]) -> None:
    document = parse(text)
    assert document is not None
    assert document.dialect == "chart"
    sections = document.sections().sections
    assert [(section.label, len(section.bars)) for section in sections] == expected
    assert sections == parse_chart(text).sections
