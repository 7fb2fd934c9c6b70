"""Unified entry point: detects the input dialect and returns a Document."""

from __future__ import annotations

import html
import logging
from functools import lru_cache

from bs4 import BeautifulSoup

from chordchart.chart_parser import chart_to_document, parse_chart
from chordchart.chordmark import is_chart_line, parse_chordmark
from chordchart.models import Document

log = logging.getLogger(__name__)

PARSE_CACHE_SIZE = 256


class ChartParseError(ValueError):
    """Raised when a caller requires sections and the input produced none."""


def extract_text_from_html(markup: str) -> str:
    """
    Reduce an HTML fragment to plain text, one line per block or <br>.

    Non-breaking spaces become regular spaces so chord alignment survives.
    """
    soup = BeautifulSoup(markup, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(["p", "div", "li", "pre", "h1", "h2", "h3", "h4"]):
        block.insert_after("\n")
    text = html.unescape(soup.get_text())
    return text.replace("\u00a0", " ").replace("\t", " ").strip("\n")


def detect_dialect(text: str) -> str:
    """
    "chart" when every non-blank line is a header, repeat directive or bar
    line; "chordmark" as soon as a label, key, time signature or lyric shows up.
    """
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line and not is_chart_line(line):
            return "chordmark"
    return "chart"


@lru_cache(maxsize=PARSE_CACHE_SIZE)
def _parse_cached(text: str) -> Document | None:
    source = text.strip()
    if source.startswith("<") and ">" in source:
        source = extract_text_from_html(source).strip()
    if not source:
        return None

    dialect = detect_dialect(source)
    log.debug("Parsing %d characters as %s", len(source), dialect)
    if dialect == "chart":
        return chart_to_document(parse_chart(source))
    return parse_chordmark(source)


def parse(text: str, require_sections: bool = False) -> Document | None:
    """
    Parse chart or chordmark text into a Document.

    Results are cached by input text; documents are immutable, so a cached
    result can be handed to any number of callers.

    Args:
        text:             Raw user input (plain text or an HTML fragment).
        require_sections: Raise instead of returning a document without any
                          section of bars.

    Returns:
        The parsed Document, or None for empty/whitespace-only input.

    Raises:
        ChartParseError: If ``require_sections`` is set and nothing was found.
    """
    document = _parse_cached(text)
    if require_sections and (document is None or not document.sections().sections):
        raise ChartParseError("No sections found in chord chart")
    return document
