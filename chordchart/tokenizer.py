"""Bar/line tokenizer: splits one line of chart text into bars of chord tokens."""

import re

from chordchart.models import ChordToken

ELLIPSIS = "…"
BAR_SEPARATOR = "|"

_ONLY_PIPES_RE = re.compile(r"^[\s|]*\|[\s|]*$")


def tokenize_bar(text: str) -> list[ChordToken]:
    """
    Tokenize the text of a single bar.

    A standalone "." (or "…") adds a duration dot to the token before it;
    one with nothing before it in the bar is dropped.
    """
    normalized = text.replace(ELLIPSIS, ".")
    raw_tokens: list[str] = []
    for word in normalized.split():
        if word.strip(".") == "":
            if raw_tokens:
                raw_tokens[-1] += word
            continue
        raw_tokens.append(word)
    return [ChordToken.from_text(raw) for raw in raw_tokens]


def tokenize_bar_line(line: str) -> list[list[ChordToken]]:
    """
    Split a line on "|" into bars of chord tokens.

    Blank segments are separators, not bars: "|Am.| |C D|" holds two bars.
    A line made only of pipes notates explicit empty bars, one per pipe, so
    "| |" gives two empty bars and "|" one.

    Args:
        line: One line of chart text, e.g. "| C G | Am… |".

    Returns:
        Bars in source order, each a list of tokens in source order.
    """
    if not line.strip():
        return []
    if _ONLY_PIPES_RE.match(line):
        return [[] for _ in range(line.count(BAR_SEPARATOR))]

    bars: list[list[ChordToken]] = []
    for segment in line.split(BAR_SEPARATOR):
        if not segment.strip():
            continue
        tokens = tokenize_bar(segment)
        if tokens:
            bars.append(tokens)
    return bars
