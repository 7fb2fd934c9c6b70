"""Tests for the click command-line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from chordchart import __version__
from chordchart.cli import main

HYMN = "#v1\nC G\n_Amazing _grace\n"


@pytest.fixture
def chart_file(tmp_path: Path) -> Path:
    path = tmp_path / "amazing_grace.txt"
    path.write_text(HYMN, encoding="utf-8")
    return path


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_render_full_view_to_stdout(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["render", str(chart_file)])
    assert result.exit_code == 0
    assert 'class="cmSong"' in result.output


def test_render_one_line_view(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["render", str(chart_file), "--view", "one-line"])
    assert result.exit_code == 0
    assert "[C]Amazing [G]grace" in result.output


def test_render_text_view_serializes(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["render", str(chart_file), "--view", "text"])
    assert result.exit_code == 0
    assert "#Verse 1\n| C | G |\n_Amazing _grace" in result.output


def test_render_page_to_file_uses_stem_as_title(chart_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "out.html"
    result = CliRunner().invoke(main, ["render", str(chart_file), "-o", str(output)])
    assert result.exit_code == 0
    html = output.read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>amazing grace</title>" in html


def test_render_empty_chart_fails(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("  \n", encoding="utf-8")
    result = CliRunner().invoke(main, ["render", str(path)])
    assert result.exit_code == 1


def test_render_rejects_unknown_view(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["render", str(chart_file), "--view", "sideways"])
    assert result.exit_code == 2


def test_midi_writes_next_to_chart(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["midi", str(chart_file), "--tempo", "90"])
    assert result.exit_code == 0
    assert chart_file.with_suffix(".mid").read_bytes().startswith(b"MThd")


def test_midi_explicit_output_and_voicing(chart_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "song.mid"
    result = CliRunner().invoke(
        main, ["midi", str(chart_file), "-o", str(output), "--voicing", "bass"]
    )
    assert result.exit_code == 0
    assert output.exists()


def test_midi_without_sections_fails(tmp_path: Path) -> None:
    path = tmp_path / "lyrics.txt"
    path.write_text("just some lyrics\n", encoding="utf-8")
    result = CliRunner().invoke(main, ["midi", str(path)])
    assert result.exit_code == 1
    assert "No sections found in chord chart" in result.output


def test_midi_tempo_out_of_range(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["midi", str(chart_file), "--tempo", "500"])
    assert result.exit_code == 2


def test_events_lists_timeline(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["events", str(chart_file)])
    assert result.exit_code == 0
    assert "60 64 67" in result.output
    assert "2 event(s), 8 beats" in result.output


def test_play_follows_the_chart(tmp_path: Path) -> None:
    path = tmp_path / "short.txt"
    path.write_text("| C. G. |\n", encoding="utf-8")
    result = CliRunner().invoke(main, ["play", str(path), "--tempo", "300"])
    assert result.exit_code == 0
    assert "C" in result.output and "G" in result.output


@pytest.mark.integration
def test_sheet_writes_html(chart_file: Path) -> None:
    result = CliRunner().invoke(main, ["sheet", str(chart_file)])
    assert result.exit_code == 0
    assert "<svg" in chart_file.with_suffix(".html").read_text(encoding="utf-8")


def test_sheet_reports_each_step_as_it_runs(chart_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from chordchart.notation_exporter import NotationExporter

    calls: list[str] = []

    def fake_musicxml(self: NotationExporter, events: object, **options: object) -> bytes:
        calls.append("musicxml")
        return b"<score-partwise/>"

    def fake_render_svgs(self: NotationExporter, musicxml: bytes) -> list[str]:
        calls.append("svg")
        return ["<svg>page</svg>"]

    monkeypatch.setattr(NotationExporter, "musicxml", fake_musicxml)
    monkeypatch.setattr(NotationExporter, "render_svgs", fake_render_svgs)
    output = chart_file.with_suffix(".html")

    result = CliRunner().invoke(main, ["sheet", str(chart_file), "-o", str(output)])
    assert result.exit_code == 0
    assert calls == ["musicxml", "svg"]
    steps = [line for line in result.output.splitlines() if line.startswith("[")]
    assert [step[:5] for step in steps] == ["[1/3]", "[2/3]", "[3/3]"]
    assert '<div class="page"><svg>page</svg></div>' in output.read_text(encoding="utf-8")


def test_sheet_reports_render_failure(chart_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from chordchart.notation_exporter import NotationExporter

    def failing_render_svgs(self: NotationExporter, musicxml: bytes) -> list[str]:
        raise ValueError("verovio could not load the MusicXML data.")

    monkeypatch.setattr(NotationExporter, "musicxml", lambda self, events, **options: b"")
    monkeypatch.setattr(NotationExporter, "render_svgs", failing_render_svgs)

    result = CliRunner().invoke(main, ["sheet", str(chart_file)])
    assert result.exit_code == 1
    assert "[3/3]" not in result.output
    assert "Could not render score" in result.output
