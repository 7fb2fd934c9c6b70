"""Unit tests for MIDI encoding; files are read back with mido."""

import io
from pathlib import Path

import mido
import pytest

from chordchart.midi_exporter import MidiExporter, MidiExportError, chart_to_midi, encode_midi
from chordchart.models import ChordEvent


def _c_major(start: float = 0.0, duration: float = 1.0) -> ChordEvent:
    return ChordEvent("C", (60, 64, 67), start, duration)


def _read(data: bytes) -> mido.MidiFile:
    return mido.MidiFile(file=io.BytesIO(data))


def _note_track(midi: mido.MidiFile) -> mido.MidiTrack:
    (track,) = [t for t in midi.tracks if any(m.type == "note_on" for m in t)]
    return track


def _note_ons(track: mido.MidiTrack) -> list[tuple[int, int, int]]:
    """(absolute tick, note, velocity) for every sounding note-on."""
    tick = 0
    found = []
    for message in track:
        tick += message.time
        if message.type == "note_on" and message.velocity > 0:
            found.append((tick, message.note, message.velocity))
    return found


def test_single_beat_chord_is_480_ticks_long() -> None:
    midi = _read(encode_midi([_c_major()], tempo=60))
    assert midi.ticks_per_beat == 480
    track = _note_track(midi)
    assert sum(message.time for message in track) == 480
    assert midi.length == pytest.approx(1.0)


def test_single_note_track_plus_conductor() -> None:
    midi = _read(encode_midi([_c_major()]))
    assert midi.type == 1
    assert len(midi.tracks) == 2


def test_conductor_track_holds_tempo_and_meter() -> None:
    midi = _read(encode_midi([_c_major()], tempo=120))
    meta = {message.type: message for message in midi.tracks[0] if message.is_meta}
    assert mido.tempo2bpm(meta["set_tempo"].tempo) == pytest.approx(120)
    assert (meta["time_signature"].numerator, meta["time_signature"].denominator) == (4, 4)


def test_chord_notes_use_default_velocity() -> None:
    ons = _note_ons(_note_track(_read(encode_midi([_c_major()]))))
    assert sorted(ons) == [(0, 60, 90), (0, 64, 90), (0, 67, 90)]


def test_gaps_are_filled_with_a_silent_note() -> None:
    events = [_c_major(0.0, 1.0), ChordEvent("G", (67, 71, 74), 2.0, 1.0)]
    ons = _note_ons(_note_track(_read(encode_midi(events))))
    assert (480, 60, MidiExporter.SILENT_VELOCITY) in ons
    assert [velocity for _, _, velocity in ons].count(MidiExporter.SILENT_VELOCITY) == 1


def test_trailing_silence_is_padded_to_total_beats() -> None:
    data = MidiExporter().encode([_c_major()], total_beats=4.0)
    track = _note_track(_read(data))
    assert sum(message.time for message in track) == 4 * 480


def test_events_without_notes_count_as_silence() -> None:
    events = [ChordEvent("H", (), 0.0, 1.0), _c_major(1.0, 1.0)]
    ons = _note_ons(_note_track(_read(encode_midi(events))))
    assert ons[0] == (0, 60, MidiExporter.SILENT_VELOCITY)


def test_custom_beat_length() -> None:
    midi = _read(encode_midi([_c_major()], beat_length=960))
    assert midi.ticks_per_beat == 960
    assert sum(message.time for message in _note_track(midi)) == 960


@pytest.mark.parametrize("events", [[], [ChordEvent("H", (), 0.0, 1.0)]])
def test_no_chords_is_an_error(events: list[ChordEvent]) -> None:
    with pytest.raises(MidiExportError, match="No chords found"):
        encode_midi(events)


def test_midi_export_error_is_value_error() -> None:
    assert issubclass(MidiExportError, ValueError)


def test_export_writes_file(tmp_path: Path) -> None:
    output = tmp_path / "song.mid"
    MidiExporter(tempo=90).export([_c_major()], str(output))
    assert output.read_bytes().startswith(b"MThd")


# ── chart_to_midi ──────────────────────────────────────────────────────────────


def test_chart_to_midi_encodes_whole_chart() -> None:
    midi = _read(chart_to_midi("Verse 1\n| C | G |\n| % |", tempo=60))
    track = _note_track(midi)
    assert sum(message.time for message in track) == 12 * 480
    assert sorted(note for tick, note, _ in _note_ons(track) if tick == 4 * 480) == [67, 71, 74]


def test_chart_to_midi_uses_opening_time_signature() -> None:
    midi = _read(chart_to_midi("#v\n3/4\nC G\n_la _la"))
    (signature,) = [m for m in midi.tracks[0] if m.type == "time_signature"]
    assert (signature.numerator, signature.denominator) == (3, 4)


def test_chart_to_midi_bass_voicing() -> None:
    ons = _note_ons(_note_track(_read(chart_to_midi("| C |", voicing="bass"))))
    assert 48 in [note for _, note, _ in ons]


@pytest.mark.parametrize("text", ["", "   ", "just some lyrics"])
def test_chart_to_midi_without_sections(text: str) -> None:
    with pytest.raises(MidiExportError, match="No sections found in chord chart"):
        chart_to_midi(text)


def test_chart_to_midi_without_chords() -> None:
    with pytest.raises(MidiExportError, match="No chords found"):
        chart_to_midi("| % | |")


def test_chart_to_midi_with_six_nine_and_lowercase_chords() -> None:
    track = _note_track(_read(chart_to_midi("| C6/9 | am |")))
    ons = _note_ons(track)
    assert sorted(note for tick, note, _ in ons if tick == 0) == [60, 64, 67, 69]
    assert sorted(note for tick, note, _ in ons if tick == 4 * 480) == [69, 72, 76]
