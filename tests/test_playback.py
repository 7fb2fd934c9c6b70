"""Unit tests for the playback scheduler, driven by a fake transport clock."""

from collections.abc import Sequence

import pytest

from chordchart.models import ChordEvent
from chordchart.playback import PlaybackScheduler, SilentSink


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    def __init__(self) -> None:
        self.triggered: list[tuple[tuple[int, ...], float]] = []
        self.releases = 0

    def trigger(self, notes: Sequence[int], duration_seconds: float) -> None:
        self.triggered.append((tuple(notes), duration_seconds))

    def release_all(self) -> None:
        self.releases += 1


def _events() -> list[ChordEvent]:
    return [
        ChordEvent("C", (60, 64, 67), 0.0, 4.0, line_index=1),
        ChordEvent("G", (67, 71, 74), 4.0, 4.0, line_index=3),
    ]


def _scheduler() -> tuple[PlaybackScheduler, FakeClock, RecordingSink]:
    clock = FakeClock()
    sink = RecordingSink()
    return PlaybackScheduler(sink, clock=clock, delay=clock.sleep), clock, sink


def test_blocking_run_triggers_every_event_in_time() -> None:
    scheduler, clock, sink = _scheduler()
    scheduler.start(_events(), bpm=120)
    scheduler.run()
    assert [notes for notes, _ in sink.triggered] == [(60, 64, 67), (67, 71, 74)]
    assert clock.now == pytest.approx(4.0)


def test_notes_sound_for_ninety_percent_of_the_span() -> None:
    scheduler, _, sink = _scheduler()
    scheduler.start(_events(), bpm=120)
    scheduler.run()
    assert [duration for _, duration in sink.triggered] == [pytest.approx(1.8)] * 2


def test_playback_stops_itself_at_the_end() -> None:
    scheduler, _, sink = _scheduler()
    scheduler.start(_events(), bpm=120)
    scheduler.run()
    assert not scheduler.is_playing
    assert sink.releases == 2  # once on start, once at the end


def test_position_and_current_event_follow_the_clock() -> None:
    scheduler, clock, _ = _scheduler()
    scheduler.start(_events(), bpm=120)
    clock.now = 1.0
    assert scheduler.position_beats() == pytest.approx(2.0)
    assert scheduler.current_event().chord_symbol == "C"  # type: ignore[union-attr]
    clock.now = 2.5
    assert scheduler.current_event().chord_symbol == "G"  # type: ignore[union-attr]


def test_stop_cancels_pending_triggers_and_resets_transport() -> None:
    scheduler, clock, sink = _scheduler()
    scheduler.start(_events(), bpm=120)
    scheduler.run(blocking=False)
    assert len(sink.triggered) == 1

    scheduler.stop()
    assert scheduler.position_beats() == 0.0
    assert scheduler.current_event() is None
    assert sink.releases == 2

    clock.now = 10.0
    scheduler.run()
    assert len(sink.triggered) == 1


def test_on_event_callback() -> None:
    clock = FakeClock()
    seen: list[str] = []
    scheduler = PlaybackScheduler(
        SilentSink(), clock=clock, delay=clock.sleep, on_event=lambda e: seen.append(e.chord_symbol)
    )
    scheduler.start(_events(), bpm=60)
    scheduler.run()
    assert seen == ["C", "G"]


def test_start_line_skips_earlier_events() -> None:
    scheduler, clock, sink = _scheduler()
    scheduler.start(_events(), bpm=120, start_line=3)
    scheduler.run()
    assert [notes for notes, _ in sink.triggered] == [(67, 71, 74)]
    assert clock.now == pytest.approx(2.0)


def test_nothing_to_play() -> None:
    scheduler, _, sink = _scheduler()
    scheduler.start([], bpm=120)
    assert not scheduler.is_playing
    assert scheduler.run(blocking=False) is None
    assert sink.triggered == []


def test_tempo_must_be_positive() -> None:
    scheduler, _, _ = _scheduler()
    with pytest.raises(ValueError):
        scheduler.start(_events(), bpm=0)


def test_restart_replaces_previous_schedule() -> None:
    scheduler, _, sink = _scheduler()
    scheduler.start(_events(), bpm=120)
    scheduler.start(_events()[:1], bpm=120)
    scheduler.run()
    assert len(sink.triggered) == 1


def test_current_event_reuses_start_beats(monkeypatch: pytest.MonkeyPatch) -> None:
    import chordchart.timing

    scheduler, clock, _ = _scheduler()
    scheduler.start(_events(), bpm=120)

    def unexpected(events: object) -> list[float]:
        raise AssertionError("start beats rebuilt while polling")

    monkeypatch.setattr(chordchart.timing, "start_beats", unexpected)
    clock.now = 2.5
    assert scheduler.current_event().chord_symbol == "G"  # type: ignore[union-attr]
