"""PlaybackScheduler: drives a note sink from a chord event timeline."""

from __future__ import annotations

import logging
import sched
import time
from collections.abc import Callable, Sequence
from typing import Protocol

from chordchart.models import ChordEvent
from chordchart.timing import event_at, events_from_line, start_beats

log = logging.getLogger(__name__)


class NoteSink(Protocol):
    """Anything that can sound MIDI notes, e.g. a synth or a MIDI port."""

    def trigger(self, notes: Sequence[int], duration_seconds: float) -> None:
        ...

    def release_all(self) -> None:
        ...


class SilentSink:
    """A sink that plays nothing; used to follow a chart without audio."""

    def trigger(self, notes: Sequence[int], duration_seconds: float) -> None:
        log.debug("Trigger %s for %.2fs", list(notes), duration_seconds)

    def release_all(self) -> None:
        log.debug("Release all notes")


class PlaybackScheduler:
    """
    Cooperative, clock-driven playback of an immutable event list.

    One trigger per event is queued on a ``sched.scheduler`` against the
    transport clock; ``run()`` fires them as they fall due. The event list
    is never modified, so ``current_event()`` can be polled at any time.

    Stopping cancels every pending trigger, resets the transport position
    and releases whatever the sink is still sounding.
    """

    NOTE_LENGTH_RATIO = 0.9  # Share of each span that sounds

    def __init__(
        self,
        sink: NoteSink,
        clock: Callable[[], float] = time.monotonic,
        delay: Callable[[float], object] = time.sleep,
        on_event: Callable[[ChordEvent], None] | None = None,
    ) -> None:
        """
        Args:
            sink:     Receives note triggers and the final release.
            clock:    Monotonic transport clock in seconds.
            delay:    Sleeps until the next trigger in blocking runs.
            on_event: Called with each event as it is triggered.
        """
        self.sink = sink
        self.on_event = on_event
        self._clock = clock
        self._scheduler = sched.scheduler(clock, delay)
        self._events: tuple[ChordEvent, ...] = ()
        self._starts: list[float] = []
        self._bpm = 0.0
        self._started_at: float | None = None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _seconds_per_beat(self) -> float:
        return 60.0 / self._bpm

    def _trigger(self, event: ChordEvent) -> None:
        duration = event.duration_beats * self._seconds_per_beat() * self.NOTE_LENGTH_RATIO
        self.sink.trigger(event.notes, duration)
        if self.on_event is not None:
            self.on_event(event)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self._started_at is not None

    def start(self, events: Sequence[ChordEvent], bpm: float, start_line: int | None = None) -> None:
        """
        Queue every event, starting the transport now.

        Args:
            events:     Events ordered by start beat.
            bpm:        Tempo in beats per minute.
            start_line: Start at the first event of this chord line instead
                        of the beginning.
        """
        if bpm <= 0:
            raise ValueError(f"Tempo must be positive, got {bpm}.")
        self.stop()
        if start_line is not None:
            events = events_from_line(events, start_line)
        if not events:
            log.info("Nothing to play")
            return

        self._events = tuple(events)
        self._starts = start_beats(self._events)
        self._bpm = float(bpm)
        self._started_at = self._clock()
        seconds_per_beat = self._seconds_per_beat()
        for event in self._events:
            self._scheduler.enterabs(
                self._started_at + event.start_beat * seconds_per_beat, 1, self._trigger, (event,)
            )
        end_beat = max(event.end_beat for event in self._events)
        self._scheduler.enterabs(self._started_at + end_beat * seconds_per_beat, 2, self.stop)
        log.debug("Scheduled %d events over %g beats at %g BPM", len(self._events), end_beat, bpm)

    def run(self, blocking: bool = True) -> float | None:
        """
        Fire due triggers.

        Blocking runs until playback ends; a non-blocking run fires what is
        due and returns the delay until the next trigger (None when idle).
        """
        return self._scheduler.run(blocking)

    def position_beats(self) -> float:
        """Transport position in beats; 0 when stopped."""
        if self._started_at is None:
            return 0.0
        return (self._clock() - self._started_at) / self._seconds_per_beat()

    def current_event(self) -> ChordEvent | None:
        """The event sounding at the current transport position."""
        if self._started_at is None:
            return None
        return event_at(self._events, self.position_beats(), self._starts)

    def stop(self) -> None:
        """Cancel pending triggers, reset the transport and release all notes."""
        for entry in self._scheduler.queue:
            self._scheduler.cancel(entry)
        self._started_at = None
        self.sink.release_all()
