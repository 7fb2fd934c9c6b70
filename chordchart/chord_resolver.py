"""ChordResolver: Maps chord symbols to concrete MIDI pitch sets."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

# ── MIDI constants ──────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDDLE_C_MIDI = 60  # C4 in Scientific Pitch Notation
POWER_FIFTH = 7

SHARP_NAMES: list[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_NAMES: list[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

LETTER_PITCH_CLASSES: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
ACCIDENTAL_OFFSETS: dict[str, int] = {"": 0, "#": 1, "♯": 1, "b": -1, "♭": -1}

_ROOT_RE = re.compile(r"^([A-Ga-g])([#b♯♭]?)(.*)$")
_BASS_RE = re.compile(r"^([A-Ga-g])([#b♯♭]?)$")


def pitch_class_to_midi(pitch_class: int, octave: int) -> int:
    """
    Convert a pitch class (0-11) and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, C1 = 24, ... C4 (Middle C) = 60.
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + pitch_class


@dataclass(frozen=True)
class Pitch:
    """A pitch spelled as letter + accidental + scientific octave, e.g. Bb3."""

    letter: str
    accidental: str
    octave: int

    @classmethod
    def from_midi(cls, note: int, prefer_flats: bool = False) -> "Pitch":
        names = FLAT_NAMES if prefer_flats else SHARP_NAMES
        name = names[note % SEMITONES_PER_OCTAVE]
        return cls(letter=name[0], accidental=name[1:], octave=note // SEMITONES_PER_OCTAVE - 1)

    @property
    def midi(self) -> int:
        pitch_class = LETTER_PITCH_CLASSES[self.letter] + ACCIDENTAL_OFFSETS[self.accidental]
        return (self.octave + 1) * SEMITONES_PER_OCTAVE + pitch_class

    def __str__(self) -> str:
        return f"{self.letter}{self.accidental}{self.octave}"


# ── Interval tables ─────────────────────────────────────────────────────────

#: Root position major triad: root, major-3rd (+4), perfect-5th (+7)
MAJOR_INTERVALS: list[int] = [0, 4, 7]

#: Root position minor triad: root, minor-3rd (+3), perfect-5th (+7)
MINOR_INTERVALS: list[int] = [0, 3, 7]

#: Qualities beyond plain triads, keyed by their normalized suffix.
QUALITY_INTERVALS: dict[str, list[int]] = {
    "": MAJOR_INTERVALS,
    "maj": MAJOR_INTERVALS,
    "M": MAJOR_INTERVALS,
    "m": MINOR_INTERVALS,
    "min": MINOR_INTERVALS,
    "5": [0, POWER_FIFTH],
    "7": [0, 4, 7, 10],
    "maj7": [0, 4, 7, 11],
    "M7": [0, 4, 7, 11],
    "Δ": [0, 4, 7, 11],
    "Δ7": [0, 4, 7, 11],
    "m7": [0, 3, 7, 10],
    "min7": [0, 3, 7, 10],
    "-7": [0, 3, 7, 10],
    "6": [0, 4, 7, 9],
    "m6": [0, 3, 7, 9],
    "9": [0, 4, 7, 10, 14],
    "add9": [0, 4, 7, 14],
    "madd9": [0, 3, 7, 14],
    "m9": [0, 3, 7, 10, 14],
    "dim": [0, 3, 6],
    "°": [0, 3, 6],
    "dim7": [0, 3, 6, 9],
    "°7": [0, 3, 6, 9],
    "m7b5": [0, 3, 6, 10],
    "ø": [0, 3, 6, 10],
    "aug": [0, 4, 8],
    "+": [0, 4, 8],
    "sus": [0, 5, 7],
    "sus4": [0, 5, 7],
    "sus2": [0, 2, 7],
    "7sus4": [0, 5, 7, 10],
    "-": MINOR_INTERVALS,
}


def _is_minor_suffix(suffix: str) -> bool:
    """m, min or - directly after the root, but not the m of maj."""
    if suffix.startswith("maj"):
        return False
    return suffix.startswith(("m", "-"))


@dataclass(frozen=True)
class ChordSymbol:
    """
    A chord symbol broken into its parts.

    Attributes:
        symbol:     The stripped source symbol.
        root:       Root pitch class (0=C ... 11=B).
        quality:    Suffix after the root (and before any slash), e.g. "m7".
        intervals:  Semitones above the root for each chord tone.
        bass:       Pitch class of the slash bass, if any.
        recognized: False when the quality was unknown and the chord degraded
                    to a plain triad.
        flat:       The root was spelled with a flat.
    """

    symbol: str
    root: int
    quality: str
    intervals: tuple[int, ...]
    bass: int | None = None
    recognized: bool = True
    flat: bool = False


def _parse_note(text: str, pattern: re.Pattern[str]) -> tuple[int, str, str] | None:
    match = pattern.match(text)
    if not match:
        return None
    letter, accidental = match.group(1).upper(), match.group(2)
    pitch_class = (LETTER_PITCH_CLASSES[letter] + ACCIDENTAL_OFFSETS[accidental]) % 12
    remainder = match.group(3) if pattern.groups > 2 else ""
    return pitch_class, accidental, remainder


def describe(symbol: str) -> ChordSymbol | None:
    """
    Break a chord symbol into root, quality and slash bass.

    Returns None when the symbol has no recognizable root. Unknown qualities
    never fail: they come back as the root's major or minor triad with
    ``recognized=False``.
    """
    text = symbol.strip()
    chord_part, bass_part = text, None
    if "/" in text:
        chord_part, bass_part = text.split("/", 1)

    bass = _parse_note(bass_part.strip(), _BASS_RE) if bass_part is not None else None
    if bass_part is not None and bass is None:
        # "C/x": the slash does not name a bass note, keep the chord part alone.
        chord_part = text.split("/", 1)[0]

    root = _parse_note(chord_part.strip(), _ROOT_RE)
    if root is None:
        return None
    root_pc, accidental, quality = root

    intervals = QUALITY_INTERVALS.get(quality)
    recognized = intervals is not None
    if intervals is None:
        intervals = MINOR_INTERVALS if _is_minor_suffix(quality) else MAJOR_INTERVALS

    return ChordSymbol(
        symbol=text,
        root=root_pc,
        quality=quality,
        intervals=tuple(intervals),
        bass=bass[0] if bass is not None else None,
        recognized=recognized,
        flat=accidental in ("b", "♭"),
    )


# ── Voicing strategies ──────────────────────────────────────────────────────


class VoicingStrategy(ABC):
    """
    Abstract Strategy for laying out a described chord as MIDI pitches.

    Concrete subclasses implement ``voice()`` to produce different registers
    and textures from the same chord symbol.
    """

    ROOT_OCTAVE = 4  # Middle C octave, C4 = MIDI 60

    def _stack(self, chord: ChordSymbol) -> list[int]:
        """Root-position chord tones above the root in the root octave."""
        root_midi = pitch_class_to_midi(chord.root, self.ROOT_OCTAVE)
        return [root_midi + iv for iv in chord.intervals]

    def _place_bass(self, notes: list[int], bass_pc: int) -> list[int]:
        """
        Drop every tone sharing the bass pitch class and put the bass below
        the lowest remaining tone.
        """
        upper = [note for note in notes if note % SEMITONES_PER_OCTAVE != bass_pc]
        ceiling = min(upper) if upper else pitch_class_to_midi(0, self.ROOT_OCTAVE + 1)
        bass = pitch_class_to_midi(bass_pc, self.ROOT_OCTAVE)
        while bass >= ceiling:
            bass -= SEMITONES_PER_OCTAVE
        return [bass] + upper

    @abstractmethod
    def voice(self, chord: ChordSymbol) -> list[int]:
        """
        Map a described chord to MIDI note numbers, lowest first.

        Args:
            chord: Parsed chord symbol.

        Returns:
            Ascending list of MIDI note numbers.
        """


class TriadVoicer(VoicingStrategy):
    """
    Close voicing with the root in the Middle C octave (C4 = 60 ... B4 = 71).

        C major  → C4(60), E4(64), G4(67)
        A minor  → A4(69), C5(72), E5(76)
        C/G      → G3(55), C4(60), E4(64)
    """

    def voice(self, chord: ChordSymbol) -> list[int]:
        notes = self._stack(chord)
        if chord.bass is not None:
            notes = self._place_bass(notes, chord.bass)
        return notes


class BassVoicer(VoicingStrategy):
    """
    Close voicing plus a bass note one octave below the chord root.

    The bass doubles the root (or plays the slash bass), giving the MIDI file
    a two-register texture.
    """

    BASS_OCTAVE = 3  # C3 = MIDI 48

    def voice(self, chord: ChordSymbol) -> list[int]:
        upper = self._stack(chord)
        bass_pc = chord.root
        if chord.bass is not None:
            bass_pc = chord.bass
            upper = [note for note in upper if note % SEMITONES_PER_OCTAVE != bass_pc]
        bass = pitch_class_to_midi(bass_pc, self.BASS_OCTAVE)
        while upper and bass >= min(upper):
            bass -= SEMITONES_PER_OCTAVE
        return [bass] + upper


VOICINGS: dict[str, type[VoicingStrategy]] = {
    "triad": TriadVoicer,
    "bass": BassVoicer,
}


class ChordResolver:
    """
    Resolves chord symbols to pitch sets with a pluggable voicing.

    Resolution is lenient: unknown roots give an empty set (silence) and
    unknown qualities degrade to the root's triad. It never raises.
    """

    def __init__(self, voicer: VoicingStrategy | None = None) -> None:
        self.voicer = voicer if voicer is not None else TriadVoicer()

    def resolve(self, symbol: str) -> list[int]:
        """
        Resolve a chord symbol to MIDI note numbers.

        Args:
            symbol: e.g. "Am7", "C/G", "F#sus4", "A5".

        Returns:
            Ascending MIDI note numbers, or an empty list when the symbol has
            no recognizable root.
        """
        chord = describe(symbol)
        if chord is None:
            return []
        return self.voicer.voice(chord)

    def resolve_pitches(self, symbol: str) -> list[Pitch]:
        """Like ``resolve`` but spelled as Pitch triples."""
        chord = describe(symbol)
        prefer_flats = chord.flat if chord is not None else False
        return [Pitch.from_midi(note, prefer_flats) for note in self.resolve(symbol)]


_default_resolver = ChordResolver()


def resolve(symbol: str) -> list[int]:
    """Resolve ``symbol`` with the default triad voicing."""
    return _default_resolver.resolve(symbol)
