"""
Interaction and sound gate.

Decides, frame by frame, whether someone is actively playing (fast hand
movement, or a sudden change in proximity), fades the master volume out after
an idle timeout, and decides which voices fire. Firing is rate limited per
voice, so a voice never re-triggers within its minimum interval.

The gate only decides; it returns ``NoteEvent`` objects that the engine hands to
the audio backend.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from proxima.config import BASS, DRONE, HIHAT, SYNTH, VOICES, InteractionConfig
from proxima.landmarks import LandmarkSnapshot, Point, ScreenMapper
from proxima.proximity import ProximityReading
from proxima.util import HandLandmark, clamp, clamped_map, distance, lerp, linear_map

logger = logging.getLogger(__name__)

NOTE = 'note'
CHORD = 'chord'
RELEASE = 'release'


def midi_to_freq(midi_note: float) -> float:
    """
    Convert MIDI note number to frequency in Hz.

    >>> midi_to_freq(69)
    440.0
    >>> round(midi_to_freq(60), 2)
    261.63
    """
    return 440.0 * (2.0 ** ((midi_note - 69) / 12.0))


@dataclass(frozen=True)
class NoteEvent:
    """
    A request to the audio backend.

    ``kind`` is ``'note'`` (one pitch, fixed duration), ``'chord'`` (attack of a
    held chord) or ``'release'`` (release everything the voice holds).
    """

    voice: str
    kind: str = NOTE
    frequencies: Tuple[float, ...] = ()
    duration: float = 0.0
    amplitude: float = 0.0
    midi_notes: Tuple[int, ...] = ()


# -------------------------------------------------------------------------------
# Rate limiting
# -------------------------------------------------------------------------------


class VoiceTimers:
    """
    Per-voice trigger records: last trigger time and minimum re-trigger interval.

    >>> timers = VoiceTimers({'bass': 0.2})
    >>> timers.ready('bass', now=0.0)
    True
    >>> timers.mark('bass', now=0.0)
    >>> timers.ready('bass', now=0.1)
    False
    >>> timers.ready('bass', now=0.2)
    True
    """

    def __init__(self, min_intervals: Dict[str, float]):
        self.min_intervals = dict(min_intervals)
        self._last: Dict[str, float] = {}

    def ready(self, voice: str, now: float) -> bool:
        last = self._last.get(voice)
        if last is None:
            return True
        return now - last >= self.min_intervals.get(voice, 0.0)

    def mark(self, voice: str, now: float) -> None:
        self._last[voice] = now

    def last(self, voice: str) -> Optional[float]:
        return self._last.get(voice)

    def reset(self, voice: Optional[str] = None) -> None:
        if voice is None:
            self._last.clear()
        else:
            self._last.pop(voice, None)


# -------------------------------------------------------------------------------
# State
# -------------------------------------------------------------------------------


@dataclass
class InteractionState:
    last_interaction_time: float = 0.0
    volume: float = 1.0
    last_hand_positions: List[Optional[Point]] = field(default_factory=lambda: [None, None])
    last_proximity: float = 0.0


@dataclass(frozen=True)
class GateResult:
    """What the gate decided this frame."""

    has_interaction: bool
    volume: float
    velocities: Tuple[float, float] = (0.0, 0.0)
    events: Tuple[NoteEvent, ...] = ()
    idle_time: float = 0.0


class InteractionGate:
    """
    Classifies frames as interactive or idle, manages the master volume and
    gates voice triggers.

    Args:
        config: thresholds, rates and voice settings.
    """

    def __init__(self, config: Optional[InteractionConfig] = None):
        self.config = config = config if config is not None else InteractionConfig()
        self.state: Optional[InteractionState] = None
        self.timers = VoiceTimers(
            {voice: vc.min_interval for voice, vc in config.voices.items()}
        )

    @property
    def volume(self) -> float:
        return self.state.volume if self.state is not None else 0.0

    def start(self, now: float, proximity: float = 0.0) -> None:
        """Start from a fresh state: full volume, idle timer at ``now``."""
        self.state = InteractionState(last_interaction_time=now, last_proximity=proximity)
        self.timers.reset()
        # The drone waits a full interval before its first chord
        self.timers.mark(DRONE, now)

    def reset(self) -> None:
        self.state = None
        self.timers.reset()

    # Per-frame ---------------------------------------------------------------

    def hand_velocities(
        self, snapshot: LandmarkSnapshot, mapper: ScreenMapper
    ) -> Tuple[float, float]:
        """
        Index fingertip movement (pixels since last frame) of the two hand slots.

        A hand that is missing this frame forgets its last position, so its
        return does not read as a jump.
        """
        state = self.state
        velocities = [0.0, 0.0]
        for slot in range(2):
            hand = snapshot.hands[slot] if slot < len(snapshot.hands) else None
            current = mapper.point(hand, HandLandmark.INDEX_FINGER_TIP)
            previous = state.last_hand_positions[slot]
            if current is not None and previous is not None:
                velocities[slot] = distance(current, previous)
            state.last_hand_positions[slot] = current
        return velocities[0], velocities[1]

    def classify(
        self,
        snapshot: LandmarkSnapshot,
        reading: ProximityReading,
        velocities: Sequence[float],
    ) -> bool:
        if not snapshot.any_detected:
            return False
        if not snapshot.hands_detected:
            # A body or face alone is not interaction
            return False
        config = self.config
        fast = any(v > config.velocity_threshold for v in velocities)
        jump = abs(reading.proximity - self.state.last_proximity) > (
            config.proximity_change_threshold
        )
        return fast or jump

    def update_volume(self, has_interaction: bool, now: float) -> float:
        config = self.config
        state = self.state
        if has_interaction:
            state.last_interaction_time = now
            state.volume = lerp(state.volume, 1.0, config.rise_rate)
        elif now - state.last_interaction_time > config.idle_timeout:
            state.volume = lerp(state.volume, 0.0, config.fade_rate)
            if 0 < state.volume < config.silence_floor:
                logger.debug("Idle for %.1fs: volume faded out", now - state.last_interaction_time)
                state.volume = 0.0
        state.volume = clamp(state.volume)
        return state.volume

    def update(
        self,
        snapshot: LandmarkSnapshot,
        reading: ProximityReading,
        mapper: ScreenMapper,
        *,
        now: float,
        frame: int,
    ) -> GateResult:
        """Run one frame of the gate. Starts the state on first use."""
        if self.state is None:
            self.start(now, reading.proximity)
        state = self.state

        velocities = self.hand_velocities(snapshot, mapper)
        has_interaction = self.classify(snapshot, reading, velocities)
        state.last_proximity = reading.proximity
        volume = self.update_volume(has_interaction, now)

        events = tuple(
            self.voice_events(snapshot, reading, mapper, velocities, now=now, frame=frame)
        )
        return GateResult(
            has_interaction=has_interaction,
            volume=volume,
            velocities=velocities,
            events=events,
            idle_time=now - state.last_interaction_time,
        )

    # Voices ------------------------------------------------------------------

    def _fire(self, voice: str, now: float, *, needs_volume: bool = True) -> bool:
        """Whether ``voice`` may fire now. Marks it as fired if so."""
        if needs_volume and self.state.volume <= self.config.silence_floor:
            return False
        if not self.timers.ready(voice, now):
            return False
        self.timers.mark(voice, now)
        return True

    def voice_events(
        self,
        snapshot: LandmarkSnapshot,
        reading: ProximityReading,
        mapper: ScreenMapper,
        velocities: Sequence[float],
        *,
        now: float,
        frame: int,
    ):
        config = self.config
        voices = config.voices
        volume = self.state.volume
        lead = snapshot.hands[0] if snapshot.hands else None
        lead_tip = lead.index_tip if lead is not None else None

        # Drone: a new chord on a fixed wall clock interval
        if self._fire(DRONE, now):
            root = config.drone_default_root
            if lead_tip is not None:
                root = clamped_map(lead_tip.y, 0, 1, *config.drone_root_range)
                root = int(math.floor(root))
            notes = tuple(root + i for i in config.drone_intervals)
            yield NoteEvent(DRONE, RELEASE)
            yield NoteEvent(
                DRONE,
                CHORD,
                frequencies=tuple(midi_to_freq(n) for n in notes),
                amplitude=voices[DRONE].base_amplitude * volume,
                midi_notes=notes,
            )

        # Synth: fast movement of the lead hand, pitched by its height
        if (
            lead_tip is not None
            and velocities[0] > config.synth_velocity
            and self._fire(SYNTH, now)
        ):
            note = clamped_map(lead_tip.y, 0, 1, *config.synth_note_range)
            note = int(math.floor(note))
            yield self._note(SYNTH, note, volume)

        # Bass: hands held close to the body, pitched by proximity
        if reading.proximity > config.bass_proximity and self._fire(BASS, now):
            lo, hi = config.bass_note_range
            note = linear_map(reading.proximity, config.bass_proximity, 1.0, lo, hi)
            note = int(math.floor(note))
            yield self._note(BASS, note, volume)

        # Hi-hat: a fixed frame cadence, softer the stiller the hands
        if frame % config.hihat_every == 0 and self._fire(HIHAT, now, needs_volume=False):
            velocity = clamped_map(
                sum(velocities), 0, config.hihat_velocity_span, *config.hihat_velocity_range
            )
            yield NoteEvent(
                HIHAT,
                NOTE,
                duration=voices[HIHAT].duration,
                amplitude=voices[HIHAT].base_amplitude * velocity * volume,
            )

    def _note(self, voice: str, note: int, volume: float) -> NoteEvent:
        vc = self.config.voices[voice]
        return NoteEvent(
            voice,
            NOTE,
            frequencies=(midi_to_freq(note),),
            duration=vc.duration,
            amplitude=vc.base_amplitude * volume,
            midi_notes=(note,),
        )


def release_events() -> List[NoteEvent]:
    """Release every voice (used when sound is switched off)."""
    return [NoteEvent(voice, RELEASE) for voice in VOICES]
