"""
The per-frame tick: landmarks in, draw commands and sounds out.

``ProximaEngine`` owns the proximity state and the interaction state and is
their only writer. Each call to ``tick`` runs the proximity engine, the
connection renderer and (while sound is on) the interaction gate, then hands
the resulting note events to the audio backend without waiting on it.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from proxima.config import ProximaConfig
from proxima.connections import ConnectionRenderer, DrawCommand
from proxima.interaction import (
    CHORD,
    NOTE,
    RELEASE,
    GateResult,
    InteractionGate,
    NoteEvent,
    release_events,
)
from proxima.landmarks import LandmarkSnapshot, ScreenMapper
from proxima.proximity import ProximityEngine, ProximityReading

logger = logging.getLogger(__name__)


class AudioBackend(Protocol):
    """What the engine needs from an audio backend."""

    def trigger_note(self, voice: str, frequency: float, duration: float, amplitude: float):
        ...

    def trigger_chord_attack(self, voice: str, frequencies: Sequence[float], amplitude: float):
        ...

    def release_all(self, voice: str):
        ...

    def set_master_gain(self, volume: float):
        ...


@dataclass(frozen=True)
class TickResult:
    """Everything one tick produced."""

    frame: int
    reading: ProximityReading
    commands: List[DrawCommand] = field(default_factory=list)
    gate: Optional[GateResult] = None
    sound_active: bool = False

    @property
    def events(self) -> Tuple[NoteEvent, ...]:
        return self.gate.events if self.gate is not None else ()

    @property
    def volume(self) -> float:
        return self.gate.volume if self.gate is not None else 0.0

    @property
    def has_interaction(self) -> bool:
        return self.gate.has_interaction if self.gate is not None else False

    def sound_features(self) -> dict:
        """A summary fit for an on-screen overlay."""
        return {
            'proximity': self.reading.proximity,
            'complexity': self.reading.complexity,
            'volume': self.volume,
            'interaction': self.has_interaction,
            'sound': 'on' if self.sound_active else 'off',
        }


class ProximaEngine:
    """
    Runs the installation, one tick per displayed frame.

    Args:
        mapper: Maps normalized landmarks to the (mirrored) display.
        audio: Audio backend, or ``None`` to run silently.
        config: Thresholds and styles of every component.
        renderer: Connection renderer (built from ``config`` if not given).
        clock: Seconds, monotonic. Used when ``tick`` is not given ``now``.
    """

    def __init__(
        self,
        mapper: ScreenMapper,
        *,
        audio: Optional[AudioBackend] = None,
        config: Optional[ProximaConfig] = None,
        renderer: Optional[ConnectionRenderer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.mapper = mapper
        self.audio = audio
        self.config = config = config if config is not None else ProximaConfig()
        self.proximity = ProximityEngine(config.proximity)
        self.renderer = renderer or ConnectionRenderer(config.connections)
        self.gate = InteractionGate(config.interaction)
        self.clock = clock
        self.frame = 0
        self.sound_active = False
        self._failed_voices = set()

    # Sound toggle ------------------------------------------------------------

    def toggle_sound(self, now: Optional[float] = None) -> bool:
        """Switch sound on or off. Returns the new state."""
        if self.sound_active:
            self.stop_sound()
        else:
            self.start_sound(now)
        return self.sound_active

    def start_sound(self, now: Optional[float] = None):
        now = self.clock() if now is None else now
        self.gate.start(now, self.proximity.state.value)
        self._failed_voices.clear()
        self.sound_active = True
        logger.info("Sound on")

    def stop_sound(self):
        """Release every voice and forget the interaction state, synchronously."""
        self.sound_active = False
        for event in release_events():
            self.dispatch(event)
        self.gate.reset()
        logger.info("Sound off")

    # Tick --------------------------------------------------------------------

    def tick(self, snapshot: LandmarkSnapshot, now: Optional[float] = None) -> TickResult:
        now = self.clock() if now is None else now
        self.frame += 1

        reading = self.proximity.update(snapshot, self.mapper)
        commands = self.renderer.render(snapshot, reading, self.mapper, self.frame)

        gate = None
        if self.sound_active:
            gate = self.gate.update(
                snapshot, reading, self.mapper, now=now, frame=self.frame
            )
            self._call_audio('master', 'set_master_gain', gate.volume)
            for event in gate.events:
                self.dispatch(event)

        return TickResult(
            frame=self.frame,
            reading=reading,
            commands=commands,
            gate=gate,
            sound_active=self.sound_active,
        )

    # Audio -------------------------------------------------------------------

    def dispatch(self, event: NoteEvent):
        """Send one note event to the audio backend. Never raises."""
        if event.kind == NOTE:
            frequency = event.frequencies[0] if event.frequencies else None
            self._call_audio(
                event.voice,
                'trigger_note',
                event.voice,
                frequency,
                event.duration,
                event.amplitude,
            )
        elif event.kind == CHORD:
            self._call_audio(
                event.voice,
                'trigger_chord_attack',
                event.voice,
                list(event.frequencies),
                event.amplitude,
            )
        elif event.kind == RELEASE:
            self._call_audio(event.voice, 'release_all', event.voice)
        else:
            logger.warning("Unknown note event kind: %s", event.kind)

    def _call_audio(self, voice, method, *args):
        if self.audio is None:
            return
        try:
            getattr(self.audio, method)(*args)
        except Exception as e:
            # The voice goes quiet; the frame loop goes on
            if voice not in self._failed_voices:
                logger.error("Audio %s failed for %s: %s", method, voice, e)
                self._failed_voices.add(voice)
            else:
                logger.debug("Audio %s failed for %s: %s", method, voice, e)
