"""
Configuration for the proximity engine, connection renderer and sound gate.

Every threshold of the installation lives here, as ``DFLT_*`` constants gathered into
dataclasses. Components take their config as a keyword argument, so a test (or
the CLI) can override any of them with ``dataclasses.replace``.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from proxima.util import FACE_KEY_POINTS, FACE_NETWORK_POINTS, FINGER_TIPS, HandLandmark

# -------------------------------------------------------------------------------
# Proximity
# -------------------------------------------------------------------------------

DFLT_MAX_PROXIMITY_DIST = 400.0
DFLT_MAX_FACE_DIST = 300.0
DFLT_SMOOTHING = 0.1
DFLT_COMPLEXITY_RANGE = (1, 6)
DFLT_PROXIMITY_REFERENCES = ('chest', 'hips', 'body_center', 'left_ankle', 'right_ankle')


@dataclass(frozen=True)
class ProximityConfig:
    max_proximity_dist: float = DFLT_MAX_PROXIMITY_DIST
    max_face_dist: float = DFLT_MAX_FACE_DIST
    smoothing: float = DFLT_SMOOTHING
    complexity_range: Tuple[int, int] = DFLT_COMPLEXITY_RANGE
    references: Tuple[str, ...] = DFLT_PROXIMITY_REFERENCES
    finger_tips: Tuple[int, ...] = FINGER_TIPS
    face_points: Tuple[int, ...] = FACE_KEY_POINTS

    def __post_init__(self):
        if not 0 < self.smoothing <= 1:
            raise ValueError(f"smoothing must be in (0, 1], was {self.smoothing}")
        if self.max_proximity_dist <= 0 or self.max_face_dist <= 0:
            raise ValueError("Proximity distances must be positive")
        lo, hi = self.complexity_range
        if lo >= hi:
            raise ValueError(f"Invalid complexity range: {self.complexity_range}")


# -------------------------------------------------------------------------------
# Connections
# -------------------------------------------------------------------------------


@dataclass(frozen=True)
class WaveTerm:
    """
    One periodic displacement along a connection:
    ``func(t * pi * cycles + frame * time_rate) * amplitude * intensity``,
    added to the axes named in ``axes``.
    """

    cycles: float
    time_rate: float
    amplitude: float
    func: str = 'sin'
    axes: str = 'xy'

    def __post_init__(self):
        if self.func not in ('sin', 'cos'):
            raise ValueError(f"Unknown wave function: {self.func}")
        if not set(self.axes) <= {'x', 'y'}:
            raise ValueError(f"Invalid wave axes: {self.axes}")


@dataclass(frozen=True)
class ConnectionStyle:
    """How one connection family is gated, weighted and drawn."""

    max_dist: float
    exponent: float = 1.0
    # Reach grows with proximity: max_dist + max_dist_per_proximity * proximity
    max_dist_per_proximity: float = 0.0
    # intensity gain: gain + gain_per_proximity * (proximity driving this family)
    gain: float = 1.0
    gain_per_proximity: float = 0.0
    min_proximity: float = 0.0
    # layers=None means "follow complexity", floor(map(complexity, 1..6 -> 1..3))
    layers: Optional[int] = 1
    alpha_max: float = 255.0
    weight: float = 0.5
    weight_per_proximity: float = 0.0
    weight_per_layer: float = 0.0
    step: float = 0.05
    waves: Tuple[WaveTerm, ...] = ()
    # Harmonic waves whose count follows complexity: sin(t*pi*2w + frame*rate) * (base + w)
    harmonic_time_rate: float = 0.0
    harmonic_amplitude_base: float = 0.0
    path_offsets: Tuple[float, ...] = (0.0,)
    spiral: bool = False
    particle_chance: float = 0.0
    # Particle chance follows complexity when set: map(complexity, 1..6 -> range)
    particle_chance_range: Optional[Tuple[float, float]] = None
    particle_alpha: float = 0.0
    particle_size: Tuple[float, float] = (0.5, 0.5)
    particle_size_per_proximity: float = 0.0
    particle_jitter: float = 0.5

    def __post_init__(self):
        if self.max_dist <= 0:
            raise ValueError(f"max_dist must be positive, was {self.max_dist}")
        if not 0 < self.step <= 1:
            raise ValueError(f"step must be in (0, 1], was {self.step}")
        if self.layers is not None and self.layers < 1:
            raise ValueError(f"layers must be at least 1, was {self.layers}")


HAND_BODY = 'hand_body'
HAND_FACE = 'hand_face'
FACE_MESH = 'face_mesh'
FINGER_WEB = 'finger_web'
HAND_BRIDGE = 'hand_bridge'

CONNECTION_FAMILIES = (HAND_BODY, HAND_FACE, FACE_MESH, FINGER_WEB, HAND_BRIDGE)

DFLT_CONNECTION_STYLES = {
    HAND_BODY: ConnectionStyle(
        max_dist=350,
        max_dist_per_proximity=150,
        exponent=0.4,
        gain=0.5,
        gain_per_proximity=0.5,
        min_proximity=0.1,
        layers=None,
        alpha_max=255,
        weight=0.8,
        weight_per_proximity=0.2,
        step=0.05,
        harmonic_time_rate=0.1,
        harmonic_amplitude_base=2,
        particle_chance_range=(0.02, 0.08),
        particle_alpha=150,
        particle_size=(0.8, 0.8),
        particle_size_per_proximity=1.0,
        particle_jitter=1.0,
    ),
    HAND_FACE: ConnectionStyle(
        max_dist=250,
        exponent=0.5,
        gain=0.4,
        gain_per_proximity=0.3,
        min_proximity=0.08,
        layers=2,
        alpha_max=60,
        weight=0.3,
        weight_per_layer=0.1,
        step=0.03,
        waves=(
            WaveTerm(cycles=4, time_rate=0.05, amplitude=1.5, func='sin', axes='x'),
            WaveTerm(cycles=6, time_rate=0.035, amplitude=1.0, func='cos', axes='y'),
        ),
        particle_chance=0.04,
        particle_alpha=40,
        particle_size=(0.5, 0.5),
        particle_jitter=0.5,
    ),
    FACE_MESH: ConnectionStyle(
        max_dist=120,
        exponent=1.5,
        layers=1,
        alpha_max=30,
        weight=0.2,
        step=0.05,
        waves=(WaveTerm(cycles=2, time_rate=0.02, amplitude=0.5),),
    ),
    FINGER_WEB: ConnectionStyle(
        max_dist=200,
        layers=4,
        alpha_max=100,
        weight=0.3,
        weight_per_layer=0.2,
        step=0.02,
        waves=(
            WaveTerm(cycles=3, time_rate=0.1, amplitude=2.0, func='sin', axes='x'),
            WaveTerm(cycles=5, time_rate=0.08, amplitude=1.5, func='cos', axes='xy'),
            WaveTerm(cycles=7, time_rate=0.15, amplitude=1.0, func='sin', axes='xy'),
        ),
        path_offsets=(-1.0, -0.5, 0.0, 0.5, 1.0),
    ),
    HAND_BRIDGE: ConnectionStyle(
        max_dist=250,
        layers=5,
        alpha_max=150,
        weight=0.4,
        weight_per_layer=0.15,
        step=0.02,
        waves=(
            WaveTerm(cycles=4, time_rate=0.1, amplitude=3.0, func='sin', axes='x'),
            WaveTerm(cycles=6, time_rate=0.07, amplitude=2.0, func='cos', axes='xy'),
            WaveTerm(cycles=8, time_rate=0.12, amplitude=1.0, func='sin', axes='xy'),
            WaveTerm(cycles=3, time_rate=0.05, amplitude=4.0, func='cos', axes='y'),
        ),
        path_offsets=(-2.0, -1.0, 0.0, 1.0, 2.0),
        spiral=True,
    ),
}

DFLT_HAND_BODY_TARGETS = ('chest', 'hips', 'left_hip', 'right_hip', 'left_ankle', 'right_ankle')


@dataclass(frozen=True)
class ConnectionConfig:
    styles: Dict[str, ConnectionStyle] = field(
        default_factory=lambda: dict(DFLT_CONNECTION_STYLES)
    )
    enabled: Tuple[str, ...] = CONNECTION_FAMILIES
    body_targets: Tuple[str, ...] = DFLT_HAND_BODY_TARGETS
    body_hand_points: Tuple[int, ...] = (HandLandmark.WRIST,)
    face_hand_points: Tuple[int, ...] = (HandLandmark.WRIST,) + FINGER_TIPS
    face_points: Tuple[int, ...] = FACE_KEY_POINTS
    face_network_points: Tuple[int, ...] = FACE_NETWORK_POINTS
    finger_tips: Tuple[int, ...] = FINGER_TIPS
    draw_fingertips: bool = True
    glow_sizes: Tuple[float, ...] = (15, 12, 9, 6, 3)
    glow_alpha_max: float = 100.0
    core_size: float = 3.0
    core_alpha: float = 200.0
    color: Tuple[int, int, int] = (255, 255, 255)

    def __post_init__(self):
        unknown = set(self.enabled) - set(self.styles)
        if unknown:
            raise ValueError(f"No style for connection families: {sorted(unknown)}")


# -------------------------------------------------------------------------------
# Interaction and voices
# -------------------------------------------------------------------------------

SYNTH = 'synth'
BASS = 'bass'
HIHAT = 'hihat'
DRONE = 'drone'

VOICES = (SYNTH, BASS, HIHAT, DRONE)

DFLT_BPM = 120


def note_duration(note_value: int, bpm: float = DFLT_BPM) -> float:
    """
    Seconds of a ``1/note_value`` note in 4/4 at ``bpm``.

    >>> note_duration(2), note_duration(1), note_duration(16)
    (1.0, 2.0, 0.125)
    """
    return 4 * 60.0 / bpm / note_value


@dataclass(frozen=True)
class VoiceConfig:
    min_interval: float
    base_amplitude: float
    duration: float = 0.0


DFLT_VOICE_CONFIGS = {
    SYNTH: VoiceConfig(min_interval=0.1, base_amplitude=0.3, duration=note_duration(2)),
    BASS: VoiceConfig(min_interval=0.2, base_amplitude=0.7, duration=note_duration(1)),
    HIHAT: VoiceConfig(min_interval=0.05, base_amplitude=1.0, duration=note_duration(16)),
    DRONE: VoiceConfig(min_interval=4.0, base_amplitude=0.1),
}


@dataclass(frozen=True)
class InteractionConfig:
    velocity_threshold: float = 20.0
    proximity_change_threshold: float = 0.15
    idle_timeout: float = 5.0
    rise_rate: float = 0.2
    fade_rate: float = 0.05
    silence_floor: float = 0.01
    voices: Dict[str, VoiceConfig] = field(
        default_factory=lambda: dict(DFLT_VOICE_CONFIGS)
    )
    synth_velocity: float = 15.0
    synth_note_range: Tuple[int, int] = (60, 72)
    bass_proximity: float = 0.3
    bass_note_range: Tuple[int, int] = (36, 48)
    hihat_every: int = 16
    hihat_velocity_range: Tuple[float, float] = (0.05, 0.2)
    hihat_velocity_span: float = 30.0
    drone_root_range: Tuple[int, int] = (48, 60)
    drone_default_root: int = 48
    drone_intervals: Tuple[int, ...] = (0, 7, 12, 16)

    def __post_init__(self):
        missing = set(VOICES) - set(self.voices)
        if missing:
            raise ValueError(f"Missing voice configs: {sorted(missing)}")
        if self.hihat_every < 1:
            raise ValueError(f"hihat_every must be at least 1, was {self.hihat_every}")


# -------------------------------------------------------------------------------
# All of it
# -------------------------------------------------------------------------------


@dataclass(frozen=True)
class ProximaConfig:
    proximity: ProximityConfig = field(default_factory=ProximityConfig)
    connections: ConnectionConfig = field(default_factory=ConnectionConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    min_visibility: float = 0.0


default_config = ProximaConfig()
