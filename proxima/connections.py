"""
Connection renderer: turns landmark pairs into glowing, wavy lines.

For every candidate pair in a connection family (hand to body, hand to face,
face to face, fingertip to fingertip, and fingertip across hands) the renderer
measures the screen distance, and only if it is under the family's ``max_dist``
emits layered polylines whose brightness, width and wave distortion follow the
pair's intensity, the proximity state and the complexity level. Particles are
sprinkled along the connections at random.

The renderer only produces draw commands; ``proxima.display`` draws them.
"""

import math
import random
from dataclasses import dataclass
from itertools import combinations
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from proxima.config import (
    FACE_MESH,
    FINGER_WEB,
    HAND_BODY,
    HAND_BRIDGE,
    HAND_FACE,
    ConnectionConfig,
    ConnectionStyle,
)
from proxima.landmarks import LandmarkSnapshot, Point, ReferencePoints, ScreenMapper
from proxima.proximity import ProximityReading
from proxima.util import clamp, clamped_map, distance, lerp, linear_map

RGBA = Tuple[int, int, int, float]

# -------------------------------------------------------------------------------
# Draw commands
# -------------------------------------------------------------------------------


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: RGBA
    weight: float


@dataclass(frozen=True)
class Circle:
    x: float
    y: float
    diameter: float
    fill: RGBA


@dataclass(frozen=True)
class Polyline:
    points: Tuple[Point, ...]
    stroke: RGBA
    weight: float
    family: Optional[str] = None


DrawCommand = Union[Line, Circle, Polyline]


# -------------------------------------------------------------------------------
# Intensity and shape
# -------------------------------------------------------------------------------


def connection_intensity(d, max_dist, *, gain=1.0, exponent=1.0):
    """
    Brightness of a connection of length ``d``: 1 at zero length, 0 at ``max_dist``,
    scaled by ``gain`` and reshaped by a power curve.

    >>> connection_intensity(0, 200)
    1.0
    >>> connection_intensity(100, 200)
    0.5
    >>> round(connection_intensity(100, 200, exponent=2), 4)
    0.25
    >>> connection_intensity(250, 200)
    0.0
    """
    intensity = clamp(linear_map(d, 0, max_dist, 1, 0), 0.0, 1.0)
    return float(clamp(intensity * gain, 0.0, 1.0) ** exponent)


def complexity_layers(complexity, complexity_range=(1, 6), layer_range=(1, 3)):
    """
    How many layers (and harmonic waves) a complexity level gets.

    >>> [complexity_layers(c) for c in range(1, 7)]
    [1, 1, 1, 2, 2, 3]
    """
    lo, hi = complexity_range
    return int(math.floor(linear_map(complexity, lo, hi, *layer_range)))


def frange(step) -> List[float]:
    """
    Sample positions ``0, step, 2*step, ... <= 1`` along a segment.

    >>> frange(0.25)
    [0.0, 0.25, 0.5, 0.75, 1.0]
    """
    n = int(math.floor(1 / step + 1e-9))
    return [i * step for i in range(n + 1)]


_wave_funcs = {'sin': math.sin, 'cos': math.cos}


def wavy_path(
    p1: Point,
    p2: Point,
    *,
    style: ConnectionStyle,
    intensity: float,
    frame: int,
    n_harmonics: int = 0,
    offset: float = 0.0,
) -> Tuple[Point, ...]:
    """Points of a segment from ``p1`` to ``p2`` displaced by the style's waves."""
    points = []
    for t in frange(style.step):
        x = lerp(p1[0], p2[0], t)
        y = lerp(p1[1], p2[1], t)
        dx = dy = 0.0
        for wave in style.waves:
            v = (
                _wave_funcs[wave.func](t * math.pi * wave.cycles + frame * wave.time_rate)
                * wave.amplitude
                * intensity
            )
            if 'x' in wave.axes:
                dx += v
            if 'y' in wave.axes:
                dy += v
        for w in range(1, n_harmonics + 1):
            v = (
                math.sin(t * math.pi * (2 * w) + frame * style.harmonic_time_rate)
                * (style.harmonic_amplitude_base + w)
                * intensity
            )
            dx += v
            dy += v
        if style.spiral:
            s = math.sin(t * math.pi * 2) * offset * intensity
            dx += s
            dy += s
        else:
            dx += offset
            dy += offset
        points.append((x + dx, y + dy))
    return tuple(points)


# -------------------------------------------------------------------------------
# Renderer
# -------------------------------------------------------------------------------


class ConnectionRenderer:
    """
    Produces the draw commands of one frame.

    Args:
        config: Connection families, their styles and point tables.
        rng: Random source for particles (pass a seeded ``random.Random`` for
            reproducible output).
    """

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        *,
        rng: Optional[random.Random] = None,
    ):
        self.config = config if config is not None else ConnectionConfig()
        self.rng = rng or random.Random()

    def render(
        self,
        snapshot: LandmarkSnapshot,
        reading: ProximityReading,
        mapper: ScreenMapper,
        frame: int,
    ) -> List[DrawCommand]:
        commands: List[DrawCommand] = []
        for family, p1, p2, gain_proximity in self.candidate_pairs(
            snapshot, reading, mapper
        ):
            commands.extend(
                self.connect(
                    family,
                    p1,
                    p2,
                    proximity=reading.proximity,
                    gain_proximity=gain_proximity,
                    complexity=reading.complexity,
                    frame=frame,
                )
            )
        if self.config.draw_fingertips:
            commands.extend(self.fingertip_glow(snapshot, mapper))
        return commands

    def is_open(self, family: str, proximity: float) -> bool:
        """Whether a family is evaluated at all this frame."""
        if family not in self.config.enabled:
            return False
        min_proximity = self.config.styles[family].min_proximity
        return min_proximity <= 0 or proximity > min_proximity

    def candidate_pairs(
        self, snapshot: LandmarkSnapshot, reading: ProximityReading, mapper: ScreenMapper
    ) -> Iterator[Tuple[str, Point, Point, float]]:
        """
        Yield ``(family, p1, p2, gain_proximity)`` for every pair worth measuring.

        ``gain_proximity`` is the proximity that scales the family's intensity:
        the proximity state for body connections, the face sample for face ones.
        """
        config = self.config
        proximity = reading.proximity
        hands = snapshot.hands

        if hands and snapshot.pose is not None and self.is_open(HAND_BODY, proximity):
            references = ReferencePoints.from_pose(snapshot.pose)
            targets = references.on_screen(config.body_targets, mapper)
            for target in targets.values():
                for hand in hands:
                    for anchor in mapper.points(hand, config.body_hand_points).values():
                        yield HAND_BODY, target, anchor, proximity

        if snapshot.face is not None:
            if hands and self.is_open(HAND_FACE, proximity):
                face_sample = reading.face_sample or 0.0
                face_points = mapper.points(snapshot.face, config.face_points)
                for face_point in face_points.values():
                    for hand in hands:
                        anchors = mapper.points(hand, config.face_hand_points)
                        for anchor in anchors.values():
                            yield HAND_FACE, face_point, anchor, face_sample

            if self.is_open(FACE_MESH, proximity):
                network = mapper.points(snapshot.face, config.face_network_points)
                for p1, p2 in combinations(network.values(), 2):
                    yield FACE_MESH, p1, p2, proximity

        if self.is_open(FINGER_WEB, proximity):
            for hand in hands:
                tips = mapper.points(hand, config.finger_tips)
                for p1, p2 in combinations(tips.values(), 2):
                    yield FINGER_WEB, p1, p2, proximity

        if len(hands) >= 2 and self.is_open(HAND_BRIDGE, proximity):
            left = mapper.points(hands[0], config.finger_tips)
            right = mapper.points(hands[1], config.finger_tips)
            for idx in config.finger_tips:
                if idx in left and idx in right:
                    yield HAND_BRIDGE, left[idx], right[idx], proximity

    def max_dist(self, family: str, proximity: float) -> float:
        style = self.config.styles[family]
        return style.max_dist + style.max_dist_per_proximity * proximity

    def connect(
        self,
        family: str,
        p1: Point,
        p2: Point,
        *,
        proximity: float,
        gain_proximity: float,
        complexity: int,
        frame: int,
    ) -> List[DrawCommand]:
        """Draw commands for one pair, or none if it is too long."""
        style = self.config.styles[family]
        d = distance(p1, p2)
        max_dist = self.max_dist(family, proximity)
        if d >= max_dist:
            return []

        intensity = connection_intensity(
            d,
            max_dist,
            gain=style.gain + style.gain_per_proximity * gain_proximity,
            exponent=style.exponent,
        )
        by_complexity = complexity_layers(complexity)
        n_layers = style.layers if style.layers is not None else by_complexity
        n_harmonics = by_complexity if style.harmonic_amplitude_base else 0
        r, g, b = self.config.color

        commands: List[DrawCommand] = []
        for k in range(n_layers):
            alpha = linear_map(k, 0, n_layers, style.alpha_max * intensity, 0)
            weight = (
                style.weight
                + style.weight_per_proximity * proximity
                + style.weight_per_layer * (n_layers - 1 - k)
            )
            for offset in style.path_offsets:
                points = wavy_path(
                    p1,
                    p2,
                    style=style,
                    intensity=intensity,
                    frame=frame,
                    n_harmonics=n_harmonics,
                    offset=offset,
                )
                commands.append(Polyline(points, (r, g, b, alpha), weight, family))

        particle = self.particle(style, p1, p2, intensity, proximity, complexity)
        if particle is not None:
            commands.append(particle)
        return commands

    def particle(self, style, p1, p2, intensity, proximity, complexity) -> Optional[Circle]:
        if style.particle_chance_range is not None:
            chance = clamped_map(complexity, 1, 6, *style.particle_chance_range)
        else:
            chance = style.particle_chance
        if chance <= 0 or self.rng.random() >= chance * intensity:
            return None
        rng = self.rng
        t = rng.random()
        jitter = style.particle_jitter
        x = lerp(p1[0], p2[0], t) + rng.uniform(-jitter, jitter)
        y = lerp(p1[1], p2[1], t) + rng.uniform(-jitter, jitter)
        lo, hi = style.particle_size
        size = rng.uniform(lo, hi + style.particle_size_per_proximity * proximity)
        r, g, b = self.config.color
        return Circle(x, y, size, (r, g, b, style.particle_alpha * intensity))

    def fingertip_glow(
        self, snapshot: LandmarkSnapshot, mapper: ScreenMapper
    ) -> List[Circle]:
        """A bright core and a soft glow on every fingertip."""
        config = self.config
        r, g, b = config.color
        glow_max = max(config.glow_sizes) if config.glow_sizes else 0
        circles = []
        for hand in snapshot.hands:
            for x, y in mapper.points(hand, config.finger_tips).values():
                circles.append(Circle(x, y, config.core_size, (r, g, b, config.core_alpha)))
                for size in config.glow_sizes:
                    alpha = linear_map(size, glow_max, 0, 0, config.glow_alpha_max)
                    circles.append(Circle(x, y, size, (r, g, b, alpha)))
        return circles


def commands_of_family(commands: Sequence[DrawCommand], family: str) -> List[Polyline]:
    """The polylines a given connection family produced."""
    return [c for c in commands if isinstance(c, Polyline) and c.family == family]
