"""
Proximity engine: how close are the hands to the body and face?

Each tick, the fingertips of every detected hand are measured (in screen space)
against the body reference points and a curated subset of the face mesh. The
closest distances become body and face samples in [0, 1], which are smoothed
into a persistent proximity state. The proximity state in turn gives a discrete
complexity level that the renderer uses to decide how dense to draw.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from proxima.config import ProximityConfig
from proxima.landmarks import (
    LandmarkSnapshot,
    ReferencePoints,
    ScreenMapper,
    min_distance,
)
from proxima.util import clamp, clamped_map, lerp, linear_map

logger = logging.getLogger(__name__)


@dataclass
class ProximityState:
    """Smoothed proximity, persisted across ticks. Always within [0, 1]."""

    value: float = 0.0
    previous: float = 0.0


@dataclass(frozen=True)
class ProximityReading:
    """What the proximity engine computed for one tick."""

    proximity: float
    previous: float
    complexity: int
    body_sample: Optional[float] = None
    face_sample: Optional[float] = None
    min_distance_to_body: float = float('inf')
    min_distance_to_face: float = float('inf')
    reset: bool = False

    @property
    def change(self) -> float:
        return abs(self.proximity - self.previous)


def complexity_level(proximity: float, complexity_range=(1, 6)) -> int:
    """
    Discrete visual density tier for a proximity value.

    >>> [complexity_level(p) for p in (0, 0.1, 0.5, 0.95, 1)]
    [1, 2, 4, 6, 6]
    """
    lo, hi = complexity_range
    # Halves round up
    level = int(math.floor(linear_map(clamp(proximity), 0, 1, lo, hi) + 0.5))
    return int(clamp(level, lo, hi))


def proximity_sample(min_dist: float, max_dist: float) -> Optional[float]:
    """
    Map a closest distance to a proximity sample: 0 px is 1, ``max_dist`` or more is 0.

    No measurable distance (``inf``) gives no sample.

    >>> proximity_sample(50, 400)
    0.875
    >>> proximity_sample(500, 400)
    0
    >>> proximity_sample(float('inf'), 400) is None
    True
    """
    if min_dist == float('inf'):
        return None
    return clamped_map(min_dist, 0, max_dist, 1, 0)


def combine_samples(body: Optional[float], face: Optional[float]) -> Optional[float]:
    """
    >>> combine_samples(0.25, 0.75)
    0.5
    >>> combine_samples(0.2, None)
    0.2
    >>> combine_samples(None, 0.9) is None
    True
    """
    if body is None:
        # A face sample alone never moves the proximity state
        return None
    if face is None:
        return body
    return (body + face) / 2


class ProximityEngine:
    """
    Owns the proximity state and updates it once per tick.

    >>> from proxima.landmarks import LandmarkSnapshot
    >>> engine = ProximityEngine()
    >>> engine.state.value = 0.7
    >>> engine.update(LandmarkSnapshot(), ScreenMapper(640, 480)).proximity
    0.0
    """

    def __init__(self, config: Optional[ProximityConfig] = None):
        self.config = config if config is not None else ProximityConfig()
        self.state = ProximityState()

    def reset(self):
        self.state = ProximityState()

    def measure(self, snapshot: LandmarkSnapshot, mapper: ScreenMapper):
        """
        Closest fingertip distances to the body references and to the face.

        Returns ``(min_distance_to_body, min_distance_to_face)``, either of which
        is ``inf`` when there is nothing to measure.
        """
        config = self.config
        tips = [
            p
            for hand in snapshot.hands
            for p in mapper.points(hand, config.finger_tips).values()
        ]
        if not tips:
            return float('inf'), float('inf')

        references = ReferencePoints.from_pose(snapshot.pose)
        body_targets = references.on_screen(config.references, mapper).values()
        to_body = min_distance(tips, body_targets)

        face_targets = mapper.points(snapshot.face, config.face_points).values()
        to_face = min_distance(tips, face_targets)
        return to_body, to_face

    def update(self, snapshot: LandmarkSnapshot, mapper: ScreenMapper) -> ProximityReading:
        config = self.config
        state = self.state
        state.previous = state.value

        if not snapshot.any_detected:
            # Losing every tracked body is a hard reset, not a decay
            if state.value > 0:
                logger.debug("Nothing detected: proximity %.3f reset to 0", state.value)
            state.value = 0.0
            return ProximityReading(
                proximity=0.0,
                previous=state.previous,
                complexity=complexity_level(0.0, config.complexity_range),
                reset=True,
            )

        to_body, to_face = self.measure(snapshot, mapper)
        body_sample = proximity_sample(to_body, config.max_proximity_dist)
        face_sample = proximity_sample(to_face, config.max_face_dist)
        combined = combine_samples(body_sample, face_sample)

        if combined is not None:
            state.value = clamp(lerp(state.value, combined, config.smoothing))

        return ProximityReading(
            proximity=state.value,
            previous=state.previous,
            complexity=complexity_level(state.value, config.complexity_range),
            body_sample=body_sample,
            face_sample=face_sample,
            min_distance_to_body=to_body,
            min_distance_to_face=to_face,
        )
