"""Landmark types, screen mapping and body reference points."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

from proxima.util import (
    FINGER_TIPS,
    HandLandmark,
    PoseLandmark,
    distance,
    linear_map,
)

Point = Tuple[float, float]

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------


@dataclass(frozen=True)
class Landmark:
    """A single tracked point, normalized to the source frame (``x, y`` in [0, 1])."""

    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None


@dataclass(frozen=True)
class LandmarkSet:
    """
    An ordered sequence of landmarks with a fixed semantic indexing.

    ``get`` returns ``None`` for indices the detector did not produce, and for
    points whose visibility is below ``min_visibility``. A missing point is
    never stood in for by ``(0, 0)``.

    >>> hand = LandmarkSet.from_points([(0.5, 0.5)] * 21, kind='hand')
    >>> hand.get(8)
    Landmark(x=0.5, y=0.5, z=None, visibility=None)
    >>> hand.get(40) is None
    True
    """

    points: Tuple[Landmark, ...]
    kind: str = 'hand'
    handedness: Optional[str] = None
    min_visibility: float = 0.0

    @classmethod
    def from_points(
        cls,
        points: Iterable[Sequence[float]],
        *,
        kind: str = 'hand',
        handedness: Optional[str] = None,
        min_visibility: float = 0.0,
    ):
        """Make a set from ``(x, y)``, ``(x, y, z)`` or ``(x, y, z, visibility)`` tuples."""
        return cls(
            tuple(Landmark(*p) for p in points),
            kind=kind,
            handedness=handedness,
            min_visibility=min_visibility,
        )

    def __len__(self):
        return len(self.points)

    def __iter__(self) -> Iterator[Landmark]:
        return iter(self.points)

    def get(self, idx: int) -> Optional[Landmark]:
        if not 0 <= idx < len(self.points):
            return None
        lm = self.points[idx]
        if (
            self.min_visibility > 0
            and lm.visibility is not None
            and lm.visibility < self.min_visibility
        ):
            return None
        return lm

    # Named accessors --------------------------------------------------------

    @property
    def wrist(self) -> Optional[Landmark]:
        return self.get(HandLandmark.WRIST)

    @property
    def index_tip(self) -> Optional[Landmark]:
        return self.get(HandLandmark.INDEX_FINGER_TIP)

    def fingertips(self) -> Dict[int, Landmark]:
        """The present fingertips, keyed by their hand landmark index."""
        tips = {}
        for idx in FINGER_TIPS:
            lm = self.get(idx)
            if lm is not None:
                tips[idx] = lm
        return tips


@dataclass(frozen=True)
class LandmarkSnapshot:
    """
    Everything the detectors found in one video frame.

    Treated as an atomic snapshot: the tick reads it once and never sees a
    partially updated result.
    """

    hands: Tuple[LandmarkSet, ...] = ()
    pose: Optional[LandmarkSet] = None
    face: Optional[LandmarkSet] = None
    timestamp: Optional[float] = None

    def __post_init__(self):
        # An empty set is "no data", not a set of zero points
        object.__setattr__(self, 'hands', tuple(h for h in self.hands if len(h)))
        if self.pose is not None and not len(self.pose):
            object.__setattr__(self, 'pose', None)
        if self.face is not None and not len(self.face):
            object.__setattr__(self, 'face', None)

    @property
    def hands_detected(self) -> bool:
        return bool(self.hands)

    @property
    def body_detected(self) -> bool:
        return self.pose is not None

    @property
    def face_detected(self) -> bool:
        return self.face is not None

    @property
    def any_detected(self) -> bool:
        return self.hands_detected or self.body_detected or self.face_detected


EMPTY_SNAPSHOT = LandmarkSnapshot()


# -------------------------------------------------------------------------------
# Screen mapping
# -------------------------------------------------------------------------------


@dataclass(frozen=True)
class ScreenMapper:
    """
    Maps normalized landmark coordinates to display pixels.

    The camera feed is shown mirrored, so by default the horizontal axis is
    flipped.

    >>> mapper = ScreenMapper(640, 480)
    >>> mapper(Landmark(0.25, 0.5))
    (480.0, 240.0)
    >>> ScreenMapper(640, 480, mirror=False)(Landmark(0.25, 0.5))
    (160.0, 240.0)
    """

    width: float
    height: float
    mirror: bool = True

    def __call__(self, lm: Landmark) -> Point:
        if self.mirror:
            x = linear_map(lm.x, 1, 0, 0, self.width)
        else:
            x = linear_map(lm.x, 0, 1, 0, self.width)
        y = linear_map(lm.y, 0, 1, 0, self.height)
        return (x, y)

    def point(self, landmark_set: Optional[LandmarkSet], idx: int) -> Optional[Point]:
        """Screen position of ``landmark_set[idx]``, or ``None`` if it is absent."""
        if landmark_set is None:
            return None
        lm = landmark_set.get(idx)
        if lm is None:
            return None
        return self(lm)

    def points(self, landmark_set: Optional[LandmarkSet], indices: Iterable[int]):
        """Screen positions of the present ``indices``, keyed by index."""
        out = {}
        if landmark_set is None:
            return out
        for idx in indices:
            p = self.point(landmark_set, idx)
            if p is not None:
                out[idx] = p
        return out


# -------------------------------------------------------------------------------
# Reference points
# -------------------------------------------------------------------------------


def _mean_of(pose: LandmarkSet, indices) -> Optional[Landmark]:
    pts = [pose.get(i) for i in indices]
    if any(p is None for p in pts):
        return None
    n = len(pts)
    return Landmark(sum(p.x for p in pts) / n, sum(p.y for p in pts) / n)


def chest(pose: LandmarkSet) -> Optional[Landmark]:
    """Midpoint of the shoulders."""
    return _mean_of(pose, (PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER))


def hip_center(pose: LandmarkSet) -> Optional[Landmark]:
    """Midpoint of the hips."""
    return _mean_of(pose, (PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP))


def body_center(pose: LandmarkSet) -> Optional[Landmark]:
    """Mean of nose, shoulders and hips."""
    return _mean_of(
        pose,
        (
            PoseLandmark.NOSE,
            PoseLandmark.LEFT_SHOULDER,
            PoseLandmark.RIGHT_SHOULDER,
            PoseLandmark.LEFT_HIP,
            PoseLandmark.RIGHT_HIP,
        ),
    )


reference_point_funcs = {
    'chest': chest,
    'hips': hip_center,
    'body_center': body_center,
    'left_hip': lambda pose: pose.get(PoseLandmark.LEFT_HIP),
    'right_hip': lambda pose: pose.get(PoseLandmark.RIGHT_HIP),
    'left_ankle': lambda pose: pose.get(PoseLandmark.LEFT_ANKLE),
    'right_ankle': lambda pose: pose.get(PoseLandmark.RIGHT_ANKLE),
}


@dataclass(frozen=True)
class ReferencePoints:
    """
    Body reference points for one frame, in normalized coordinates.

    A point is ``None`` when any of its constituent landmarks is missing.
    """

    points: Dict[str, Optional[Landmark]] = field(default_factory=dict)

    @classmethod
    def from_pose(cls, pose: Optional[LandmarkSet]):
        if pose is None:
            return cls({name: None for name in reference_point_funcs})
        return cls({name: func(pose) for name, func in reference_point_funcs.items()})

    def __getitem__(self, name) -> Optional[Landmark]:
        return self.points.get(name)

    def defined(self, names: Iterable[str]) -> Dict[str, Landmark]:
        """The named points that are defined this frame."""
        out = {}
        for name in names:
            p = self.points.get(name)
            if p is not None:
                out[name] = p
        return out

    def on_screen(self, names: Iterable[str], mapper: ScreenMapper) -> Dict[str, Point]:
        return {name: mapper(p) for name, p in self.defined(names).items()}


def min_distance(sources: Iterable[Point], targets: Iterable[Point]) -> float:
    """
    Smallest distance between any source and any target point.

    ``inf`` when either side is empty.

    >>> min_distance([(0, 0), (10, 0)], [(13, 4)])
    5.0
    >>> min_distance([], [(1, 1)])
    inf
    """
    targets = list(targets)
    best = float('inf')
    for s in sources:
        for t in targets:
            d = distance(s, t)
            if d < best:
                best = d
    return best
