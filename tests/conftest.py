"""Fake landmark snapshots, a recording audio backend and a settable clock."""

import pytest

from proxima.landmarks import LandmarkSet, LandmarkSnapshot, ScreenMapper
from proxima.proximity import ProximityReading
from proxima.util import (
    FINGER_TIPS,
    N_FACE_LANDMARKS,
    N_HAND_LANDMARKS,
    N_POSE_LANDMARKS,
    PoseLandmark,
)

# 1000x1000 and unmirrored, so that pixels are normalized coordinates times 1000
WIDTH = HEIGHT = 1000


def px(x, y):
    """Normalized coordinates of a pixel position."""
    return (x / WIDTH, y / HEIGHT)


def make_hand(tips=(500, 500), wrist=None, *, handedness=None):
    """
    A hand with every fingertip at ``tips`` (one pixel position for all, or a
    dict of tip index to position). Other landmarks sit at the wrist.
    """
    wrist = wrist or (tips if isinstance(tips, tuple) else (500, 500))
    points = [px(*wrist)] * N_HAND_LANDMARKS
    if isinstance(tips, dict):
        for idx, pos in tips.items():
            points[idx] = px(*pos)
    else:
        for idx in FINGER_TIPS:
            points[idx] = px(*tips)
    return LandmarkSet.from_points(points, kind='hand', handedness=handedness)


def make_pose(
    chest=(500, 300),
    hips=(500, 900),
    nose=(500, 100),
    ankles=(500, 5000),
):
    """A pose with both shoulders at ``chest``, both hips at ``hips``."""
    points = [px(-5000, -5000)] * N_POSE_LANDMARKS
    points[PoseLandmark.NOSE] = px(*nose)
    points[PoseLandmark.LEFT_SHOULDER] = px(*chest)
    points[PoseLandmark.RIGHT_SHOULDER] = px(*chest)
    points[PoseLandmark.LEFT_HIP] = px(*hips)
    points[PoseLandmark.RIGHT_HIP] = px(*hips)
    points[PoseLandmark.LEFT_ANKLE] = px(*ankles)
    points[PoseLandmark.RIGHT_ANKLE] = px(*ankles)
    return LandmarkSet.from_points(points, kind='pose')


def make_face(at=(500, 150)):
    """A face mesh collapsed on a single point."""
    return LandmarkSet.from_points([px(*at)] * N_FACE_LANDMARKS, kind='face')


def make_reading(proximity=0.0, complexity=1, **kwargs):
    return ProximityReading(
        proximity=proximity,
        previous=kwargs.pop('previous', proximity),
        complexity=complexity,
        **kwargs,
    )


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


class RecordingAudioBackend:
    """Records every call the engine makes."""

    def __init__(self):
        self.calls = []

    def trigger_note(self, voice, frequency, duration, amplitude):
        self.calls.append(('trigger_note', voice, frequency, duration, amplitude))

    def trigger_chord_attack(self, voice, frequencies, amplitude):
        self.calls.append(('trigger_chord_attack', voice, tuple(frequencies), amplitude))

    def release_all(self, voice):
        self.calls.append(('release_all', voice))

    def set_master_gain(self, volume):
        self.calls.append(('set_master_gain', volume))

    def named(self, method):
        return [c for c in self.calls if c[0] == method]


class FailingAudioBackend(RecordingAudioBackend):
    """Fails on every note; everything else is recorded."""

    def trigger_note(self, voice, frequency, duration, amplitude):
        super().trigger_note(voice, frequency, duration, amplitude)
        raise RuntimeError(f"{voice} voice is broken")


@pytest.fixture
def mapper():
    return ScreenMapper(WIDTH, HEIGHT, mirror=False)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def audio():
    return RecordingAudioBackend()


@pytest.fixture
def body_and_hand():
    """Fingertips 50px right of the chest."""
    return LandmarkSnapshot(hands=(make_hand(tips=(550, 300)),), pose=make_pose())
