import logging
from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip('cv2')
pytest.importorskip('mediapipe')

from proxima import video_features
from proxima.landmarks import EMPTY_SNAPSHOT
from proxima.video_features import LandmarkDetector, face_set, hand_sets, pose_set


def landmark_list(points, visibility=None):
    return SimpleNamespace(
        landmark=[SimpleNamespace(x=x, y=y, z=0.0, visibility=visibility) for x, y in points]
    )


def labels(*names):
    return [SimpleNamespace(classification=[SimpleNamespace(label=n)]) for n in names]


HAND = landmark_list([(0.5, 0.5)] * 21, visibility=0.0)


def test_at_most_two_hands_are_kept():
    detection = SimpleNamespace(
        multi_hand_landmarks=[HAND, HAND, HAND],
        multi_handedness=labels('Left', 'Right', 'Left'),
    )
    hands = hand_sets(detection)
    assert len(hands) == 2
    assert [h.handedness for h in hands] == ['Left', 'Right']
    assert all(h.kind == 'hand' for h in hands)


def test_missing_handedness_labels_read_as_none():
    detection = SimpleNamespace(multi_hand_landmarks=[HAND, HAND], multi_handedness=labels('Right'))
    assert [h.handedness for h in hand_sets(detection)] == ['Right', None]

    detection = SimpleNamespace(multi_hand_landmarks=[HAND], multi_handedness=None)
    assert hand_sets(detection)[0].handedness is None


def test_hand_visibility_is_ignored():
    # MediaPipe reports 0 visibility for hand points; they must still count
    detection = SimpleNamespace(multi_hand_landmarks=[HAND], multi_handedness=None)
    (hand,) = hand_sets(detection, min_visibility=0.5)
    assert hand.get(0) is not None


def test_no_hands_give_an_empty_tuple():
    assert hand_sets(SimpleNamespace(multi_hand_landmarks=None, multi_handedness=None)) == ()


def test_pose_points_below_min_visibility_are_absent():
    pose = landmark_list([(0.5, 0.5)] * 33, visibility=0.3)
    pose.landmark[11].visibility = 0.9
    result = pose_set(SimpleNamespace(pose_landmarks=pose), min_visibility=0.5)
    assert result.kind == 'pose'
    assert result.get(11) is not None
    assert result.get(12) is None

    assert pose_set(SimpleNamespace(pose_landmarks=pose)).get(12) is not None
    assert pose_set(SimpleNamespace(pose_landmarks=None)) is None


def test_face_set_takes_the_first_face():
    first = landmark_list([(0.1, 0.2)] * 468)
    second = landmark_list([(0.9, 0.9)] * 468)
    face = face_set(SimpleNamespace(multi_face_landmarks=[first, second]))
    assert face.kind == 'face'
    assert (face.get(0).x, face.get(0).y) == (0.1, 0.2)
    assert face_set(SimpleNamespace(multi_face_landmarks=None)) is None


class FakeSolution:
    def __init__(self, result, **kwargs):
        self.result = result
        self.closed = False

    def process(self, img):
        return self.result

    def close(self):
        self.closed = True


def fake_mediapipe(hands_factory):
    return SimpleNamespace(
        solutions=SimpleNamespace(
            hands=SimpleNamespace(Hands=hands_factory),
            pose=SimpleNamespace(
                Pose=lambda **kw: FakeSolution(SimpleNamespace(pose_landmarks=None))
            ),
            face_mesh=SimpleNamespace(
                FaceMesh=lambda **kw: FakeSolution(SimpleNamespace(multi_face_landmarks=None))
            ),
        )
    )


FRAME = np.zeros((48, 64, 3), dtype=np.uint8)


def test_detector_builds_a_snapshot_from_every_solution(monkeypatch):
    hands_result = SimpleNamespace(multi_hand_landmarks=[HAND], multi_handedness=labels('Left'))
    monkeypatch.setattr(
        video_features, 'mp', fake_mediapipe(lambda **kw: FakeSolution(hands_result))
    )
    with LandmarkDetector() as detector:
        assert detector.ready
        snapshot = detector.detect(FRAME, timestamp=1.5)
        hands = detector.hands
    assert snapshot.timestamp == 1.5
    assert snapshot.hands_detected and not snapshot.body_detected
    assert snapshot.hands[0].handedness == 'Left'
    assert hands.closed and not detector.ready


def test_detector_init_failure_is_logged_once(monkeypatch, caplog):
    def broken(**kwargs):
        raise RuntimeError("no model file")

    monkeypatch.setattr(video_features, 'mp', fake_mediapipe(broken))
    with caplog.at_level(logging.DEBUG, logger='proxima.video_features'):
        detector = LandmarkDetector()
        results = [detector.detect(FRAME) for _ in range(3)]

    assert not detector.ready
    assert all(r is EMPTY_SNAPSHOT for r in results)
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "no model file" in errors[0].getMessage()
