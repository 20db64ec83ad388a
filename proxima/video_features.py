"""Landmark detection with MediaPipe: hands, body pose and face mesh."""

import logging
from typing import Optional

import cv2
import mediapipe as mp

from proxima.landmarks import EMPTY_SNAPSHOT, LandmarkSet, LandmarkSnapshot

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------
# Conversion of MediaPipe results
# -------------------------------------------------------------------------------


def _landmark_tuples(landmark_list, *, with_visibility=False):
    for lm in landmark_list.landmark:
        # Only pose landmarks carry a meaningful visibility
        yield (lm.x, lm.y, lm.z, lm.visibility if with_visibility else None)


def hand_sets(hand_detection, *, min_visibility=0.0):
    """
    Hand ``LandmarkSet``s (at most two) from a MediaPipe hands result.

    Handedness labels are taken from ``multi_handedness`` when present.
    """
    if not hand_detection.multi_hand_landmarks:
        return ()
    handedness = hand_detection.multi_handedness or []
    hands = []
    for i, hand_landmarks in enumerate(hand_detection.multi_hand_landmarks[:2]):
        label = None
        if i < len(handedness) and handedness[i].classification:
            label = handedness[i].classification[0].label
        hands.append(
            LandmarkSet.from_points(
                _landmark_tuples(hand_landmarks),
                kind='hand',
                handedness=label,
                min_visibility=min_visibility,
            )
        )
    return tuple(hands)


def pose_set(pose_detection, *, min_visibility=0.0) -> Optional[LandmarkSet]:
    if not pose_detection.pose_landmarks:
        return None
    return LandmarkSet.from_points(
        _landmark_tuples(pose_detection.pose_landmarks, with_visibility=True),
        kind='pose',
        min_visibility=min_visibility,
    )


def face_set(face_detection) -> Optional[LandmarkSet]:
    if not face_detection.multi_face_landmarks:
        return None
    return LandmarkSet.from_points(
        _landmark_tuples(face_detection.multi_face_landmarks[0]), kind='face'
    )


# -------------------------------------------------------------------------------
# Detector
# -------------------------------------------------------------------------------


class LandmarkDetector:
    """
    Runs MediaPipe's hands, pose and face mesh solutions on camera frames.

    Attributes:
        max_hands (int): Maximum number of hands to detect.
        detection_con (float): Minimum detection confidence threshold.
        track_con (float): Minimum tracking confidence threshold.
        min_visibility (float): Pose landmarks less visible than this read as absent.

    If the detectors cannot be created, the failure is logged once and
    ``detect`` returns empty snapshots from then on.
    """

    def __init__(
        self,
        *,
        max_hands=2,
        detection_con=0.5,
        track_con=0.5,
        refine_face_landmarks=False,
        min_visibility=0.0,
    ):
        self.max_hands = max_hands
        self.detection_con = detection_con
        self.track_con = track_con
        self.min_visibility = min_visibility
        self.hands = self.pose = self.face_mesh = None
        try:
            self.mp_hands = mp.solutions.hands
            self.hands = self.mp_hands.Hands(
                static_image_mode=False,
                max_num_hands=max_hands,
                min_detection_confidence=detection_con,
                min_tracking_confidence=track_con,
            )
            self.pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                min_detection_confidence=detection_con,
                min_tracking_confidence=track_con,
            )
            self.face_mesh = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=False,
                max_num_faces=1,
                refine_landmarks=refine_face_landmarks,
                min_detection_confidence=detection_con,
                min_tracking_confidence=track_con,
            )
        except Exception as e:
            logger.error("Could not initialize landmark detectors: %s", e)
            self.close()

    @property
    def ready(self):
        return self.hands is not None

    def detect(self, img, timestamp=None) -> LandmarkSnapshot:
        """
        Detect hands, body and face in a BGR camera frame (not mirrored).

        Args:
            img: The input image, as read from the camera.
            timestamp: Stored on the snapshot as is.

        Returns:
            LandmarkSnapshot: Whatever was found; empty if the detectors are down.
        """
        if not self.ready:
            return EMPTY_SNAPSHOT
        img_rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        img_rgb.flags.writeable = False
        return LandmarkSnapshot(
            hands=hand_sets(self.hands.process(img_rgb)),
            pose=pose_set(self.pose.process(img_rgb), min_visibility=self.min_visibility),
            face=face_set(self.face_mesh.process(img_rgb)),
            timestamp=timestamp,
        )

    def close(self):
        for solution in (self.hands, self.pose, self.face_mesh):
            if solution is not None:
                solution.close()
        self.hands = self.pose = self.face_mesh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
