"""Utils for proxima."""

import math


# --------------------------------------------------------------------------------------
# Constants


class HandLandmark:
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class PoseLandmark:
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


FINGER_TIPS = (
    HandLandmark.THUMB_TIP,
    HandLandmark.INDEX_FINGER_TIP,
    HandLandmark.MIDDLE_FINGER_TIP,
    HandLandmark.RING_FINGER_TIP,
    HandLandmark.PINKY_TIP,
)

N_HAND_LANDMARKS = 21
N_POSE_LANDMARKS = 33
N_FACE_LANDMARKS = 468

# Face mesh indices used to measure hand-to-face proximity and draw hand-face lines
FACE_LEFT_EYE = (33, 133, 157, 158, 159, 160, 161, 246)
FACE_RIGHT_EYE = (362, 263, 386, 387, 388, 389, 390, 466)
FACE_MOUTH = (61, 185, 40, 39, 37, 0, 267, 269, 270, 409)
FACE_NOSE = (4, 6, 19, 20, 94, 125, 141, 235, 236, 3)
FACE_OUTLINE = (10, 338, 297, 332, 284, 251, 389, 152, 148, 176, 149, 150, 136, 172)

FACE_KEY_POINTS = FACE_LEFT_EYE + FACE_RIGHT_EYE + FACE_MOUTH + FACE_NOSE + FACE_OUTLINE

# Eye corners, mouth corners, nose tip, cheeks, forehead, chin and brows
FACE_NETWORK_POINTS = (33, 133, 362, 263, 61, 291, 4, 168, 397, 10, 152, 70, 336)


# --------------------------------------------------------------------------------------
# Math utils


def clamp(value, lo=0.0, hi=1.0):
    """
    Constrain ``value`` to ``[lo, hi]``.

    >>> clamp(1.5)
    1.0
    >>> clamp(-3, -2, 2)
    -2
    """
    return max(lo, min(hi, value))


def lerp(start, stop, amount):
    """
    Linear interpolation from ``start`` to ``stop``.

    >>> lerp(0, 10, 0.25)
    2.5
    """
    return start + (stop - start) * amount


def linear_map(value, in_min, in_max, out_min, out_max):
    """
    Re-map ``value`` from one range to another, without clamping.

    The input range may be reversed, and so may the output range.

    >>> linear_map(50, 0, 400, 1, 0)
    0.875
    >>> linear_map(0.25, 1, 0, 0, 640)
    480.0
    >>> linear_map(800, 0, 400, 1, 0)
    -1.0
    """
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


def clamped_map(value, in_min, in_max, out_min, out_max):
    """
    Like ``linear_map``, but the result stays within the output range.

    An infinite distance maps to the far end of the output range.

    >>> clamped_map(800, 0, 400, 1, 0)
    0
    >>> clamped_map(float('inf'), 0, 300, 1, 0)
    0
    >>> clamped_map(40, 0, 30, 0.05, 0.2)
    0.2
    """
    if math.isinf(value):
        value = in_max if (value > 0) == (in_max >= in_min) else in_min
    lo, hi = sorted((out_min, out_max))
    mapped = linear_map(value, in_min, in_max, out_min, out_max)
    if mapped <= lo:
        return lo
    if mapped >= hi:
        return hi
    return mapped


def distance(p, q):
    """
    Euclidean distance between two 2D points.

    >>> distance((0, 0), (3, 4))
    5.0
    """
    return math.hypot(p[0] - q[0], p[1] - q[1])

