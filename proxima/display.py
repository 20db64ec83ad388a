"""Display utilities: the tinted webcam view, glowing connections and a HUD."""

import cv2
import numpy as np
from typing import Iterable, Optional, Tuple, Union

from proxima.connections import Circle, DrawCommand, Line, Polyline

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------

Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]  # BGR or BGRA

DFLT_TINT_ALPHA = 80  # out of 255

# -------------------------------------------------------------------------------
# Geometry
# -------------------------------------------------------------------------------


def cover_dimensions(video_width, video_height, canvas_width, canvas_height):
    """
    Size of the video once scaled (aspect ratio kept) to cover the whole canvas.

    >>> cover_dimensions(640, 480, 1280, 720)
    (1280, 960)
    >>> cover_dimensions(640, 480, 640, 960)
    (1280, 960)
    """
    scale = max(canvas_width / video_width, canvas_height / video_height)
    return int(round(video_width * scale)), int(round(video_height * scale))


def crop_to_canvas(img: np.ndarray, canvas_size: Tuple[int, int]) -> np.ndarray:
    """Center crop of ``img`` to ``canvas_size`` (width, height)."""
    w, h = canvas_size
    y0 = max(0, (img.shape[0] - h) // 2)
    x0 = max(0, (img.shape[1] - w) // 2)
    return np.ascontiguousarray(img[y0 : y0 + h, x0 : x0 + w])


# -------------------------------------------------------------------------------
# Screen drawing functions
# -------------------------------------------------------------------------------


def tint_frame(img: np.ndarray, alpha: float = DFLT_TINT_ALPHA) -> np.ndarray:
    """The frame drawn at ``alpha``/255 opacity over black."""
    return cv2.convertScaleAbs(img, alpha=alpha / 255.0)


def _bgr(rgba, weight=1.0):
    """Color scaled by its alpha (and by a sub-pixel weight), in BGR order."""
    r, g, b, a = rgba
    k = max(0.0, min(1.0, a / 255.0)) * min(1.0, weight)
    return (b * k, g * k, r * k)


def _px(x):
    return int(round(x))


def draw_command(layer: np.ndarray, command: DrawCommand):
    if isinstance(command, Polyline):
        if len(command.points) < 2:
            return
        pts = np.array([(_px(x), _px(y)) for x, y in command.points], dtype=np.int32)
        cv2.polylines(
            layer,
            [pts],
            isClosed=False,
            color=_bgr(command.stroke, command.weight),
            thickness=max(1, _px(command.weight)),
            lineType=cv2.LINE_AA,
        )
    elif isinstance(command, Line):
        cv2.line(
            layer,
            (_px(command.x1), _px(command.y1)),
            (_px(command.x2), _px(command.y2)),
            _bgr(command.stroke, command.weight),
            max(1, _px(command.weight)),
            cv2.LINE_AA,
        )
    elif isinstance(command, Circle):
        radius = max(1, _px(command.diameter / 2))
        cv2.circle(
            layer,
            (_px(command.x), _px(command.y)),
            radius,
            _bgr(command.fill),
            -1,
            cv2.LINE_AA,
        )
    else:
        raise TypeError(f"Not a draw command: {command!r}")


def draw_commands(img: np.ndarray, commands: Iterable[DrawCommand]) -> np.ndarray:
    """
    Draw commands onto a black layer and add it onto ``img`` (additive blending).

    Within the layer, later commands paint over earlier ones.
    """
    layer = np.zeros_like(img)
    for command in commands:
        draw_command(layer, command)
    return cv2.add(img, layer)


def display_sound_features_on_image(
    img: np.ndarray,
    sound_features: dict,
    *,
    font=cv2.FONT_HERSHEY_SIMPLEX,
    font_scale: float = 0.6,
    color: Color = (255, 255, 255),
    thickness: float = 1,
    float_format: str = ".2f",
    x_pos=10,
    y_pos=25,
    y_increment=25,
    bg_color: Color = (40, 40, 40, 128),  # dark grey, semi-transparent (BGR + alpha)
):
    """
    Display sound features on the image with a semi-transparent background.

    Args:
        img: The image to draw on
        sound_features: Dictionary of sound features
        font: Font type to use
        font_scale: Size of the font
        color: Text color in BGR format
        thickness: Line thickness of text
        float_format: Format string for float values
        x_pos: Starting x position for text
        y_pos: Starting y position for text
        y_increment: Vertical space between lines
        bg_color: Background color (BGR + alpha) where alpha is 0-255
    """
    if not sound_features:
        return img

    if len(bg_color) == 4:
        bg_rgb = bg_color[:3]
        alpha = bg_color[3] / 255.0
    else:
        bg_rgb = bg_color
        alpha = 0.5

    lines = [
        f"{key}: {value:{float_format}}" if isinstance(value, float) else f"{key}: {value}"
        for key, value in sound_features.items()
    ]

    overlay = img.copy()
    padding = 5
    for idx, text in enumerate(lines):
        (text_width, text_height), _ = cv2.getTextSize(text, font, font_scale, thickness)
        y = y_pos + idx * y_increment
        cv2.rectangle(
            overlay,
            (x_pos - padding, y - text_height - padding),
            (x_pos + text_width + padding, y + padding),
            bg_rgb,
            -1,
        )
    cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)

    for idx, text in enumerate(lines):
        cv2.putText(
            img,
            text,
            (x_pos, y_pos + idx * y_increment),
            font,
            font_scale,
            color,
            thickness,
            cv2.LINE_AA,
        )
    return img


def draw_on_screen(
    img: np.ndarray,
    commands: Iterable[DrawCommand],
    sound_features: dict = None,
    *,
    canvas_size: Optional[Tuple[int, int]] = None,
    tint_alpha: float = DFLT_TINT_ALPHA,
    draw_sound_features=display_sound_features_on_image,
):
    """
    Compose a displayed frame.

    Args:
        img: The mirrored camera frame, already at display size
        commands: Draw commands of this tick
        sound_features: Values to show in the HUD (or None to skip it)
        canvas_size: (width, height) of the window; the frame is center cropped to it
            before the HUD is drawn, so the HUD sits in the visible corner
        tint_alpha: Opacity (0-255) of the webcam image over black
        draw_sound_features: Function to draw sound features (or None to skip)

    Returns:
        img: The composed frame
    """
    img = tint_frame(img, tint_alpha)
    img = draw_commands(img, commands)
    if canvas_size is not None:
        img = crop_to_canvas(img, canvas_size)
    if draw_sound_features and sound_features:
        img = draw_sound_features(img, sound_features)
    return img
