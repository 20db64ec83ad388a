"""Utility functions for running the proxima installation."""

import logging
import random
import time
from typing import Any, Optional, Tuple

import cv2

from proxima.config import ProximaConfig
from proxima.connections import ConnectionRenderer
from proxima.display import cover_dimensions, draw_on_screen
from proxima.engine import ProximaEngine
from proxima.landmarks import ScreenMapper
from proxima.video_features import LandmarkDetector

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------
# Keyboard handling functions
# -------------------------------------------------------------------------------

ESCAPE_KEY_ASCII = 27
SPACE_KEY_ASCII = 32
BREAK_KEYS = {ESCAPE_KEY_ASCII, ord('q')}
TOGGLE_SOUND_KEYS = {SPACE_KEY_ASCII}


class KeyboardBreakSignal(Exception):
    """Exception raised when a break key is pressed."""


def read_keyboard(wait_time: int = 1) -> int:
    """
    Read keyboard input with the specified wait time.

    Args:
        wait_time: Time to wait for keyboard input in milliseconds

    Returns:
        The key code, or 255 if no key was pressed
    """
    return cv2.waitKey(wait_time) & 0xFF


def handle_key(key_code: int, engine: ProximaEngine, now: Optional[float] = None):
    """
    Act on a key press: toggle sound, or signal the end of the run.

    Raises:
        KeyboardBreakSignal: If a key that signals program termination is pressed
    """
    if key_code in BREAK_KEYS:
        raise KeyboardBreakSignal(f"Break key pressed: {key_code}")
    if key_code in TOGGLE_SOUND_KEYS:
        sound_on = engine.toggle_sound(now)
        print(f"Sound {'on' if sound_on else 'off'}")


# -------------------------------------------------------------------------------
# Camera handling functions
# -------------------------------------------------------------------------------


class CameraReadError(Exception):
    """Exception raised when camera read fails."""


def read_camera(cap: cv2.VideoCapture) -> Any:
    """
    Read a frame from the camera, as is.

    Detection runs on this frame; it is mirrored only for display.

    Raises:
        CameraReadError: If the camera read operation fails
    """
    success, img = cap.read()
    if not success:
        raise CameraReadError("Failed to read from camera")
    return img


def display_frame(img, size: Tuple[int, int]):
    """The mirrored frame, scaled to ``size``."""
    img = cv2.flip(img, 1)
    if (img.shape[1], img.shape[0]) != tuple(size):
        img = cv2.resize(img, tuple(size), interpolation=cv2.INTER_LINEAR)
    return img


# -------------------------------------------------------------------------------
# Audio
# -------------------------------------------------------------------------------


def start_audio():
    """
    Start the pyo audio backend, or return ``None`` (and log why) if it can't be.

    pyo is imported here so that running silently never needs an audio device.
    """
    try:
        from proxima.audio import PyoAudioBackend

        audio = PyoAudioBackend()
        audio.start()
    except Exception as e:
        logger.error("Audio unavailable, running silently: %s", e)
        return None
    return audio


# -------------------------------------------------------------------------------
# Main run function
# -------------------------------------------------------------------------------

DFLT_WINDOW_NAME = 'Proxima'


def run_proxima(
    *,
    camera: int = 0,
    window_name: str = DFLT_WINDOW_NAME,
    display_scale: float = 1.0,
    canvas_size: Optional[Tuple[int, int]] = None,
    sound_at_start: bool = False,
    silent: bool = False,
    seed: Optional[int] = None,
    show_features: bool = False,
    config: Optional[ProximaConfig] = None,
):
    """
    Run the proximity installation.

    Args:
        camera: Index of the camera to read from
        window_name: Title for the display window
        display_scale: Scale of the displayed video relative to the camera frame
        canvas_size: (width, height) of the window; the video is scaled to cover it
        sound_at_start: Whether sound is on from the first frame
        silent: Never start the audio backend
        seed: Seed of the particle randomness (for reproducible visuals)
        show_features: Overlay proximity, complexity and volume on the video
        config: Configuration of the proximity engine, renderer and sound gate
    """
    config = config if config is not None else ProximaConfig()
    cap = cv2.VideoCapture(camera)
    try:
        first = read_camera(cap)
    except CameraReadError:
        cap.release()
        print(f"\nCould not read from camera {camera}\n")
        return

    frame_h, frame_w = first.shape[:2]
    if canvas_size is None:
        canvas_size = (int(frame_w * display_scale), int(frame_h * display_scale))
    video_size = cover_dimensions(frame_w, frame_h, *canvas_size)
    mapper = ScreenMapper(*video_size)

    detector = LandmarkDetector(min_visibility=config.min_visibility)
    audio = None if silent else start_audio()
    engine = ProximaEngine(
        mapper,
        audio=audio,
        config=config,
        renderer=ConnectionRenderer(config.connections, rng=random.Random(seed)),
        clock=time.monotonic,
    )
    if sound_at_start:
        engine.start_sound()

    print(
        f"\nRunning {window_name} on camera {camera}, video {video_size[0]}x{video_size[1]}"
        "\nSPACE toggles sound, ESC or q quits.\n"
    )

    n_frames = 0
    try:
        img = first
        while cap.isOpened():
            try:
                handle_key(read_keyboard(), engine)

                snapshot = detector.detect(img, timestamp=time.monotonic())
                result = engine.tick(snapshot)

                screen = display_frame(img, video_size)
                screen = draw_on_screen(
                    screen,
                    result.commands,
                    result.sound_features() if show_features else None,
                    canvas_size=canvas_size,
                )
                cv2.imshow(window_name, screen)
                n_frames += 1

                img = read_camera(cap)
            except (CameraReadError, KeyboardBreakSignal) as e:
                logger.info("Stopping: %s", e)
                break
    finally:
        if engine.sound_active:
            engine.stop_sound()
        if audio is not None:
            audio.stop()
        detector.close()
        cap.release()
        cv2.destroyAllWindows()
        print(f"\n---> Ran {n_frames} frames\n")


def _parse_size(size: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    >>> _parse_size('1280x720')
    (1280, 720)
    >>> _parse_size(None) is None
    True
    """
    if not size:
        return None
    try:
        w, h = (int(v) for v in size.lower().split('x'))
    except ValueError:
        raise ValueError(f"Size should be WIDTHxHEIGHT, not {size!r}")
    return w, h


def proxima_cli(
    # Input
    camera: int = 0,
    # Display options
    window_name: str = DFLT_WINDOW_NAME,
    display_scale: float = 1.0,
    canvas_size: str = '',
    show_features: bool = False,
    seed: int = None,
    # Sound options
    sound_at_start: bool = False,
    silent: bool = False,
    # Logging options
    log_level: str = 'WARNING',
):
    """
    Run the proxima installation with the specified parameters.

    Args:
        camera: Index of the camera to read from
        window_name: Title for the display window
        display_scale: Scale of the displayed video relative to the camera frame
        canvas_size: Window size as WIDTHxHEIGHT (the video covers it)
        show_features: Overlay proximity, complexity and volume on the video
        seed: Seed of the particle randomness
        sound_at_start: Turn sound on without waiting for SPACE
        silent: Do not start the audio backend at all
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )
    run_proxima(
        camera=camera,
        window_name=window_name,
        display_scale=display_scale,
        canvas_size=_parse_size(canvas_size),
        sound_at_start=sound_at_start,
        silent=silent,
        seed=int(seed) if seed is not None else None,
        show_features=show_features,
    )


def dispatched_proxima_cli():
    import argh

    argh.dispatch_command(proxima_cli)
