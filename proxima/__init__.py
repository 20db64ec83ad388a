"""

An interactive audiovisual installation driven by how close your hands are to
your own body and face.

A webcam feeds MediaPipe's hand, pose and face mesh detectors. Each frame, the
fingertips are measured against a few body reference points (chest, hips,
ankles, ...) and key points of the face. The closer the hands, the higher the
smoothed "proximity", and the denser, brighter and wavier the glowing lines
drawn between hands, body and face.

The same proximity, together with how fast the hands move, plays music:
a synth lead for quick gestures, a bass when the hands are held close to the
body, a soft hi-hat cadence and a slow drone chord. When nobody has moved for
a while, everything fades to silence.

Here's a bit about what's in here:

* landmarks.py: the landmark data model, screen mapping and body reference points.
* proximity.py: the proximity engine (samples, smoothing, complexity level).
* connections.py: turns landmark pairs into draw commands.
* interaction.py: interaction detection, volume fading and voice triggers.
* engine.py: the per-frame tick tying the above together.
* audio.py: the pyo (and hum) audio backend.
* video_features.py, display.py, script_utils.py: camera, drawing and the run loop.

Run it with `proxima` (or `python bin/proxima_cli.py`). SPACE toggles the sound.

"""

from proxima.config import ProximaConfig, default_config
from proxima.landmarks import Landmark, LandmarkSet, LandmarkSnapshot, ScreenMapper
from proxima.proximity import ProximityEngine
from proxima.connections import ConnectionRenderer
from proxima.interaction import InteractionGate
from proxima.engine import ProximaEngine, TickResult
