"""Audio backend: the four voices of the installation, on pyo."""

import contextlib
import logging
from typing import Dict, Sequence

from hum import Synth
from hum.pyo_util import add_default_dials
from pyo import *

from proxima.config import BASS, DRONE, HIHAT, SYNTH, VOICES

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------
# Drone (a held chord, driven through hum's knob-controlled Synth)
# -------------------------------------------------------------------------------

DRONE_INTERVALS = (0, 7, 12, 16)  # root, fifth, octave, major tenth
DRONE_PARTIALS = [1, 0.5, 0.33, 0.25]  # a four-partial sine


@add_default_dials('freq volume gain')
def drone_synth(
    freq=130.81,
    volume=0.0,
    gain=1.0,
    *,
    attack=2.0,
    release=4.0,
    reverb_mix=0.4,
):
    """
    A slow-breathing chord built on ``freq``.

    Parameters:
    - freq (float): Root frequency in Hz. The chord adds a fifth, an octave and a tenth.
    - volume (float): Chord amplitude (0 to 1). Zero releases the chord.
    - gain (float): Master gain (0 to 1).
    - attack (float): Fade-in time in seconds.
    - release (float): Fade-out time in seconds.
    - reverb_mix (float): Reverb dry/wet mix.

    Returns:
    - PyoObject: The resulting audio signal.
    """
    env = Port(volume * gain, risetime=attack, falltime=release)
    table = HarmTable(DRONE_PARTIALS)
    chord = Osc(
        table=table,
        freq=[freq * 2 ** (i / 12) for i in DRONE_INTERVALS],
        mul=env / len(DRONE_INTERVALS),
    )
    delayed = Delay(chord, delay=0.25, feedback=0.3, mul=0.2)
    return Freeverb(chord + delayed, size=0.8, damp=0.5, bal=reverb_mix)


# -------------------------------------------------------------------------------
# Note voices
# -------------------------------------------------------------------------------


class NoteVoice:
    """A monophonic voice: a source shaped by an ADSR envelope."""

    def __init__(self, env: Adsr, source):
        self.env = env
        self.source = source

    def trigger(self, frequency, duration, amplitude):
        if frequency is not None:
            self.source.freq = float(frequency)
        self.env.mul = float(amplitude)
        self.env.dur = float(duration)
        self.env.play()

    def release(self):
        self.env.stop()


def make_synth_voice(master):
    """Triangle lead with a soft attack and long release."""
    env = Adsr(attack=0.1, decay=0.3, sustain=0.4, release=1.0, dur=1.0, mul=0)
    osc = LFO(freq=440, type=3, mul=env * master)
    return NoteVoice(env, osc)


class BassVoice(NoteVoice):
    """Triangle bass through a low pass whose cutoff follows its own envelope."""

    def __init__(self, master, *, base_cutoff=100, octaves=3):
        env = Adsr(attack=0.1, decay=0.3, sustain=0.6, release=0.8, dur=2.0, mul=0)
        self.filter_env = Adsr(attack=0.1, decay=0.2, sustain=0.4, release=0.8, dur=2.0)
        osc = LFO(freq=55, type=3, mul=env * master)
        cutoff = self.filter_env * (base_cutoff * (2**octaves - 1)) + base_cutoff
        self.output = ButLP(osc, freq=cutoff)
        super().__init__(env, osc)

    def trigger(self, frequency, duration, amplitude):
        self.filter_env.dur = float(duration)
        self.filter_env.play()
        super().trigger(frequency, duration, amplitude)

    def release(self):
        self.filter_env.stop()
        super().release()


def make_hihat_voice(master):
    """Soft pink noise tick."""
    env = Adsr(attack=0.02, decay=0.2, sustain=0.0, release=0.2, dur=0.125, mul=0)
    noise = PinkNoise(mul=env * master)
    return NoteVoice(env, noise)


# -------------------------------------------------------------------------------
# Backend
# -------------------------------------------------------------------------------


class PyoAudioBackend:
    """
    Plays note events on a pyo server.

    The server is owned by a hum ``Synth`` that also holds the drone; the note
    voices (synth, bass, hi-hat) are plain pyo objects routed through a delay
    and a reverb, all scaled by a master gain.

    Use as a context manager, or call ``start`` and ``stop``.
    """

    def __init__(self, *, nchnls=2, reverb_mix=0.4, delay_mix=0.2):
        self.nchnls = nchnls
        self.reverb_mix = reverb_mix
        self.delay_mix = delay_mix
        self._drone = None
        self._stack = None
        self._voices: Dict[str, NoteVoice] = {}
        self._master = None
        self._gain = 1.0
        self._out = None

    @property
    def started(self):
        return self._drone is not None

    def start(self):
        if self.started:
            return
        self._stack = contextlib.ExitStack()
        drone = Synth(drone_synth, nchnls=self.nchnls)
        self._stack.enter_context(drone)
        self._drone = drone

        self._master = SigTo(value=self._gain, time=0.05)
        synth = make_synth_voice(self._master)
        bass = BassVoice(self._master)
        hihat = make_hihat_voice(self._master)
        self._voices = {SYNTH: synth, BASS: bass, HIHAT: hihat}

        delayed = Delay(synth.source, delay=0.25, feedback=0.3, mul=self.delay_mix)
        wet = synth.source + delayed + bass.output + hihat.source
        self._out = Freeverb(wet, size=0.8, damp=0.5, bal=self.reverb_mix).out()
        logger.info("Audio started")

    def stop(self):
        if not self.started:
            return
        for voice in VOICES:
            self.release_all(voice)
        if self._out is not None:
            self._out.stop()
        self._stack.close()
        self._stack = None
        self._drone = None
        self._voices = {}
        self._out = None
        logger.info("Audio stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _check_started(self):
        if not self.started:
            raise RuntimeError("Audio backend is not started")

    def _voice(self, voice) -> NoteVoice:
        if voice not in self._voices:
            raise ValueError(f"Not a note voice: {voice}")
        return self._voices[voice]

    # Audio backend interface --------------------------------------------------

    def trigger_note(self, voice, frequency, duration, amplitude):
        self._check_started()
        self._voice(voice).trigger(frequency, duration, amplitude)

    def trigger_chord_attack(self, voice, frequencies: Sequence[float], amplitude):
        """
        Attack a held chord. Only the drone holds chords; its chord shape is
        fixed, so the lowest frequency sets the root.
        """
        self._check_started()
        if voice != DRONE:
            raise ValueError(f"Only the drone plays chords, not {voice}")
        self._drone(freq=float(min(frequencies)), volume=float(amplitude))

    def release_all(self, voice):
        self._check_started()
        if voice == DRONE:
            self._drone(volume=0.0)
        else:
            self._voice(voice).release()

    def set_master_gain(self, volume):
        self._check_started()
        volume = float(min(1.0, max(0.0, volume)))
        # Small steps are skipped, but the fade always lands on 0 and 1 exactly
        if volume == self._gain or (
            abs(volume - self._gain) < 1e-3 and volume not in (0.0, 1.0)
        ):
            return
        self._gain = volume
        self._master.value = volume
        self._drone(gain=volume)
