import logging
import random

import pytest

from proxima.config import BASS, VOICES
from proxima.connections import ConnectionRenderer
from proxima.engine import ProximaEngine
from proxima.interaction import InteractionGate
from proxima.landmarks import LandmarkSnapshot
from proxima.proximity import ProximityEngine

from conftest import FailingAudioBackend, make_hand, make_pose


def make_engine(mapper, audio, clock):
    return ProximaEngine(
        mapper,
        audio=audio,
        renderer=ConnectionRenderer(rng=random.Random(0)),
        clock=clock,
    )


def close_to_body(x=550):
    return LandmarkSnapshot(hands=(make_hand(tips=(x, 300)),), pose=make_pose())


def test_silent_until_sound_is_toggled(mapper, audio, clock):
    engine = make_engine(mapper, audio, clock)
    for _ in range(20):
        clock.advance(0.1)
        result = engine.tick(close_to_body())
        assert result.events == ()
        assert not result.sound_active
    assert audio.calls == []
    assert result.frame == 20
    assert result.commands


def test_ticks_with_sound_set_the_master_gain_and_play(mapper, audio, clock):
    engine = make_engine(mapper, audio, clock)
    engine.toggle_sound()
    # Pull the proximity up until the bass opens
    for _ in range(40):
        clock.advance(0.05)
        result = engine.tick(close_to_body())
    assert result.sound_active
    assert result.reading.proximity > 0.3
    assert len(audio.named('set_master_gain')) == 40
    assert ('trigger_note', BASS) in {c[:2] for c in audio.calls}


def test_toggling_sound_off_releases_every_voice(mapper, audio, clock):
    engine = make_engine(mapper, audio, clock)
    assert engine.toggle_sound() is True
    engine.tick(close_to_body())
    audio.calls.clear()

    assert engine.toggle_sound() is False
    assert {c[1] for c in audio.named('release_all')} == set(VOICES)
    assert engine.gate.state is None

    audio.calls.clear()
    engine.tick(close_to_body())
    assert audio.calls == []


def test_a_failing_backend_is_logged_and_the_tick_goes_on(mapper, clock, caplog):
    audio = FailingAudioBackend()
    engine = make_engine(mapper, audio, clock)
    engine.toggle_sound()

    with caplog.at_level(logging.DEBUG, logger='proxima.engine'):
        for _ in range(40):
            clock.advance(0.05)
            result = engine.tick(close_to_body())

    assert result.frame == 40
    assert len(audio.named('trigger_note')) > 1
    # every tick still gets its master gain
    assert len(audio.named('set_master_gain')) == 40
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    # reported once per broken voice, not once per tick
    assert errors
    assert len(errors) == len({r.args[1] for r in errors})


def test_losing_everyone_resets_proximity_to_zero(mapper, audio, clock):
    engine = make_engine(mapper, audio, clock)
    for _ in range(20):
        engine.tick(close_to_body())
    assert engine.proximity.state.value > 0
    result = engine.tick(LandmarkSnapshot())
    assert result.reading.proximity == 0.0
    assert result.reading.reset


def test_tick_uses_the_clock_when_not_given_a_time(mapper, audio, clock):
    engine = make_engine(mapper, audio, clock)
    clock.now = 100.0
    engine.toggle_sound()
    assert engine.gate.state.last_interaction_time == 100.0
    clock.now = 106.0
    # Still hands, no interaction for 6 seconds: the volume starts fading
    engine.tick(close_to_body())
    result = engine.tick(close_to_body())
    assert result.volume < 1.0


def test_sound_features_summary(mapper, audio, clock):
    engine = make_engine(mapper, audio, clock)
    features = engine.tick(close_to_body()).sound_features()
    assert set(features) == {'proximity', 'complexity', 'volume', 'interaction', 'sound'}
    assert features['sound'] == 'off'
    assert features['proximity'] == pytest.approx(0.0875)


def test_default_configs_are_not_shared_between_components(mapper):
    first, second = ProximaEngine(mapper), ProximaEngine(mapper)
    assert first.config is not second.config
    assert first.config.interaction.voices is not second.config.interaction.voices
    assert first.gate.config.voices is not second.gate.config.voices
    assert first.renderer.config.styles is not second.renderer.config.styles
    assert ConnectionRenderer().config.styles is not ConnectionRenderer().config.styles
    assert ProximityEngine().config is not ProximityEngine().config
    assert InteractionGate().config.voices is not InteractionGate().config.voices
