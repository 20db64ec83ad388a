import random
from dataclasses import replace

import pytest

from proxima.config import (
    DFLT_CONNECTION_STYLES,
    FACE_MESH,
    FINGER_WEB,
    HAND_BODY,
    HAND_BRIDGE,
    HAND_FACE,
    ConnectionConfig,
    ConnectionStyle,
)
from proxima.connections import (
    Circle,
    ConnectionRenderer,
    Polyline,
    commands_of_family,
    connection_intensity,
)
from proxima.landmarks import LandmarkSnapshot

from conftest import make_face, make_hand, make_pose, make_reading


def _connect(renderer, family, p1, p2, proximity=0.0, complexity=1, gain_proximity=None):
    return renderer.connect(
        family,
        p1,
        p2,
        proximity=proximity,
        gain_proximity=proximity if gain_proximity is None else gain_proximity,
        complexity=complexity,
        frame=0,
    )


def test_connections_at_or_beyond_max_dist_are_not_drawn():
    renderer = ConnectionRenderer(rng=random.Random(0))
    assert _connect(renderer, FINGER_WEB, (0, 0), (200, 0)) == []
    assert _connect(renderer, FINGER_WEB, (0, 0), (250, 0)) == []
    assert _connect(renderer, FINGER_WEB, (0, 0), (199, 0)) != []


def test_body_connection_reach_grows_with_proximity():
    renderer = ConnectionRenderer(rng=random.Random(0))
    assert renderer.max_dist(HAND_BODY, 0.5) == pytest.approx(425)
    assert _connect(renderer, HAND_BODY, (0, 0), (424, 0), proximity=0.5) != []
    assert _connect(renderer, HAND_BODY, (0, 0), (425, 0), proximity=0.5) == []
    assert _connect(renderer, HAND_BODY, (0, 0), (424, 0), proximity=0.0) == []


def test_gated_families_open_only_above_their_threshold():
    renderer = ConnectionRenderer()
    assert not renderer.is_open(HAND_BODY, 0.1)
    assert renderer.is_open(HAND_BODY, 0.11)
    assert not renderer.is_open(HAND_FACE, 0.05)
    assert renderer.is_open(HAND_FACE, 0.09)
    # ungated families are always evaluated
    for family in (FACE_MESH, FINGER_WEB, HAND_BRIDGE):
        assert renderer.is_open(family, 0.0)


def test_no_body_connections_below_the_gate(mapper, body_and_hand):
    renderer = ConnectionRenderer(rng=random.Random(0))
    low = renderer.render(body_and_hand, make_reading(0.05), mapper, frame=1)
    high = renderer.render(body_and_hand, make_reading(0.5, complexity=4), mapper, frame=1)
    assert commands_of_family(low, HAND_BODY) == []
    assert commands_of_family(high, HAND_BODY) != []


def test_layers_follow_complexity_for_body_connections():
    renderer = ConnectionRenderer(rng=random.Random(0))

    def n_polylines(complexity):
        commands = _connect(
            renderer, HAND_BODY, (0, 0), (100, 0), proximity=0.5, complexity=complexity
        )
        return len([c for c in commands if isinstance(c, Polyline)])

    assert [n_polylines(c) for c in (1, 3, 4, 6)] == [1, 1, 2, 3]


def test_outer_layers_are_dimmer():
    renderer = ConnectionRenderer(rng=random.Random(0))
    commands = _connect(renderer, HAND_BRIDGE, (0, 0), (50, 0))
    # 5 layers of 5 paths each, layer by layer
    alphas = [c.stroke[3] for c in commands if isinstance(c, Polyline)][::5]
    assert len(alphas) == 5
    assert alphas == sorted(alphas, reverse=True)
    assert alphas[0] == pytest.approx(150 * connection_intensity(50, 250))


def test_alpha_never_exceeds_the_style_maximum(mapper):
    renderer = ConnectionRenderer(rng=random.Random(3))
    snapshot = LandmarkSnapshot(
        hands=(make_hand(tips=(450, 300)), make_hand(tips=(560, 320))),
        pose=make_pose(),
        face=make_face((500, 200)),
    )
    reading = make_reading(0.9, complexity=6, face_sample=1.0)
    commands = renderer.render(snapshot, reading, mapper, frame=7)
    assert commands
    for command in commands:
        if isinstance(command, Polyline):
            alpha_max = DFLT_CONNECTION_STYLES[command.family].alpha_max
            assert 0 <= command.stroke[3] <= alpha_max
        else:
            assert 0 <= command.fill[3] <= 255


def test_bridge_needs_two_hands(mapper):
    renderer = ConnectionRenderer(rng=random.Random(0))
    one = LandmarkSnapshot(hands=(make_hand(tips=(400, 400)),))
    two = LandmarkSnapshot(hands=(make_hand(tips=(400, 400)), make_hand(tips=(500, 400))))
    reading = make_reading(0.0)
    assert commands_of_family(renderer.render(one, reading, mapper, 1), HAND_BRIDGE) == []
    bridges = commands_of_family(renderer.render(two, reading, mapper, 1), HAND_BRIDGE)
    # one bridge per fingertip, each 5 layers of 5 paths
    assert len(bridges) == 5 * 5 * 5


def test_fingertip_glow(mapper):
    config = ConnectionConfig(enabled=())
    renderer = ConnectionRenderer(config)
    snapshot = LandmarkSnapshot(hands=(make_hand(tips=(300, 300)),))
    commands = renderer.render(snapshot, make_reading(0.0), mapper, frame=1)
    assert all(isinstance(c, Circle) for c in commands)
    # a core and five glow rings on each of the five fingertips
    assert len(commands) == 5 * 6
    core, *rings = commands[:6]
    assert core.fill[3] == config.core_alpha
    # rings get brighter as they get smaller
    assert [c.diameter for c in rings] == list(config.glow_sizes)
    alphas = [c.fill[3] for c in rings]
    assert alphas == sorted(alphas)
    assert alphas[0] == 0


def test_face_mesh_connects_close_face_points_only(mapper):
    config = ConnectionConfig(enabled=(FACE_MESH,), draw_fingertips=False)
    renderer = ConnectionRenderer(config)
    commands = renderer.render(
        LandmarkSnapshot(face=make_face()), make_reading(0.0), mapper, frame=1
    )
    n_points = len(config.face_network_points)
    assert len(commands_of_family(commands, FACE_MESH)) == n_points * (n_points - 1) // 2


def test_seeded_renderers_agree(mapper, body_and_hand):
    reading = make_reading(0.6, complexity=5)
    a = ConnectionRenderer(rng=random.Random(42)).render(body_and_hand, reading, mapper, 3)
    b = ConnectionRenderer(rng=random.Random(42)).render(body_and_hand, reading, mapper, 3)
    assert a == b


def test_particles_follow_their_chance():
    always = replace(
        DFLT_CONNECTION_STYLES[FINGER_WEB], particle_chance=1.0, particle_alpha=100
    )
    config = ConnectionConfig(styles={**DFLT_CONNECTION_STYLES, FINGER_WEB: always})
    renderer = ConnectionRenderer(config, rng=random.Random(0))
    commands = _connect(renderer, FINGER_WEB, (0, 0), (0, 0))
    particles = [c for c in commands if isinstance(c, Circle)]
    assert len(particles) == 1
    assert particles[0].fill[3] == pytest.approx(100)


def test_invalid_styles_raise():
    with pytest.raises(ValueError):
        ConnectionStyle(max_dist=0)
    with pytest.raises(ValueError):
        ConnectionConfig(enabled=('nope',))
