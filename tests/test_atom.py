"""Tests for the atom animation model."""

import json
import math

import numpy as np
import pytest

from aesthetic_atoms.atom import (
    ELEMENT_NAMES,
    VERSIONS,
    Atom,
    AtomConfig,
    AtomConfigError,
    AtomFeatures,
    load_config,
    preset,
)
from aesthetic_atoms.renderer import RecordingRenderer


class TestGeometry:
    @pytest.mark.parametrize("radius", [1, 15, 100])
    def test_orbit_radius_tracks_nucleus(self, make_atom, radius):
        atom = make_atom()
        atom.nucleus_radius = radius
        assert atom.nucleus_radius == radius
        assert atom.radius == 8 * radius

    @pytest.mark.parametrize("n", range(1, 11))
    def test_delta_angle_tracks_electron_count(self, make_atom, n):
        atom = make_atom()
        atom.electron_count = n
        assert atom.electron_count == n
        assert atom.delta_angle == pytest.approx(math.pi / n)

    @pytest.mark.parametrize("n,name", [(1, "Hydrogen"), (6, "Carbon"), (10, "Neon")])
    def test_element_names(self, make_atom, n, name):
        atom = make_atom()
        atom.electron_count = n
        assert atom.name == name

    def test_all_ten_names(self, make_atom):
        atom = make_atom()
        names = []
        for n in range(1, 11):
            atom.electron_count = n
            names.append(atom.name)
        assert tuple(names) == ELEMENT_NAMES

    def test_name_beyond_table_raises(self, make_atom):
        atom = make_atom(max_electrons=12, electron_count=11)
        with pytest.raises(AtomConfigError):
            atom.name

    def test_display_name(self, make_atom):
        atom = make_atom(max_electrons=12, electron_count=11)
        assert atom.display_name == "11 electrons"
        atom.electron_count = 6
        assert atom.display_name == "Carbon"

    def test_defaults(self, make_atom):
        atom = make_atom()
        assert atom.nucleus_radius == 15
        assert atom.radius == 120
        assert atom.electron_count == 3
        assert atom.electron_speed == 1
        assert atom.tail_spheres == 15
        assert atom.smoothing is False
        assert atom.enable_orbits is True
        assert atom.maximum_number_of_electrons == 10
        assert atom.nucleus_color == (3, 28, 193)
        assert atom.electron_color == (193, 3, 3)

    def test_from_params(self, clock):
        atom = Atom.from_params(0, 0, 20, 0.75, 3, clock=clock, seed=1)
        assert atom.radius == 160
        assert atom.electron_speed == 0.75
        assert atom.name == "Lithium"


class TestValidation:
    @pytest.mark.parametrize("radius", [0, -1, float("nan"), float("inf")])
    def test_bad_nucleus_radius(self, make_atom, radius):
        atom = make_atom()
        with pytest.raises(AtomConfigError):
            atom.nucleus_radius = radius
        assert atom.radius == 120

    @pytest.mark.parametrize("count", [0, 11, -3, 2.5, True])
    def test_bad_electron_count(self, make_atom, count):
        atom = make_atom()
        with pytest.raises(AtomConfigError):
            atom.electron_count = count
        assert atom.electron_count == 3
        assert atom.delta_angle == pytest.approx(math.pi / 3)

    def test_numeric_string_count_accepted(self, make_atom):
        atom = make_atom()
        atom.electron_count = "4"
        assert atom.electron_count == 4

    def test_bad_tail_spheres(self, clock):
        with pytest.raises(AtomConfigError):
            Atom(AtomConfig(tail_spheres=0), clock=clock)

    def test_bad_max_electrons(self, clock):
        with pytest.raises(AtomConfigError):
            Atom(AtomConfig(max_electrons=0), clock=clock)

    def test_count_above_capacity_rejected_at_construction(self, clock):
        with pytest.raises(AtomConfigError):
            Atom(AtomConfig(electron_count=5, max_electrons=4), clock=clock)

    def test_speed_must_be_finite(self, make_atom):
        atom = make_atom()
        with pytest.raises(AtomConfigError):
            atom.electron_speed = float("inf")

    def test_speed_may_be_zero_or_negative(self, make_atom):
        atom = make_atom()
        atom.electron_speed = 0
        atom.electron_speed = -2.5
        assert atom.electron_speed == -2.5

    def test_bad_colour(self, make_atom):
        atom = make_atom()
        with pytest.raises(AtomConfigError):
            atom.nucleus_color = "#12"
        with pytest.raises(AtomConfigError):
            atom.electron_color = (300, 0, 0)

    def test_negative_cycle_rate(self, make_atom):
        atom = make_atom()
        with pytest.raises(AtomConfigError):
            atom.nucleus_color_cycle_rate = -1


class TestPhaseSeeds:
    def test_one_extra_slot(self, make_atom):
        atom = make_atom()
        assert len(atom.phase_seeds) == atom.maximum_number_of_electrons + 1

    def test_capacity_is_configurable(self, make_atom):
        atom = make_atom(max_electrons=20)
        assert len(atom.phase_seeds) == 21

    def test_range(self, make_atom):
        seeds = make_atom(max_electrons=20).phase_seeds
        assert all(0 <= s < 2 * math.pi for s in seeds)

    def test_not_regenerated_on_count_change(self, make_atom):
        atom = make_atom()
        before = atom.phase_seeds
        atom.electron_count = 7
        atom.electron_count = 1
        assert atom.phase_seeds == before

    def test_seeded(self, clock):
        a = Atom(seed=3, clock=clock)
        b = Atom(seed=3, clock=clock)
        assert a.phase_seeds == b.phase_seeds


class TestRotation:
    def test_first_tick_is_zero_delta(self, make_atom, clock):
        clock.now = 1234.0
        atom = make_atom()
        elapsed = atom.draw(RecordingRenderer())
        assert elapsed == 0
        assert atom.rotation == 0

    def test_half_second_is_half_turn(self, make_atom, clock):
        atom = make_atom()
        clock.advance(500)
        atom.update()
        assert atom.rotation == pytest.approx(math.pi)

    @pytest.mark.parametrize("rps", [0.25, 1.0, 3.7])
    def test_frame_rate_independent(self, make_atom, rps):
        total_ms = 2000.0
        rng = np.random.default_rng(11)

        partitions = [
            [total_ms],
            [1000.0 / 60] * 120,
            [1000.0 / 24] * 48,
        ]
        cuts = np.sort(rng.uniform(0, total_ms, 37))
        partitions.append(list(np.diff(np.concatenate([[0.0], cuts, [total_ms]]))))

        expected = 2 * math.pi * rps * total_ms / 1000
        for deltas in partitions:
            atom = make_atom(rots_per_sec=rps)
            now = 0.0
            for d in deltas:
                now += d
                atom.update(now)
            assert atom.rotation == pytest.approx(expected, rel=1e-9)

    def test_negative_speed_reverses(self, make_atom):
        atom = make_atom(rots_per_sec=-1)
        atom.update(250)
        assert atom.rotation == pytest.approx(-math.pi / 2)

    def test_speed_change_applies_from_next_tick(self, make_atom):
        atom = make_atom()
        atom.update(500)
        atom.electron_speed = 2
        atom.update(750)
        assert atom.rotation == pytest.approx(math.pi + math.pi)

    def test_reset_clock(self, make_atom):
        atom = make_atom()
        atom.reset_clock(10_000)
        assert atom.last_tick == 10_000
        assert atom.update(10_000) == 0
        assert atom.rotation == 0


class TestColorCycling:
    def _cycling_atom(self, make_atom, **overrides):
        return make_atom(
            nucleus_color_cycle=True,
            electron_color_cycle=True,
            features=AtomFeatures(color_cycling=True),
            **overrides,
        )

    def test_overshoot_wraps_to_zero(self, make_atom):
        atom = self._cycling_atom(make_atom, nucleus_color_cycle_rate=20)
        atom.nucleus_color_counter = 350
        atom.update(16)
        assert atom.nucleus_color_counter == 0

    def test_exact_boundary_wraps_to_zero(self, make_atom):
        atom = self._cycling_atom(make_atom, electron_color_cycle_rate=10)
        atom.electron_color_counter = 349
        atom.update(16)
        assert atom.electron_color_counter == 0

    def test_below_boundary_advances(self, make_atom):
        atom = self._cycling_atom(make_atom, nucleus_color_cycle_rate=10)
        atom.nucleus_color_counter = 340
        atom.update(16)
        assert atom.nucleus_color_counter == 350

    def test_colour_follows_hue(self, make_atom):
        atom = self._cycling_atom(make_atom, electron_color_cycle_rate=20)
        atom.electron_color_counter = 100
        atom.update(16)
        assert atom.electron_color_counter == 120
        assert atom.electron_color == (0, 255, 0)

    def test_wrapped_colour_is_red(self, make_atom):
        atom = self._cycling_atom(make_atom, nucleus_color_cycle_rate=20)
        atom.nucleus_color_counter = 350
        atom.update(16)
        assert atom.nucleus_color == (255, 0, 0)

    def test_nucleus_uses_configured_lightness(self, make_atom):
        atom = self._cycling_atom(make_atom, nucleus_lightness=100)
        atom.update(16)
        assert atom.nucleus_color == (255, 255, 255)

    def test_disabled_channel_untouched(self, make_atom):
        atom = make_atom(
            electron_color_cycle=True,
            features=AtomFeatures(color_cycling=True),
        )
        atom.update(16)
        assert atom.nucleus_color_counter == 0
        assert atom.nucleus_color == (3, 28, 193)
        assert atom.electron_color_counter == 10

    def test_feature_off_ignores_toggle(self, make_atom):
        atom = make_atom(
            nucleus_color_cycle=True,
            features=AtomFeatures(color_cycling=False),
        )
        atom.update(16)
        assert atom.nucleus_color_counter == 0
        assert atom.nucleus_color == (3, 28, 193)


class TestSpin:
    def test_counters_start_in_unit_interval(self, make_atom):
        atom = make_atom()
        for c in (atom.counter_x, atom.counter_y, atom.counter_z):
            assert 0 <= c < 1

    def test_only_enabled_axes_advance(self, make_atom):
        atom = make_atom(spin_x=True, spin_increment=0.3)
        x, y, z = atom.counter_x, atom.counter_y, atom.counter_z
        atom.update(16)
        atom.update(32)
        assert atom.counter_x == pytest.approx(x + 0.6)
        assert atom.counter_y == y
        assert atom.counter_z == z

    def test_toggle_read_from_instance(self, make_atom):
        a = make_atom(seed=1)
        b = make_atom(seed=1)
        b.spin_z = True
        a.update(16)
        b.update(16)
        assert b.counter_z > a.counter_z

    def test_scene_rotation_uses_counters(self, make_atom):
        atom = make_atom(spin_y=True, spin_increment=0.1)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        first_y = next(c for c in rec.commands if c.op == "rotate_y")
        assert first_y.args[0] == pytest.approx(atom.counter_y * math.pi / 16)


class TestEmission:
    def test_end_to_end_counts(self, make_atom, clock):
        atom = make_atom(pos_x=0, pos_y=0, nucleus_radius=15, rots_per_sec=1,
                         electron_count=3, tail_spheres=15)
        rec = RecordingRenderer()
        clock.advance(500)
        atom.draw(rec)

        assert atom.rotation == pytest.approx(math.pi)
        assert rec.count("ellipsoid") == 45
        assert rec.count("sphere") == 1
        assert rec.count("torus") == 3
        assert rec.count("push") == rec.count("pop")

    def test_no_orbits(self, make_atom):
        atom = make_atom(enable_orbits=False)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        assert rec.count("torus") == 0
        assert rec.count("ellipsoid") == 45

    def test_frame_starts_with_clear(self, make_atom):
        rec = RecordingRenderer()
        make_atom().draw(rec, 16)
        assert rec.ops()[0] == "clear"

    def test_smoothing_only_with_feature(self, make_atom):
        rec = RecordingRenderer()
        make_atom(smoothing=True).draw(rec, 16)
        assert ("smooth", (True,)) in [(c.op, c.args) for c in rec.commands]

        rec = RecordingRenderer()
        make_atom(smoothing=True, features=VERSIONS["v1"].features).draw(rec, 16)
        assert rec.count("smooth") == 0

    def test_orbit_rings_rotate_cumulatively(self, make_atom):
        atom = make_atom(electron_count=4)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        ops = rec.commands
        torus_idx = [i for i, c in enumerate(ops) if c.op == "torus"]
        assert len(torus_idx) == 4
        for i in torus_idx:
            assert ops[i - 1].op == "rotate_y"
            assert ops[i - 1].args[0] == pytest.approx(math.pi / 4)
        # No pop between rings: each rotation builds on the previous one
        between = ops[torus_idx[0]:torus_idx[-1]]
        assert all(c.op != "pop" for c in between)
        assert ops[torus_idx[0]].args == (atom.radius, 0.75, 50)

    def test_electron_frames_rotate_by_delta_angle(self, make_atom):
        atom = make_atom(electron_count=5)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        rotations = [c.args[0] for c in rec.commands if c.op == "rotate_z"]
        # first rotate_z is the scene spin
        assert rotations[1:] == [pytest.approx(math.pi / 5)] * 5

    def test_tail_sizes_grow_along_trail(self, make_atom):
        atom = make_atom(tail_spheres=10, nucleus_radius=20, electron_count=1)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        sizes = [c.args for c in rec.commands if c.op == "ellipsoid"]
        assert len(sizes) == 10
        assert sizes[0][:2] == (0.0, 0.0)
        for i, (rx, ry, _) in enumerate(sizes):
            expected = (i / 10) * 20 / 5
            assert ry == pytest.approx(expected)
            assert rx == pytest.approx(1.5 * expected)

    def test_tail_offset_along_orbit_radius(self, make_atom):
        atom = make_atom(electron_count=1)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        translates = [c.args for c in rec.commands if c.op == "translate"]
        # nucleus translate first, then one per tail sphere
        assert translates[0] == (0.0, 0.0, 0.0)
        assert all(t == (atom.radius, 0.0, 0.0) for t in translates[1:])

    def test_tail_rotation_includes_phase_seed(self, make_atom, clock):
        atom = make_atom(electron_count=2, tail_spheres=4)
        rec = RecordingRenderer()
        clock.advance(100)
        atom.draw(rec)
        angles = [c.args[0] for c in rec.commands if c.op == "rotate_y"]
        tail = angles[-8:]
        for e in range(2):
            base = atom.rotation + atom.phase_seeds[e]
            for i in range(4):
                expected = base + (math.pi / 256) * i * (i / 4)
                assert tail[e * 4 + i] == pytest.approx(expected)

    def test_deterministic_without_jitter(self, clock):
        a = Atom(seed=5, clock=clock)
        b = Atom(seed=5, clock=clock)
        rec_a, rec_b = RecordingRenderer(), RecordingRenderer()
        for now in (16.0, 32.0, 48.0):
            rec_a.reset()
            rec_b.reset()
            a.draw(rec_a, now)
            b.draw(rec_b, now)
            assert rec_a.commands == rec_b.commands

    def test_render_does_not_advance(self, make_atom):
        atom = make_atom()
        atom.update(100)
        first, second = RecordingRenderer(), RecordingRenderer()
        atom.render(first)
        atom.render(second)
        assert first.commands == second.commands

    def test_nucleus_vibration_bounded(self, make_atom):
        atom = make_atom(pos_x=10, pos_y=-5, nucleus_vibrate=True)
        for now in range(16, 320, 16):
            rec = RecordingRenderer()
            atom.draw(rec, now)
            x, y, _ = next(c.args for c in rec.commands if c.op == "translate")
            assert 8 <= x <= 12
            assert -7 <= y <= -3

    def test_electron_vibration_bounded(self, make_atom):
        atom = make_atom(electron_vibrate=True)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        translates = [c.args for c in rec.commands if c.op == "translate"][1:]
        assert len(translates) == 45
        for x, y, _ in translates:
            assert -0.5 <= y <= 0.5
            assert x == pytest.approx(atom.radius + y)

    def test_nucleus_noise_lines(self, make_atom):
        atom = make_atom(pos_x=3, pos_y=4, nucleus_noise=True)
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        lines = [c.args for c in rec.commands if c.op == "line"]
        assert len(lines) == 50
        assert ("stroke", ((255, 255, 255), 30)) in [(c.op, c.args) for c in rec.commands]
        for start, end in lines:
            assert start == (3, 4, 0.0)
            offset = np.subtract(end, start)
            assert np.linalg.norm(offset) == pytest.approx(atom.nucleus_radius)

    def test_noise_needs_feature(self, make_atom):
        atom = make_atom(nucleus_noise=True, features=AtomFeatures(noise=False))
        rec = RecordingRenderer()
        atom.draw(rec, 16)
        assert rec.count("line") == 0


class TestConfig:
    def test_versions(self):
        assert VERSIONS["v1"].spin_increment == 0.1
        assert not VERSIONS["v1"].features.noise
        assert VERSIONS["v2"].features.noise
        assert not VERSIONS["v2"].features.color_cycling
        assert VERSIONS["v3"].features.color_cycling

    def test_preset_overrides(self):
        cfg = preset("v2", electron_count=6)
        assert cfg.electron_count == 6
        assert cfg.features == VERSIONS["v2"].features
        assert VERSIONS["v2"].electron_count == 3

    def test_unknown_preset(self):
        with pytest.raises(AtomConfigError):
            preset("v9")

    def test_from_dict(self):
        cfg = AtomConfig.from_dict({
            "electron_count": 5,
            "nucleus_color": "#00ff00",
            "features": {"antialiasing": False, "noise": True, "color_cycling": False},
        })
        assert cfg.electron_count == 5
        assert cfg.nucleus_color == (0, 255, 0)
        assert cfg.features == AtomFeatures(antialiasing=False, noise=True, color_cycling=False)

    def test_from_dict_feature_preset_name(self):
        cfg = AtomConfig.from_dict({"features": "v1"})
        assert cfg.features == VERSIONS["v1"].features

    def test_from_dict_unknown_key(self):
        with pytest.raises(AtomConfigError, match="bogus"):
            AtomConfig.from_dict({"bogus": 1})

    def test_from_dict_unknown_feature(self):
        with pytest.raises(AtomConfigError, match="sparkle"):
            AtomConfig.from_dict({"features": {"sparkle": True}})

    def test_round_trip_through_dict(self):
        cfg = preset("v3", electron_color=(1, 2, 3))
        assert AtomConfig.from_dict(cfg.to_dict()) == cfg

    def test_load_config(self, tmp_path):
        path = tmp_path / "atom.json"
        path.write_text(json.dumps({"electron_count": 8, "electron_color": [0, 0, 255]}))
        cfg = load_config(path, base=preset("v1"))
        assert cfg.electron_count == 8
        assert cfg.electron_color == (0, 0, 255)
        assert cfg.spin_increment == 0.1

    def test_load_config_requires_object(self, tmp_path):
        path = tmp_path / "atom.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(AtomConfigError):
            load_config(path)
