"""Tests for the control bindings."""

import math

import pytest

from aesthetic_atoms.atom import VERSIONS, AtomConfigError
from aesthetic_atoms.controls import (
    CONTROLS,
    KEY_BINDINGS,
    apply_control,
    available_controls,
    handle_key,
    key_help,
    title_for,
    to_bool,
)


class TestApplyControl:
    def test_form_string_electron_count(self, make_atom):
        atom = make_atom()
        assert apply_control(atom, "electronCount", "4") == 4
        assert atom.delta_angle == pytest.approx(math.pi / 4)
        assert title_for(atom) == "Aesthetic Atoms: Beryllium"

    def test_form_string_radius(self, make_atom):
        atom = make_atom()
        apply_control(atom, "nucleusRadius", "12.5")
        assert atom.radius == 100

    def test_colour_input(self, make_atom):
        atom = make_atom()
        assert apply_control(atom, "electronColor", "#00ff00") == (0, 255, 0)

    def test_checkbox(self, make_atom):
        atom = make_atom()
        apply_control(atom, "spinY", "on")
        apply_control(atom, "orbits", False)
        assert atom.spin_y is True
        assert atom.enable_orbits is False

    def test_unknown_control(self, make_atom):
        with pytest.raises(KeyError):
            apply_control(make_atom(), "gravity", 1)

    def test_invalid_value(self, make_atom):
        atom = make_atom()
        with pytest.raises(AtomConfigError):
            apply_control(atom, "electronCount", "lots")
        with pytest.raises(AtomConfigError):
            apply_control(atom, "electronCount", "0")
        assert atom.electron_count == 3

    def test_feature_gated_control(self, make_atom):
        atom = make_atom(features=VERSIONS["v1"].features)
        with pytest.raises(AtomConfigError):
            apply_control(atom, "noise", True)
        assert "noise" not in available_controls(atom)
        assert "spinX" in available_controls(atom)

    def test_every_control_targets_a_property(self, make_atom):
        atom = make_atom()
        for control in CONTROLS.values():
            assert hasattr(atom, control.attribute)


class TestToBool:
    @pytest.mark.parametrize("raw", [True, 1, "on", "TRUE", "checked"])
    def test_truthy(self, raw):
        assert to_bool(raw) is True

    @pytest.mark.parametrize("raw", [False, 0, "off", "", "false"])
    def test_falsy(self, raw):
        assert to_bool(raw) is False

    def test_garbage(self):
        with pytest.raises(AtomConfigError):
            to_bool("maybe")


class TestKeys:
    def test_up_down(self, make_atom):
        atom = make_atom()
        assert handle_key(atom, "up")
        assert atom.electron_count == 4
        assert handle_key(atom, "down")
        assert handle_key(atom, "down")
        assert atom.electron_count == 2

    def test_electron_count_clamped(self, make_atom):
        atom = make_atom(electron_count=10)
        handle_key(atom, "up")
        assert atom.electron_count == 10
        atom.electron_count = 1
        handle_key(atom, "down")
        assert atom.electron_count == 1

    def test_up_past_named_elements(self, make_atom):
        atom = make_atom(max_electrons=12, electron_count=10)
        assert handle_key(atom, "up")
        assert atom.electron_count == 11
        assert title_for(atom) == "Aesthetic Atoms: 11 electrons"

    def test_speed_and_radius(self, make_atom):
        atom = make_atom()
        handle_key(atom, "left")
        handle_key(atom, "-")
        assert atom.electron_speed == 0.75
        assert atom.nucleus_radius == 14

    def test_radius_floor(self, make_atom):
        atom = make_atom(nucleus_radius=1)
        handle_key(atom, "-")
        assert atom.nucleus_radius == 1

    def test_toggles(self, make_atom):
        atom = make_atom()
        handle_key(atom, "x")
        handle_key(atom, "o")
        assert atom.spin_x is True
        assert atom.enable_orbits is False
        handle_key(atom, "x")
        assert atom.spin_x is False

    def test_unbound_key(self, make_atom):
        assert not handle_key(make_atom(), "q")

    def test_feature_gated_key(self, make_atom):
        atom = make_atom(features=VERSIONS["v1"].features)
        assert not handle_key(atom, "c")
        assert atom.nucleus_color_cycle is False

    def test_bindings_reference_known_controls(self):
        for control, _, _ in KEY_BINDINGS.values():
            assert control in CONTROLS

    def test_help_lists_keys(self):
        text = key_help()
        assert "add an electron" in text
        assert "toggle antialiasing" in text
