"""
Binding layer between user controls and the atom's properties.

Control names are the input ids of the web page form. Values arrive
the way form inputs deliver them (strings for numbers and colours,
checkbox states as booleans or "on"/"off") and are coerced before the
property setter validates them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from aesthetic_atoms.atom import Atom, AtomConfigError

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "on", "yes", "checked"}
_FALSE = {"0", "false", "off", "no", ""}


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise AtomConfigError(f"Cannot read {value!r} as a checkbox state")


def to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise AtomConfigError(f"Cannot read {value!r} as a number") from None


def to_int(value: Any) -> int:
    number = to_float(value)
    if not number.is_integer():
        raise AtomConfigError(f"Cannot read {value!r} as a whole number")
    return int(number)


def to_color(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class Control:
    attribute: str
    coerce: Callable[[Any], Any]
    feature: Optional[str] = None


CONTROLS: Dict[str, Control] = {
    "nucleusRadius": Control("nucleus_radius", to_float),
    "electronCount": Control("electron_count", to_int),
    "electronSpeed": Control("electron_speed", to_float),
    "nucleusColor": Control("nucleus_color", to_color),
    "electronColor": Control("electron_color", to_color),
    "nucleusVibrate": Control("nucleus_vibrate", to_bool),
    "electronVibrate": Control("electron_vibrate", to_bool),
    "spinX": Control("spin_x", to_bool),
    "spinY": Control("spin_y", to_bool),
    "spinZ": Control("spin_z", to_bool),
    "orbits": Control("enable_orbits", to_bool),
    "noise": Control("nucleus_noise", to_bool, feature="noise"),
    "smoothing": Control("smoothing", to_bool, feature="antialiasing"),
    "nucleusColorCycle": Control("nucleus_color_cycle", to_bool, feature="color_cycling"),
    "electronColorCycle": Control("electron_color_cycle", to_bool, feature="color_cycling"),
    "nucleusColorCycleRate": Control("nucleus_color_cycle_rate", to_float, feature="color_cycling"),
    "electronColorCycleRate": Control("electron_color_cycle_rate", to_float, feature="color_cycling"),
}


def available_controls(atom: Atom) -> Tuple[str, ...]:
    """Control names usable with this atom's feature set."""
    return tuple(
        name for name, control in CONTROLS.items()
        if control.feature is None or getattr(atom.features, control.feature)
    )


def apply_control(atom: Atom, name: str, raw: Any) -> Any:
    """
    Coerce ``raw`` and assign it to the property bound to control ``name``.

    Returns:
        The value read back from the atom after assignment.

    Raises:
        KeyError: Unknown control name.
        AtomConfigError: Invalid value, or the control's feature is disabled.
    """
    control = CONTROLS[name]
    if control.feature is not None and not getattr(atom.features, control.feature):
        raise AtomConfigError(f"Control {name!r} needs the {control.feature!r} feature")

    setattr(atom, control.attribute, control.coerce(raw))
    value = getattr(atom, control.attribute)
    logger.debug("%s -> %s = %r", name, control.attribute, value)
    return value


def title_for(atom: Atom) -> str:
    """Page/window title naming the current element."""
    return f"Aesthetic Atoms: {atom.display_name}"


# ----------------------------------------------------------------------
# Keyboard bindings (used by the pygame viewer)
# ----------------------------------------------------------------------

def _toggle(name: str) -> Callable[[Atom], None]:
    def action(atom: Atom):
        attribute = CONTROLS[name].attribute
        apply_control(atom, name, not getattr(atom, attribute))
    return action


def _step_electrons(step: int) -> Callable[[Atom], None]:
    def action(atom: Atom):
        target = min(max(atom.electron_count + step, 1), atom.maximum_number_of_electrons)
        apply_control(atom, "electronCount", target)
    return action


def _step_speed(step: float) -> Callable[[Atom], None]:
    def action(atom: Atom):
        apply_control(atom, "electronSpeed", atom.electron_speed + step)
    return action


def _step_radius(step: float) -> Callable[[Atom], None]:
    def action(atom: Atom):
        apply_control(atom, "nucleusRadius", max(1.0, atom.nucleus_radius + step))
    return action


KEY_BINDINGS: Dict[str, Tuple[str, str, Callable[[Atom], None]]] = {
    # key: (control, help text, action)
    "up": ("electronCount", "add an electron", _step_electrons(1)),
    "down": ("electronCount", "remove an electron", _step_electrons(-1)),
    "right": ("electronSpeed", "faster orbits", _step_speed(0.25)),
    "left": ("electronSpeed", "slower orbits", _step_speed(-0.25)),
    "=": ("nucleusRadius", "bigger nucleus", _step_radius(1.0)),
    "-": ("nucleusRadius", "smaller nucleus", _step_radius(-1.0)),
    "n": ("nucleusVibrate", "toggle nucleus vibration", _toggle("nucleusVibrate")),
    "e": ("electronVibrate", "toggle electron vibration", _toggle("electronVibrate")),
    "x": ("spinX", "toggle spin about x", _toggle("spinX")),
    "y": ("spinY", "toggle spin about y", _toggle("spinY")),
    "z": ("spinZ", "toggle spin about z", _toggle("spinZ")),
    "o": ("orbits", "toggle orbit rings", _toggle("orbits")),
    "r": ("noise", "toggle nucleus noise", _toggle("noise")),
    "s": ("smoothing", "toggle antialiasing", _toggle("smoothing")),
    "c": ("nucleusColorCycle", "toggle nucleus colour cycling", _toggle("nucleusColorCycle")),
    "v": ("electronColorCycle", "toggle electron colour cycling", _toggle("electronColorCycle")),
}


def handle_key(atom: Atom, key: str) -> bool:
    """
    Run the action bound to ``key``.

    Returns:
        True if the key changed the atom; False for unbound keys and for
        controls the atom's feature set does not offer.
    """
    binding = KEY_BINDINGS.get(key)
    if binding is None:
        return False
    control, _, action = binding
    if control not in available_controls(atom):
        return False
    action(atom)
    return True


def key_help() -> str:
    return "\n".join(f"  {key:>5}  {text}" for key, (_, text, _) in KEY_BINDINGS.items())
