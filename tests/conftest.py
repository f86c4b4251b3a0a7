"""Pytest configuration and shared fixtures."""

import os

import pytest

from aesthetic_atoms.atom import Atom, AtomConfig

# pygame must not try to open a real display during tests
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_atom(clock):
    """Build a seeded atom on the fake clock."""

    def _make(seed: int = 7, **overrides) -> Atom:
        return Atom(AtomConfig(**overrides), seed=seed, clock=clock)

    return _make
