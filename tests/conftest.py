"""Shared fixtures: headless SDL, project root on sys.path, seeded rng, fake clock."""

import os
import random
import sys
from pathlib import Path

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, ms=0.0):
        self.ms = ms

    def __call__(self):
        return self.ms

    def advance(self, ms):
        self.ms += ms


class FakeScheduler:
    def __init__(self):
        self.requests = []
        self.stopped = False

    def request_frame(self, callback):
        self.requests.append(callback)

    def stop(self):
        self.stopped = True


class FixedRandom(random.Random):
    """random() pinned to one value; everything else stays seeded."""

    def __init__(self, value, seed=7):
        super().__init__(seed)
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def pygame_ready():
    import pygame
    pygame.init()
    yield pygame
    pygame.quit()


@pytest.fixture
def fixed_random():
    return FixedRandom
