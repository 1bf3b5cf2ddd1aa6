from __future__ import annotations

import pytest

from rain_engine import RandomSource


class FixedRandom(RandomSource):
    """Always draws the same value, so every decision is predictable."""

    def __init__(self, value: float) -> None:
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def fixed_random():
    return FixedRandom
