import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


class FixedRandom:
    """Source that returns scripted ``next()`` values, for pinning weighted draws."""

    def __init__(self, values):
        self._values = list(values)
        self.calls = 0

    def next(self):
        self.calls += 1
        return self._values.pop(0)

    def range(self, min_value, max_value):
        return min_value + int(self.next() * (max_value - min_value))

    def range_float(self, min_value, max_value):
        return min_value + self.next() * (max_value - min_value)


@pytest.fixture
def fixed_random():
    return FixedRandom
