import math
import os
import sys

import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def make_seasonal(periods=10, frequency=7, level=10.0, spike_at=None, spike=25.0):
    vals = [level + math.sin(2 * math.pi * i / frequency) for i in range(periods * frequency)]
    if spike_at is not None:
        vals[spike_at] += spike
    return vals


@pytest.fixture
def seasonal():
    """Factory for a smooth period-7 signal with an optional injected outlier."""
    return make_seasonal
