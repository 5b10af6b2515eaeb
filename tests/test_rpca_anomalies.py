"""
Test cases for RPCA anomaly extraction, covering constant and seasonal series, injected spikes and drops, input validation and the normalized magnitude channel.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import numpy as np
import pytest

from engine.exceptions import InvalidFrequency, NotDivisible
from engine.rpca import (
    Anomalies,
    autodiff,
    decompose,
    find_anomalies,
    frequency,
    resolve_config,
    scale,
    to_anomalies,
)


def _check_consistent(anoms: Anomalies, n: int) -> None:
    assert len(anoms.positions) == len(anoms.values) == len(anoms.normed_values) == n
    for flagged, value, normed in zip(anoms.positions, anoms.values, anoms.normed_values):
        assert flagged == (value != 0)
        assert flagged == (normed != 0)


def test_constant_series_has_no_anomalies():
    series = [1.0] * 14
    anoms = find_anomalies(series, frequency(7), scale(True), autodiff(False))
    assert anoms.positions == [False] * 14
    assert anoms.values == [0.0] * 14
    assert anoms.count == 0


def test_single_spike_is_the_only_anomaly(seasonal):
    series = seasonal(spike_at=23, spike=25.0)
    anoms = find_anomalies(series, frequency(7), autodiff(False))

    _check_consistent(anoms, len(series))
    assert anoms.indices() == [23]
    assert anoms.values[23] > 20.0
    assert anoms.normed_values[23] > 0


def test_single_drop_is_the_only_anomaly(seasonal):
    series = seasonal(spike_at=40, spike=-25.0)
    anoms = find_anomalies(series, frequency(7), autodiff(False))

    _check_consistent(anoms, len(series))
    assert anoms.indices() == [40]
    assert anoms.values[40] < -20.0
    assert anoms.normed_values[40] < 0


def test_to_anomalies_unravels_in_series_order(seasonal):
    series = seasonal(spike_at=23)
    conf = resolve_config(len(series), autodiff(False))
    decomposed = decompose(series, conf)
    anoms = to_anomalies(decomposed)
    for i, value in enumerate(anoms.values):
        assert value == decomposed.s[i % 7, i // 7]
        assert anoms.normed_values[i] == decomposed.s_normed[i % 7, i // 7]


def test_defaults_with_autodiff(seasonal):
    series = seasonal(spike_at=23)
    anoms = find_anomalies(np.array(series))
    _check_consistent(anoms, len(series))


def test_invalid_frequency_and_length():
    with pytest.raises(InvalidFrequency):
        find_anomalies([1.0] * 14, frequency(0))
    with pytest.raises(NotDivisible):
        find_anomalies([float(i) for i in range(10)], frequency(3))


def test_trace_reaches_find_anomalies(seasonal):
    steps = []
    find_anomalies(seasonal(spike_at=23), autodiff(False), trace=steps.append)
    assert steps


@pytest.mark.parametrize("unit", [1e-6, 1e-13, 1e-14, 1e8])
def test_detection_does_not_depend_on_units(seasonal, unit):
    series = [v * unit for v in seasonal(spike_at=23)]
    anoms = find_anomalies(series, frequency(7), autodiff(False))
    assert anoms.indices() == [23]
    assert anoms.values[23] > 0
