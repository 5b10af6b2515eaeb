"""
Test cases for the RPCA decomposition engine, including reconstruction of the input by L + S + E, the iteration cap and convergence flag, differencing, scaling, and the per-iteration trace and verbose logging.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging

import numpy as np
import pytest

from engine.exceptions import DegenerateScale, InvalidFrequency, InvalidSeries, NotDivisible
from engine.rpca import preprocess
from engine.rpca.decomposition import _low_rank, _svd, compute_rpca, decompose
from engine.rpca.matrix import build_matrix, soft_threshold
from engine.rpca.options import autodiff, forcediff, frequency, max_iters, resolve_config, scale, verbose
from engine.rpca.preprocess import difference


def _conf(n, *options):
    return resolve_config(n, autodiff(False), *options)


def test_components_have_input_shape_and_reconstruct_it(seasonal):
    series = seasonal(spike_at=23)
    result = decompose(series, _conf(len(series)))
    mat = build_matrix(series, 7)

    for part in (result.l, result.s, result.e, result.s_normed):
        assert part.shape == (7, 10)
    assert np.allclose(result.l + result.s + result.e, mat)
    assert result.differenced is False
    assert result.scaling.applied is True


@pytest.mark.parametrize("cap", [1, 2, 5, 20])
def test_reconstruction_holds_at_every_iteration_count(seasonal, cap):
    series = seasonal(spike_at=23)
    result = decompose(series, _conf(len(series), max_iters(cap)))
    assert result.iterations <= cap
    assert np.allclose(result.l + result.s + result.e, build_matrix(series, 7))


def test_unscaled_reconstruction(seasonal):
    series = seasonal(spike_at=40, spike=-25.0)
    result = decompose(series, _conf(len(series), scale(False)))
    assert result.scaling.applied is False
    assert np.allclose(result.l + result.s + result.e, build_matrix(series, 7))
    assert np.array_equal(result.s, result.s_normed)


def test_normalized_sparse_is_sparse_before_rescaling(seasonal):
    series = seasonal(spike_at=23)
    result = decompose(series, _conf(len(series)))
    assert np.allclose(result.s, result.s_normed * result.scaling.std)


def test_converges_before_cap_on_periodic_signal(seasonal):
    series = seasonal(spike_at=23)
    result = decompose(series, _conf(len(series)))
    assert result.converged is True
    assert 0 < result.iterations < 1000


def test_hitting_the_cap_reports_not_converged(seasonal, caplog):
    series = seasonal(spike_at=23)
    with caplog.at_level(logging.WARNING, logger="engine.rpca.decomposition"):
        result = decompose(series, _conf(len(series), max_iters(1)))
    assert result.iterations == 1
    assert result.converged is False
    assert any("did not converge" in r.getMessage() for r in caplog.records)


def test_zero_matrix_never_iterates():
    conf = _conf(14, scale(False))
    result = compute_rpca(np.zeros((7, 2)), conf)
    assert result.iterations == 0
    assert result.converged is True
    assert not result.l.any() and not result.s.any() and not result.e.any()


def test_constant_series_cannot_be_scaled():
    with pytest.raises(DegenerateScale):
        decompose([1.0] * 14, _conf(14))


def test_invalid_input_fails_before_matrix_work():
    conf = _conf(14)
    with pytest.raises(InvalidSeries):
        decompose([], conf)
    with pytest.raises(InvalidSeries):
        decompose([1.0] * 6 + [float("nan")] + [1.0] * 7, conf)
    with pytest.raises(NotDivisible):
        decompose([1.0] * 10, conf)
    conf.frequency = 0
    with pytest.raises(InvalidFrequency):
        decompose([1.0] * 14, conf)


def test_forcediff_decomposes_the_differenced_series(seasonal):
    series = seasonal(spike_at=23)
    result = decompose(series, _conf(len(series), forcediff(True)))
    assert result.differenced is True
    assert result.s.shape == (7, 10)
    assert result.s.flags["C_CONTIGUOUS"]
    assert np.allclose(result.l + result.s + result.e, build_matrix(difference(series), 7))


def test_autodiff_differences_non_stationary_series(monkeypatch, seasonal):
    monkeypatch.setattr(preprocess, "is_stationary", lambda series: False)
    series = seasonal(spike_at=23)
    result = decompose(series, resolve_config(len(series), autodiff(True)))
    assert result.differenced is True

    monkeypatch.setattr(preprocess, "is_stationary", lambda series: True)
    result = decompose(series, resolve_config(len(series), autodiff(True)))
    assert result.differenced is False


def test_trace_is_called_once_per_iteration(seasonal):
    series = seasonal(spike_at=23)
    steps = []
    result = decompose(series, _conf(len(series)), trace=steps.append)

    assert len(steps) == result.iterations
    assert [s.iteration for s in steps] == list(range(result.iterations))
    for step in steps:
        assert step.mu > 0
        assert step.l_penalty == pytest.approx(step.mu * 1.0)
        assert step.objective == pytest.approx(0.5 * step.e_norm + step.l_norm + step.s_norm)
        assert step.next_mu >= 0.01
    for prev, nxt in zip(steps, steps[1:]):
        assert nxt.mu == prev.next_mu


def test_verbose_logs_without_changing_results(seasonal, caplog):
    series = seasonal(spike_at=23)
    quiet = decompose(series, _conf(len(series)))
    with caplog.at_level(logging.INFO, logger="engine.rpca.decomposition"):
        loud = decompose(series, _conf(len(series), verbose(True)))

    assert np.array_equal(quiet.l, loud.l)
    assert np.array_equal(quiet.s, loud.s)
    assert np.array_equal(quiet.e, loud.e)
    assert quiet.iterations == loud.iterations
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("rpca start") for m in messages)
    assert sum(m.startswith("rpca iter=") for m in messages) == loud.iterations


def test_other_frequencies(seasonal):
    series = seasonal(periods=4, frequency=12, spike_at=30)
    result = decompose(series, _conf(len(series), frequency(12)))
    assert result.shape == (12, 4)
    assert np.allclose(result.l + result.s + result.e, build_matrix(series, 12))


def test_low_rank_step_uses_thin_svd_on_wide_matrices():
    rng = np.random.default_rng(3)
    mat = rng.normal(size=(1, 4000))
    sparse = np.zeros_like(mat)

    u, values, vt = _svd(mat)
    assert u.shape == (1, 1)
    assert vt.shape == (1, 4000)

    full_u, full_values, full_vt = np.linalg.svd(mat, full_matrices=True)
    shrunk = np.maximum(soft_threshold(full_values, 0.5), 0.0)
    expected = (full_u[:, :1] * shrunk) @ full_vt[:1, :]

    l, l_norm = _low_rank(mat, sparse, 0.5)
    assert l.shape == mat.shape
    assert np.allclose(l, expected)
    assert l_norm == pytest.approx(float(np.sum(shrunk)) * 0.5)
