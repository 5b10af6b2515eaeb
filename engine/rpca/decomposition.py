"""
Stable Principal Component Pursuit decomposition of a folded time series into a low-rank (L), sparse (S) and noise (E) component.

The solver minimises 0.5 * ||E||^2 + lambda_L * ||L||_* + lambda_S * ||S||_1
subject to M = L + S + E by alternating an elementwise soft-threshold for S
with a singular value soft-threshold for L. Both penalties are scaled by a
rate ``mu`` that is re-estimated from the spread of E after every iteration,
and the loop stops once the objective changes by less than a fixed fraction
of its initial value, or when the iteration cap is reached.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Tuple

import numpy as np
from scipy import linalg

from config import settings
from engine.exceptions import InvalidSeries
from engine.rpca.matrix import (
    ArrayLike,
    build_matrix,
    dynamic_mu,
    l1_norm,
    soft_threshold,
    spectral_norm,
    validate_frequency,
)
from engine.rpca.options import RpcaConfig
from engine.rpca.preprocess import Scaling, denormalize, difference, needs_difference, normalize

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationTrace:
    iteration: int
    mu: float
    l_penalty: float
    s_penalty: float
    l_norm: float
    s_norm: float
    e_norm: float
    objective: float
    difference: float
    next_mu: float


TraceSink = Callable[[IterationTrace], None]


@dataclass
class DecomposedResult:
    l: np.ndarray
    s: np.ndarray
    e: np.ndarray
    # S before rescaling by the series std, comparable across series
    s_normed: np.ndarray
    converged: bool
    iterations: int
    differenced: bool = False
    scaling: Scaling = field(default_factory=Scaling)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.s.shape


def _svd(mat: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    try:
        return linalg.svd(mat, full_matrices=False, lapack_driver="gesdd")
    except linalg.LinAlgError:
        log.debug("gesdd did not converge on %s matrix, retrying with gesvd", mat.shape)
        return linalg.svd(mat, full_matrices=False, lapack_driver="gesvd")


def _sparse(mat: np.ndarray, l: np.ndarray, penalty: float) -> Tuple[np.ndarray, float]:
    s = soft_threshold(mat - l, penalty)
    return s, l1_norm(s) * penalty


def _low_rank(mat: np.ndarray, s: np.ndarray, penalty: float) -> Tuple[np.ndarray, float]:
    u, values, vt = _svd(mat - s)
    shrunk = np.maximum(soft_threshold(values, penalty), 0.0)
    k = shrunk.size
    l = (u[:, :k] * shrunk) @ vt[:k, :]
    return l, float(np.sum(shrunk)) * penalty


def _noise(mat: np.ndarray, l: np.ndarray, s: np.ndarray) -> Tuple[np.ndarray, float]:
    e = mat - l - s
    return e, spectral_norm(e) ** 2


def compute_rpca(
    mat: np.ndarray,
    conf: RpcaConfig,
    trace: Optional[TraceSink] = None,
) -> DecomposedResult:
    mat = np.array(mat, dtype=float)
    rows, cols = mat.shape

    scaling = Scaling()
    if conf.scale:
        mat, scaling = normalize(mat)
        if conf.verbose:
            log.info("rpca scaling mean=%.6g std=%.6g", scaling.mean, scaling.std)

    l = np.zeros((rows, cols))
    s = np.zeros((rows, cols))
    e = np.zeros((rows, cols))

    norm1 = l1_norm(mat)
    previous = 0.5 * spectral_norm(mat) ** 2
    total = settings.tolerance_ratio * previous
    # an all-zero matrix has zero tolerance and never enters the loop
    diff = 2.0 * total
    mu = (rows * cols) / (4.0 * norm1) if norm1 > 0 else settings.mu_floor

    if conf.verbose:
        log.info(
            "rpca start shape=%dx%d objective=%.6g tolerance=%.6g mu=%.6g l1=%.6g",
            rows, cols, previous, total, mu, norm1,
        )

    iterations = 0
    while diff > total and iterations < conf.max_iters:
        lam_l = mu * conf.l_penalty
        lam_s = mu * conf.s_penalty

        s, s_norm = _sparse(mat, l, lam_s)
        l, l_norm = _low_rank(mat, s, lam_l)
        e, e_norm = _noise(mat, l, s)

        objective = 0.5 * e_norm + l_norm + s_norm
        diff = abs(previous - objective)
        previous = objective

        next_mu = dynamic_mu(e, settings.mu_floor)
        step = IterationTrace(
            iteration=iterations,
            mu=mu,
            l_penalty=lam_l,
            s_penalty=lam_s,
            l_norm=l_norm,
            s_norm=s_norm,
            e_norm=e_norm,
            objective=objective,
            difference=diff,
            next_mu=next_mu,
        )
        if conf.verbose:
            log.info(
                "rpca iter=%d mu=%.6g lambda_l=%.6g lambda_s=%.6g norms L=%.6g S=%.6g E=%.6g objective=%.6g diff=%.3g",
                step.iteration, step.mu, step.l_penalty, step.s_penalty,
                step.l_norm, step.s_norm, step.e_norm, step.objective, step.difference,
            )
        if trace is not None:
            trace(step)

        mu = next_mu
        iterations += 1

    converged = iterations < conf.max_iters
    if not converged:
        log.warning(
            "rpca did not converge within %d iterations (last diff=%.3g, tolerance=%.3g)",
            conf.max_iters, diff, total,
        )

    s_normed = s.copy()
    l, s, e = denormalize(l, s, e, scaling)
    return DecomposedResult(
        l=np.ascontiguousarray(l.reshape(rows, cols)),
        s=np.ascontiguousarray(s.reshape(rows, cols)),
        e=np.ascontiguousarray(e.reshape(rows, cols)),
        s_normed=np.ascontiguousarray(s_normed.reshape(rows, cols)),
        converged=converged,
        iterations=iterations,
        scaling=scaling,
    )


def decompose(
    series: ArrayLike,
    conf: RpcaConfig,
    trace: Optional[TraceSink] = None,
) -> DecomposedResult:
    """Decompose ``series`` folded by ``conf.frequency`` into L + S + E.

    The series may be replaced by its zero-padded first difference (see
    :func:`needs_difference`) before folding. The returned matrices stay in
    that differenced space, rescaled back by the series std when scaling
    was applied.
    """
    arr = np.asarray(series, dtype=float).ravel()
    if arr.size == 0:
        raise InvalidSeries("cannot decompose an empty series")
    validate_frequency(arr.size, conf.frequency)
    if not np.all(np.isfinite(arr)):
        raise InvalidSeries("series contains NaN or infinite values")

    differenced = needs_difference(arr, conf)
    if differenced:
        arr = difference(arr)
        log.debug("decompose: differenced series of %d points", arr.size)

    mat = build_matrix(arr, conf.frequency)
    result = compute_rpca(mat, conf, trace)
    return replace(result, differenced=differenced)
