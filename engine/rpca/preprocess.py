"""
Preprocessing applied before the RPCA decomposition: an Augmented Dickey-Fuller unit root test deciding whether the series should be differenced, first differencing that keeps the series length, and z-score scaling of the folded matrix.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np
from statsmodels.tsa.stattools import adfuller

from config import settings
from engine.exceptions import DegenerateScale
from engine.rpca.matrix import ArrayLike
from engine.rpca.options import RpcaConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scaling:
    mean: float = 0.0
    std: float = 1.0
    applied: bool = False


def is_stationary(
    series: ArrayLike,
    lag: Optional[int] = None,
    trend: bool | None = None,
    alpha: float | None = None,
) -> bool:
    """Augmented Dickey-Fuller test: True when the unit root is rejected.

    ``lag`` is the fixed lag order (None lets statsmodels pick its default
    maximum), ``trend`` adds a linear trend term to the regression.
    Constant series and series too short for the regression carry no unit
    root evidence and are reported as stationary.
    """
    if lag is None:
        lag = settings.adf_lag
    if trend is None:
        trend = settings.adf_trend
    if alpha is None:
        alpha = settings.adf_alpha

    arr = np.asarray(series, dtype=float)
    if arr.size < settings.adf_min_samples:
        log.debug("is_stationary: %d samples below adf_min_samples, skipping test", arr.size)
        return True
    if np.ptp(arr) == 0:
        return True

    try:
        with warnings.catch_warnings():
            # newer statsmodels warns that the tuple return becomes a result object
            warnings.simplefilter("ignore", FutureWarning)
            result = adfuller(arr, maxlag=lag, regression="ct" if trend else "c", autolag=None)
    except (ValueError, np.linalg.LinAlgError) as exc:
        log.warning("is_stationary: ADF test failed on %d samples: %s", arr.size, exc)
        return True

    p_value = _adf_pvalue(result)
    log.debug("is_stationary: p=%.4f alpha=%.3f", p_value, alpha)
    return p_value < alpha


def _adf_pvalue(result) -> float:
    pvalue = getattr(result, "pvalue", None)
    if pvalue is None:
        pvalue = result[1]
    return float(pvalue)


def difference(series: ArrayLike) -> np.ndarray:
    arr = np.asarray(series, dtype=float)
    if arr.size == 0:
        return arr.copy()
    return np.concatenate(([0.0], np.diff(arr)))


def needs_difference(series: ArrayLike, conf: RpcaConfig) -> bool:
    if conf.forcediff:
        return True
    if conf.autodiff:
        return not is_stationary(series)
    return False


def normalize(mat: np.ndarray) -> tuple[np.ndarray, Scaling]:
    mean = float(np.mean(mat))
    std = float(np.std(mat))
    # relative to the largest magnitude so the check does not depend on units
    peak = float(np.max(np.abs(mat))) if mat.size else 0.0
    if not np.isfinite(std) or std <= settings.min_std * peak:
        raise DegenerateScale(
            f"cannot scale a matrix with standard deviation {std!r} (mean {mean!r})"
        )
    return (mat - mean) / std, Scaling(mean=mean, std=std, applied=True)


def denormalize(
    l: np.ndarray, s: np.ndarray, e: np.ndarray, scaling: Scaling
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    # only the low-rank level gets the mean back; S and E are deviations
    if not scaling.applied:
        return l, s, e
    return l * scaling.std + scaling.mean, s * scaling.std, e * scaling.std
