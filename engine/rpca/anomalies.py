"""
Anomaly extraction from an RPCA decomposition: the sparse component is unravelled back into series order, and every non-zero entry marks an anomalous point with a signed magnitude.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from engine.exceptions import DegenerateScale
from engine.rpca.decomposition import DecomposedResult, TraceSink, decompose
from engine.rpca.matrix import ArrayLike, unravel
from engine.rpca.options import Option, RpcaConfig, resolve_config

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anomalies:
    # one entry per input point, in input order
    positions: List[bool]
    # zero when not anomalous, negative when anomalously low
    values: List[float]
    # same magnitudes in z-scored space, for comparing across series
    normed_values: List[float]

    @property
    def count(self) -> int:
        return sum(self.positions)

    def indices(self) -> List[int]:
        return [i for i, flagged in enumerate(self.positions) if flagged]

    @classmethod
    def empty(cls, length: int) -> Anomalies:
        return cls(
            positions=[False] * length,
            values=[0.0] * length,
            normed_values=[0.0] * length,
        )


def to_anomalies(decomposed: DecomposedResult) -> Anomalies:
    values = unravel(decomposed.s)
    normed = unravel(decomposed.s_normed)
    return Anomalies(
        positions=[bool(v != 0) for v in values],
        values=[float(v) for v in values],
        normed_values=[float(v) for v in normed],
    )


def detect(
    series: ArrayLike,
    conf: RpcaConfig,
    trace: Optional[TraceSink] = None,
) -> Tuple[Anomalies, Optional[DecomposedResult]]:
    # a series with no variance has nothing to deviate from
    arr = np.asarray(series, dtype=float).ravel()
    try:
        decomposed = decompose(arr, conf, trace=trace)
    except DegenerateScale as exc:
        log.info("detect: zero variance series of %d points, no anomalies (%s)", arr.size, exc)
        return Anomalies.empty(arr.size), None
    return to_anomalies(decomposed), decomposed


def find_anomalies(
    series: ArrayLike,
    *options: Option,
    trace: Optional[TraceSink] = None,
) -> Anomalies:
    """Flag anomalous points of ``series``.

    Options are built with the functions in :mod:`engine.rpca.options`::

        find_anomalies(series, frequency(24), autodiff(False), s_penalty(0.5))

    A series with no variance is returned with no anomalies.
    """
    arr = np.asarray(series, dtype=float).ravel()
    conf = resolve_config(arr.size, *options)
    anomalies, _ = detect(arr, conf, trace=trace)
    return anomalies
