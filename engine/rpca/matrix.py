"""
Matrix layout and numeric helpers for RPCA: folding a series into a period-by-cycle matrix, unravelling it back into series order, and the thresholding and norm primitives shared by the decomposition.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
from typing import Sequence, Union

import numpy as np

from engine.exceptions import InvalidFrequency, NotDivisible

ArrayLike = Union[Sequence[float], np.ndarray]


def validate_frequency(length: int, frequency: int) -> None:
    if frequency <= 0:
        raise InvalidFrequency(f"frequency must be positive, got {frequency}")
    if length % frequency != 0:
        raise NotDivisible(
            f"series length {length} is not evenly divisible by frequency {frequency}"
        )


def build_matrix(series: ArrayLike, frequency: int) -> np.ndarray:
    """Fold ``series`` into a ``frequency`` x ``len(series) / frequency`` matrix.

    Element ``(row, col)`` is ``series[col * frequency + row]`` so each column
    holds one full period.
    """
    arr = np.asarray(series, dtype=float).ravel()
    validate_frequency(arr.size, frequency)
    cols = arr.size // frequency
    return np.array(arr.reshape(cols, frequency).T, order="C")


def unravel(mat: np.ndarray) -> np.ndarray:
    # inverse of build_matrix: column-major walk restores series order
    return np.asarray(mat, dtype=float).ravel(order="F").copy()


def soft_threshold(values: ArrayLike, penalty: float) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return np.sign(arr) * np.maximum(np.abs(arr) - penalty, 0.0)


def l1_norm(mat: ArrayLike) -> float:
    return float(np.sum(np.abs(mat)))


def spectral_norm(mat: np.ndarray) -> float:
    if mat.size == 0:
        return 0.0
    return float(np.linalg.norm(mat, 2))


def dynamic_mu(e: np.ndarray, floor: float) -> float:
    rows, cols = e.shape
    mu = float(np.std(e)) * math.sqrt(2.0 * max(rows, cols))
    return max(floor, mu)
