"""
Configuration for a single RPCA decomposition, built by applying option functions over the engine defaults from settings so that callers only state what they want changed.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

from config import settings
from engine.exceptions import InvalidOption
from engine.rpca.matrix import validate_frequency


@dataclass
class RpcaConfig:
    frequency: int
    autodiff: bool
    forcediff: bool
    scale: bool
    l_penalty: float
    s_penalty: float
    verbose: bool
    max_iters: int

    @classmethod
    def defaults(cls) -> RpcaConfig:
        return cls(
            frequency=settings.default_frequency,
            autodiff=settings.default_autodiff,
            forcediff=settings.default_forcediff,
            scale=settings.default_scale,
            l_penalty=settings.default_l_penalty,
            s_penalty=settings.s_penalty_numerator,
            verbose=settings.default_verbose,
            max_iters=settings.max_iters,
        )


Option = Callable[[RpcaConfig], None]


def _positive(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidOption(f"{name} must be a positive number, got {value!r}")
    return value


def frequency(freq: int) -> Option:
    def apply(conf: RpcaConfig) -> None:
        conf.frequency = int(freq)
    return apply


def autodiff(active: bool) -> Option:
    def apply(conf: RpcaConfig) -> None:
        conf.autodiff = bool(active)
    return apply


def forcediff(active: bool) -> Option:
    def apply(conf: RpcaConfig) -> None:
        conf.forcediff = bool(active)
    return apply


def scale(active: bool) -> Option:
    def apply(conf: RpcaConfig) -> None:
        conf.scale = bool(active)
    return apply


def l_penalty(penalty: float) -> Option:
    value = _positive("l_penalty", penalty)

    def apply(conf: RpcaConfig) -> None:
        conf.l_penalty = value
    return apply


def s_penalty(penalty: float) -> Option:
    value = _positive("s_penalty", penalty)

    def apply(conf: RpcaConfig) -> None:
        conf.s_penalty = value
    return apply


def verbose(active: bool) -> Option:
    def apply(conf: RpcaConfig) -> None:
        conf.verbose = bool(active)
    return apply


def max_iters(limit: int) -> Option:
    if int(limit) < 1:
        raise InvalidOption(f"max_iters must be at least 1, got {limit!r}")

    def apply(conf: RpcaConfig) -> None:
        conf.max_iters = int(limit)
    return apply


def default_s_penalty(length: int, freq: int) -> float:
    return settings.s_penalty_numerator / math.sqrt(max(float(freq), length / float(freq)))


def resolve_config(length: int, *options: Option) -> RpcaConfig:
    """Resolve the configuration for a series of ``length`` points.

    Options are applied once so the frequency is known, the frequency
    dependent sPenalty default is derived, and the options are applied
    again so an explicit ``s_penalty`` option wins over the derived value.
    Raises :class:`InvalidFrequency` or :class:`NotDivisible` before any
    default is derived from a bad frequency.
    """
    conf = RpcaConfig.defaults()
    for option in options:
        option(conf)

    validate_frequency(length, conf.frequency)
    conf.s_penalty = default_s_penalty(length, conf.frequency)

    for option in options:
        option(conf)
    return conf
