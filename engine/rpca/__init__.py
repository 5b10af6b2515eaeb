"""
RPCA subpackage for the anomaly engine.

Re-exports the decomposition and anomaly entry points together with the
option functions, so callers can write::

    from engine import rpca

    anoms = rpca.find_anomalies(series, rpca.frequency(24), rpca.autodiff(False))

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.rpca.anomalies import Anomalies, detect, find_anomalies, to_anomalies
from engine.rpca.decomposition import DecomposedResult, IterationTrace, decompose
from engine.rpca.options import (
    RpcaConfig,
    autodiff,
    forcediff,
    frequency,
    l_penalty,
    max_iters,
    resolve_config,
    s_penalty,
    scale,
    verbose,
)

__all__ = [
    "Anomalies",
    "DecomposedResult",
    "IterationTrace",
    "RpcaConfig",
    "autodiff",
    "decompose",
    "detect",
    "find_anomalies",
    "forcediff",
    "frequency",
    "l_penalty",
    "max_iters",
    "resolve_config",
    "s_penalty",
    "scale",
    "to_anomalies",
    "verbose",
]
