"""
Response models for API endpoints and internal data structures.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, List, Optional
import numpy as np
from pydantic import BaseModel, Field, model_serializer
from engine.enums import ChangeType


def _coerce(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _coerce(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_coerce(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


class NpModel(BaseModel):

    @model_serializer(mode="wrap")
    def _serialize(self, handler: Any) -> Any:
        return _coerce(handler(self))


class RpcaPoint(NpModel):

    index: int
    timestamp: Optional[float] = None
    value: float
    magnitude: float
    normed_magnitude: float
    change_type: ChangeType


class RpcaResult(NpModel):

    name: str = "series"
    positions: List[bool]
    values: List[float]
    normed_values: List[float]
    points: List[RpcaPoint] = Field(default_factory=list)
    converged: bool
    iterations: int
    frequency: int
    differenced: bool = False
    scaled: bool = False
    # zero variance series: scaling was requested but could not be applied
    degenerate: bool = False


class RpcaBatchItem(NpModel):

    name: str
    result: Optional[RpcaResult] = None
    error: Optional[str] = None


class RpcaBatchResult(NpModel):

    results: List[RpcaBatchItem]
    failed: int = 0
