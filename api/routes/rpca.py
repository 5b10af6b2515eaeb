"""
RPCA anomaly routes: decompose one or many series into low-rank, sparse and noise parts and report the points carried by the sparse component.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException

from api.requests import RpcaBatchRequest, RpcaRequest
from api.responses import RpcaBatchResult, RpcaResult
from api.routes.exception import handle_exceptions
from config import settings
from services import rpca_service

router = APIRouter(tags=["RPCA"])


def _check_length(name: str, size: int) -> None:
    if size > settings.max_series_length:
        raise HTTPException(
            status_code=400,
            detail=f"series {name} holds {size} points; the limit is {settings.max_series_length}",
        )


@router.post("/anomalies/rpca", response_model=RpcaResult, summary="RPCA anomalies for one series")
@handle_exceptions
async def rpca_anomalies(req: RpcaRequest) -> RpcaResult:
    _check_length(req.name, len(req.values))
    options = rpca_service.build_options(req)
    return await asyncio.to_thread(
        rpca_service.analyze, req.values, req.timestamps, options, req.name
    )


@router.post("/anomalies/rpca/batch", response_model=RpcaBatchResult, summary="RPCA anomalies for many series")
@handle_exceptions
async def rpca_batch(req: RpcaBatchRequest) -> RpcaBatchResult:
    if len(req.series) > settings.batch_max_series:
        raise HTTPException(
            status_code=400,
            detail=f"batch holds {len(req.series)} series; the limit is {settings.batch_max_series}",
        )
    for item in req.series:
        _check_length(item.name, len(item.values))
    options = rpca_service.build_options(req)
    items = await rpca_service.analyze_batch(req.series, options)
    return RpcaBatchResult(
        results=items,
        failed=sum(1 for item in items if item.error is not None),
    )
