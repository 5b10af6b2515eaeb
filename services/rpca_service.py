from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from api.requests import RpcaOptions, RpcaSeries
from api.responses import RpcaBatchItem, RpcaPoint, RpcaResult
from config import settings
from engine.enums import ChangeType
from engine.exceptions import RpcaError
from engine.rpca import detect, options as rpca_options
from engine.rpca.options import Option, resolve_config

log = logging.getLogger(__name__)

_OPTION_BUILDERS: Dict[str, Callable[..., Option]] = {
    "frequency": rpca_options.frequency,
    "autodiff": rpca_options.autodiff,
    "forcediff": rpca_options.forcediff,
    "scale": rpca_options.scale,
    "l_penalty": rpca_options.l_penalty,
    "s_penalty": rpca_options.s_penalty,
    "max_iters": rpca_options.max_iters,
    "verbose": rpca_options.verbose,
}


def build_options(req: RpcaOptions) -> List[Option]:
    # only fields the caller actually sent override the engine defaults
    built: List[Option] = []
    for name, builder in _OPTION_BUILDERS.items():
        if name not in req.model_fields_set:
            continue
        value = getattr(req, name)
        if value is None:
            continue
        built.append(builder(value))
    return built


def analyze(
    values: Sequence[float],
    timestamps: Optional[Sequence[float]] = None,
    options: Sequence[Option] = (),
    name: str = "series",
) -> RpcaResult:
    arr = np.asarray(values, dtype=float)
    conf = resolve_config(arr.size, *options)
    anomalies, decomposed = detect(arr, conf)

    points: List[RpcaPoint] = []
    for i in anomalies.indices():
        magnitude = anomalies.values[i]
        points.append(RpcaPoint(
            index=i,
            timestamp=float(timestamps[i]) if timestamps is not None else None,
            value=float(arr[i]),
            magnitude=magnitude,
            normed_magnitude=anomalies.normed_values[i],
            change_type=ChangeType.from_magnitude(magnitude),
        ))

    log.debug("analyze %s: %d points, %d anomalies", name, arr.size, len(points))
    return RpcaResult(
        name=name,
        positions=anomalies.positions,
        values=anomalies.values,
        normed_values=anomalies.normed_values,
        points=points,
        converged=decomposed.converged if decomposed else True,
        iterations=decomposed.iterations if decomposed else 0,
        frequency=conf.frequency,
        differenced=decomposed.differenced if decomposed else False,
        scaled=decomposed.scaling.applied if decomposed else False,
        degenerate=decomposed is None and conf.scale,
    )


async def analyze_batch(
    series: Sequence[RpcaSeries],
    options: Sequence[Option] = (),
) -> List[RpcaBatchItem]:
    max_parallel = max(1, int(settings.max_parallel_series))
    sem = asyncio.Semaphore(max_parallel)

    async def _one(item: RpcaSeries) -> RpcaResult:
        async with sem:
            return await asyncio.to_thread(
                analyze, item.values, item.timestamps, options, item.name
            )

    raw = await asyncio.gather(*[_one(s) for s in series], return_exceptions=True)

    items: List[RpcaBatchItem] = []
    for item, r in zip(series, raw):
        if isinstance(r, RpcaError):
            log.warning("analyze_batch series=%s rejected: %s", item.name, r)
            items.append(RpcaBatchItem(name=item.name, error=str(r)))
            continue
        if isinstance(r, BaseException):
            raise r
        items.append(RpcaBatchItem(name=item.name, result=r))
    return items
