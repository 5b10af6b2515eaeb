"""
Entry point for the RPCA Anomaly Engine API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from api.routes import router
from config import API_PREFIX, settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    log.info(
        "RPCA engine ready (frequency=%d autodiff=%s scale=%s max_iters=%d)",
        settings.default_frequency,
        settings.default_autodiff,
        settings.default_scale,
        settings.max_iters,
    )
    yield
    log.info("RPCA engine shutting down")


app = FastAPI(
    title="RPCA Anomaly Engine",
    description="Robust PCA anomaly detection for regularly sampled time series.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix=API_PREFIX)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=True,
    )
