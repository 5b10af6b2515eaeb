"""
Health check route reporting service liveness and the engine defaults in effect.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from config import HEALTH_PATH, settings
from api.routes.exception import handle_exceptions

router = APIRouter(tags=["Health"])


@router.get(HEALTH_PATH)
@handle_exceptions
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "engine": {
            "frequency": settings.default_frequency,
            "autodiff": settings.default_autodiff,
            "scale": settings.default_scale,
            "max_iters": settings.max_iters,
        },
    }
