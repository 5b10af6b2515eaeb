"""
Constants and configuration for the RPCA anomaly engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Optional

from pydantic_settings import BaseSettings


RPCA_HOST: str = os.getenv("RPCA_HOST", "0.0.0.0")
RPCA_PORT: int = int(os.getenv("RPCA_PORT", "4323"))
RPCA_LOG_LEVEL: str = os.getenv("RPCA_LOG_LEVEL", "info").lower()

HEALTH_PATH = "/health"
API_PREFIX = "/api/v1"


class Settings(BaseSettings):
    host: str = RPCA_HOST
    port: int = RPCA_PORT
    log_level: str = RPCA_LOG_LEVEL

    # algorithm defaults, applied before any caller supplied option
    default_frequency: int = 7
    default_autodiff: bool = True
    default_forcediff: bool = False
    default_scale: bool = True
    default_l_penalty: float = 1.0
    # sPenalty default is s_penalty_numerator / sqrt(max(F, N/F))
    s_penalty_numerator: float = 1.4
    default_verbose: bool = False

    # decomposition engine
    max_iters: int = 1000
    tolerance_ratio: float = 1e-8
    mu_floor: float = 0.01
    # std below min_std * max|value| is treated as a constant series
    min_std: float = 1e-12

    # augmented dickey-fuller stationarity test
    adf_alpha: float = 0.05
    adf_lag: Optional[int] = None
    adf_trend: bool = False
    adf_min_samples: int = 8

    # service tuning
    batch_max_series: int = 256
    max_series_length: int = 100_000
    max_parallel_series: int = 4

    model_config = {
        "env_prefix": "RPCA_",
        "extra": "ignore",
    }


settings = Settings()
