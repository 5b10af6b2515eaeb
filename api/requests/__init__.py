from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class RpcaOptions(BaseModel):
    frequency: Optional[int] = None
    autodiff: Optional[bool] = None
    forcediff: Optional[bool] = None
    scale: Optional[bool] = None
    l_penalty: Optional[float] = Field(default=None, gt=0)
    s_penalty: Optional[float] = Field(default=None, gt=0)
    max_iters: Optional[int] = Field(default=None, ge=1, le=10000)
    verbose: Optional[bool] = None


class RpcaSeries(BaseModel):
    name: str = "series"
    values: List[float] = Field(min_length=1)
    timestamps: Optional[List[float]] = None

    @model_validator(mode="after")
    def _timestamps_match(self) -> "RpcaSeries":
        if self.timestamps is not None and len(self.timestamps) != len(self.values):
            raise ValueError(
                f"timestamps has {len(self.timestamps)} entries but values has {len(self.values)}"
            )
        return self


class RpcaRequest(RpcaOptions, RpcaSeries):
    pass


class RpcaBatchRequest(RpcaOptions):
    series: List[RpcaSeries] = Field(min_length=1)
