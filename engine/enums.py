"""
Enumerations for the direction of anomalous deviations.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum


class ChangeType(str, Enum):
    spike = "spike"
    drop = "drop"

    @classmethod
    def from_magnitude(cls, magnitude: float) -> ChangeType:
        # callers only classify non-zero sparse entries
        return cls.spike if magnitude > 0 else cls.drop
