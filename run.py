#!/usr/bin/env python3

"""
Smoke test runner for the RPCA Anomaly Engine API.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import math
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List

import httpx

BASE_URL = os.getenv("RPCA_BASE_URL", "http://localhost:4323/api/v1")
HEADERS = {"Content-Type": "application/json"}


def seasonal(periods: int = 10, frequency: int = 7, spike_at: int | None = None, spike: float = 25.0) -> List[float]:
    vals = [10.0 + math.sin(2 * math.pi * i / frequency) for i in range(periods * frequency)]
    if spike_at is not None:
        vals[spike_at] += spike
    return vals


@dataclass(frozen=True)
class Case:
    label: str
    method: str
    path: str
    body: Dict[str, Any] = field(default_factory=dict)
    expect: int = 200
    section: str = ""


CASES: list[Case] = [
    # ── Health ────────────────────────────────────────────
    Case("health", "GET", "/health", section="Health"),

    # ── Single series ─────────────────────────────────────
    Case("constant series", "POST", "/anomalies/rpca", section="Single series",
         body={"values": [1.0] * 14, "frequency": 7, "autodiff": False}),
    Case("seasonal with spike", "POST", "/anomalies/rpca", section="Single series",
         body={"values": seasonal(spike_at=23), "frequency": 7, "autodiff": False}),
    Case("seasonal with drop", "POST", "/anomalies/rpca", section="Single series",
         body={"values": seasonal(spike_at=40, spike=-25.0), "frequency": 7, "autodiff": False}),
    Case("forced differencing", "POST", "/anomalies/rpca", section="Single series",
         body={"values": seasonal(spike_at=23), "frequency": 7, "forcediff": True}),
    Case("unscaled", "POST", "/anomalies/rpca", section="Single series",
         body={"values": seasonal(spike_at=23), "frequency": 7, "scale": False, "autodiff": False}),
    Case("custom penalties", "POST", "/anomalies/rpca", section="Single series",
         body={"values": seasonal(spike_at=23), "frequency": 7, "l_penalty": 2.0, "s_penalty": 0.2}),
    Case("with timestamps", "POST", "/anomalies/rpca", section="Single series",
         body={"values": seasonal(spike_at=5), "timestamps": [1_700_000_000 + 60 * i for i in range(70)],
               "frequency": 7, "autodiff": False}),

    # ── Batch ─────────────────────────────────────────────
    Case("batch of two", "POST", "/anomalies/rpca/batch", section="Batch",
         body={"frequency": 7, "autodiff": False, "series": [
             {"name": "a", "values": seasonal(spike_at=3)},
             {"name": "b", "values": seasonal(spike_at=50, spike=-25.0)},
         ]}),
    Case("batch with one bad series", "POST", "/anomalies/rpca/batch", section="Batch",
         body={"frequency": 7, "series": [
             {"name": "ok", "values": seasonal()},
             {"name": "short", "values": [1.0, 2.0, 3.0]},
         ]}),

    # ── Validation ────────────────────────────────────────
    Case("zero frequency", "POST", "/anomalies/rpca", section="Validation",
         body={"values": [1.0] * 14, "frequency": 0}, expect=400),
    Case("not divisible", "POST", "/anomalies/rpca", section="Validation",
         body={"values": [1.0] * 10, "frequency": 3}, expect=400),
    Case("empty values", "POST", "/anomalies/rpca", section="Validation",
         body={"values": []}, expect=422),
    Case("timestamp length mismatch", "POST", "/anomalies/rpca", section="Validation",
         body={"values": [1.0] * 14, "timestamps": [1.0]}, expect=422),
    Case("negative penalty", "POST", "/anomalies/rpca", section="Validation",
         body={"values": [1.0] * 14, "l_penalty": -1.0}, expect=422),
]


async def run_case(client: httpx.AsyncClient, case: Case) -> tuple[bool, str, Any]:
    attempt = 0
    last_exc: Exception | None = None
    while attempt < 2:
        try:
            if case.method == "GET":
                r = await client.get(case.path)
            else:
                r = await client.request(case.method, case.path, json=case.body or None)
            ok = r.status_code == case.expect
            body: Any = None
            try:
                body = r.json()
            except ValueError:
                body = r.text
            if ok:
                return True, "", body
            return False, f"{r.status_code} {r.reason_phrase}: {body}", body
        except httpx.TransportError as exc:
            last_exc = exc
            attempt += 1
            if attempt < 2:
                await asyncio.sleep(0.1)
                continue
            return False, f"transport error: {exc}", None
    return False, str(last_exc), None


def _summary(body: Any) -> str:
    if isinstance(body, dict) and "points" in body:
        idx = [p["index"] for p in body["points"]]
        return f"anomalies={idx} converged={body.get('converged')} iterations={body.get('iterations')}"
    if isinstance(body, dict) and "results" in body:
        parts = []
        for item in body["results"]:
            if item.get("error"):
                parts.append(f"{item['name']}: error")
            else:
                parts.append(f"{item['name']}: {[p['index'] for p in item['result']['points']]}")
        return "; ".join(parts)
    return str(body)


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="Run API smoke cases")
    parser.add_argument("--section", help="only run cases from this section name")
    parser.add_argument("--label", help="only run the case with this exact label")
    args = parser.parse_args()
    selected: list[Case] = []
    for c in CASES:
        if args.section and c.section != args.section:
            continue
        if args.label and c.label != args.label:
            continue
        selected.append(c)
    if not selected:
        print("no matching cases (check --section or --label)")
        sys.exit(1)

    passed = failed = 0
    current_section = ""

    async with httpx.AsyncClient(base_url=BASE_URL, headers=HEADERS, timeout=60) as client:
        for case in selected:
            if case.section != current_section:
                current_section = case.section
                print(f"\n── {current_section} {'─' * max(0, 44 - len(current_section))}")

            ok, detail, body = await run_case(client, case)
            if ok:
                passed += 1
                print(f"  ✓ PASS  {case.method} {case.path} — {case.label}")
                print(f"         {_summary(body)}")
            else:
                failed += 1
                print(f"  ✗ FAIL  {case.method} {case.path} — {case.label} (expected {case.expect})")
                if detail:
                    print(f"         {detail}")

    total = passed + failed
    print(f"\n{'━' * 43}")
    print(f"  Results: {passed} passed / {failed} failed / {total} total")
    print(f"  {'All cases passed ✓' if failed == 0 else f'{failed} case(s) failed ✗'}")
    print(f"{'━' * 43}\n")
    sys.exit(0 if failed == 0 else 1)


if __name__ == "__main__":
    asyncio.run(main())
