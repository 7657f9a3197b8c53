"""Thermal sensor parsing and CPU sensor ranking.

Platforms expose many thermal sensors (CPU package, per-core, ACPI zones, NVMe,
wifi chips, batteries). The dashboard wants the one closest to the CPU, so each
candidate is scored by its label using ``THERMAL_SCORE_RULES``: the first rule
whose pattern matches decides the score. Ties go to the hotter sensor.
"""

from __future__ import annotations

import math
import re
from typing import Iterable

from .models import ThermalCandidate
from .rates import round1

MIN_PLAUSIBLE_C = -20.0
MAX_PLAUSIBLE_C = 150.0
MILLIDEGREE_THRESHOLD = 1000.0

THERMAL_SCORE_RULES: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"cpu|x86_pkg_temp|package|core|tctl|tdie|soc|k10temp"), 20),
    (re.compile(r"acpitz|thermal"), 8),
)
DEFAULT_SCORE = 1


def parse_temp_c(raw: str | float | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw.strip()) if isinstance(raw, str) else float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    temp_c = value / 1000.0 if value > MILLIDEGREE_THRESHOLD else value
    if temp_c < MIN_PLAUSIBLE_C or temp_c > MAX_PLAUSIBLE_C:
        return None
    return temp_c


def thermal_label_score(label: str) -> int:
    lowered = label.lower()
    for pattern, score in THERMAL_SCORE_RULES:
        if pattern.search(lowered):
            return score
    return DEFAULT_SCORE


def select_cpu_temp(candidates: Iterable[ThermalCandidate]) -> float | None:
    best: tuple[int, float] | None = None
    for candidate in candidates:
        key = (thermal_label_score(candidate.label), candidate.temp_c)
        if best is None or key > best:
            best = key
    if best is None:
        return None
    return round1(best[1])
