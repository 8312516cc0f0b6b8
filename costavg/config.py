"""Named allocator presets and JSON overrides for the simulation scripts."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional

from .allocators import (
    DAYS_PER_ROUND,
    CostAverageMethod,
    FixedFractionAverage,
    FixedIntervalAverage,
)
from .ladder import AdaptiveLadder, Ladder

DEFAULT_USE_RATIO = 0.817
DEFAULT_TARGET_CASH_RATIO = 0.8
DEFAULT_REBALANCE_STEP = 0.005
DEFAULT_HORIZON = 150
DEFAULT_REINVEST_DAILY_PERCENTAGE = 0.01

KINDS = ("fixed-interval", "fixed-fraction", "ladder", "adaptive")


@dataclass(frozen=True)
class LadderSettings:
    """Parameters needed to build any of the supported allocators."""

    kind: str = "ladder"
    use_ratio: float = DEFAULT_USE_RATIO
    target_cash_ratio: float = DEFAULT_TARGET_CASH_RATIO
    rebalance_step: float = DEFAULT_REBALANCE_STEP
    horizon: int = DEFAULT_HORIZON
    reinvest_daily_percentage: float = DEFAULT_REINVEST_DAILY_PERCENTAGE
    days_per_round: int = DAYS_PER_ROUND
    early_break: bool = False

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"Unknown allocator kind '{self.kind}'. Choose from: {', '.join(KINDS)}")


STRATEGIES: Dict[str, LadderSettings] = {
    "fixed-interval": LadderSettings(kind="fixed-interval"),
    "fixed-fraction": LadderSettings(kind="fixed-fraction"),
    # Parameters of the bitcoin 2018-2020 bear-market comparison run.
    "ladder": LadderSettings(kind="ladder"),
    "adaptive": LadderSettings(kind="adaptive"),
}


def settings_from_mapping(
    overrides: Mapping[str, object],
    base: Optional[LadderSettings] = None,
) -> LadderSettings:
    """Apply ``overrides`` on top of ``base`` (defaults when omitted)."""

    base = base or LadderSettings()
    known = {f.name for f in fields(LadderSettings)}
    unknown = [key for key in overrides if key not in known]
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    coerced: Dict[str, object] = {}
    for key, value in overrides.items():
        current = getattr(base, key)
        if isinstance(current, bool):
            if not isinstance(value, bool):
                raise ValueError(f"Setting '{key}' must be true or false, got {value!r}")
            coerced[key] = value
        elif isinstance(current, int):
            coerced[key] = int(value)  # type: ignore[arg-type]
        elif isinstance(current, float):
            coerced[key] = float(value)  # type: ignore[arg-type]
        else:
            coerced[key] = value
    return replace(base, **coerced)


def load_settings(path: str, base: Optional[LadderSettings] = None) -> LadderSettings:
    """Load a JSON object of setting overrides from ``path``."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Settings file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    preset = payload.pop("preset", None)
    if preset is not None:
        if preset not in STRATEGIES:
            raise ValueError(f"Unknown preset '{preset}'. Choose from: {', '.join(STRATEGIES)}")
        base = STRATEGIES[preset]
    return settings_from_mapping(payload, base)


def build_method(settings: LadderSettings) -> CostAverageMethod:
    """Instantiate the allocator described by ``settings``."""

    if settings.kind == "fixed-interval":
        return FixedIntervalAverage()
    if settings.kind == "fixed-fraction":
        return FixedFractionAverage()
    if settings.kind == "ladder":
        return Ladder(
            settings.use_ratio,
            settings.target_cash_ratio,
            settings.rebalance_step,
            settings.horizon,
            days_per_round=settings.days_per_round,
            early_break=settings.early_break,
        )
    return AdaptiveLadder(
        settings.use_ratio,
        settings.target_cash_ratio,
        settings.rebalance_step,
        settings.horizon,
        settings.reinvest_daily_percentage,
        days_per_round=settings.days_per_round,
        early_break=settings.early_break,
    )


__all__ = [
    "DEFAULT_HORIZON",
    "DEFAULT_REBALANCE_STEP",
    "DEFAULT_REINVEST_DAILY_PERCENTAGE",
    "DEFAULT_TARGET_CASH_RATIO",
    "DEFAULT_USE_RATIO",
    "KINDS",
    "LadderSettings",
    "STRATEGIES",
    "build_method",
    "load_settings",
    "settings_from_mapping",
]
