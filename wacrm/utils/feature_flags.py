"""Feature flag helpers for runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "broadcast_delivery_enabled",
    "ai_features_enabled",
    "realtime_reports_enabled",
]


class FeatureFlagValues(TypedDict):
    broadcast_delivery_enabled: bool
    ai_features_enabled: bool
    realtime_reports_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_FEATURE_FLAGS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "broadcast_delivery_enabled": FeatureFlagDefinition("BROADCAST_DELIVERY_ENABLED", True),
    "ai_features_enabled": FeatureFlagDefinition("AI_FEATURES_ENABLED", True),
    "realtime_reports_enabled": FeatureFlagDefinition("REALTIME_REPORTS_ENABLED", True),
}


def parse_bool(value: str | None, default: bool = True) -> bool:
    """Interpret an environment-style string as a boolean."""
    if value is None:
        return default
    text = value.strip().lower()
    if text in {"", "0", "false", "no", "off"}:
        return False
    if text in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Cached flag state read from the environment."""
    values: Dict[FeatureFlagKey, bool] = {
        key: parse_bool(os.getenv(flag.env_var), default=flag.default)
        for key, flag in _FEATURE_FLAGS.items()
    }
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    return get_feature_flags()[flag]


def broadcast_delivery_enabled() -> bool:
    """When off, broadcasts are simulated and never reach WhatsApp."""
    return is_feature_enabled("broadcast_delivery_enabled")


def ai_features_enabled() -> bool:
    """Global toggle for the AI chat endpoint."""
    return is_feature_enabled("ai_features_enabled")


def realtime_reports_enabled() -> bool:
    """Toggle for the realtime kanban board."""
    return is_feature_enabled("realtime_reports_enabled")


def refresh_feature_flag_cache() -> None:
    """Invalidate cached flag values (tests flip env vars)."""
    get_feature_flags.cache_clear()
