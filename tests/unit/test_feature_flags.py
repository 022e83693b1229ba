import pytest

from wacrm.utils.feature_flags import (
    ai_features_enabled,
    broadcast_delivery_enabled,
    get_feature_flags,
    parse_bool,
    realtime_reports_enabled,
    refresh_feature_flag_cache,
)

_ENV_FLAG_MAPPING = {
    "BROADCAST_DELIVERY_ENABLED": broadcast_delivery_enabled,
    "AI_FEATURES_ENABLED": ai_features_enabled,
    "REALTIME_REPORTS_ENABLED": realtime_reports_enabled,
}


def test_flags_default_true():
    assert get_feature_flags() == {
        "broadcast_delivery_enabled": True,
        "ai_features_enabled": True,
        "realtime_reports_enabled": True,
    }


@pytest.mark.parametrize("env_name,accessor", list(_ENV_FLAG_MAPPING.items()))
def test_flag_can_be_disabled(monkeypatch, env_name, accessor):
    monkeypatch.setenv(env_name, "false")
    refresh_feature_flag_cache()
    assert accessor() is False


def test_values_are_cached_until_refresh(monkeypatch):
    assert ai_features_enabled() is True
    monkeypatch.setenv("AI_FEATURES_ENABLED", "off")
    assert ai_features_enabled() is True
    refresh_feature_flag_cache()
    assert ai_features_enabled() is False


@pytest.mark.parametrize("raw,expected", [
    ("1", True), ("YES", True), (" on ", True),
    ("0", False), ("no", False), ("", False),
    ("maybe", True), (None, True),
])
def test_parse_bool(raw, expected):
    assert parse_bool(raw, default=True) is expected
