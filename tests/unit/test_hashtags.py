import pytest

from wacrm.utils.hashtags import (
    count_hashtag,
    has_any_hashtag,
    join_hashtags,
    normalize_hashtag,
    parse_hashtags,
    rename_hashtag,
)


def test_normalize_strips_hash_and_whitespace():
    assert normalize_hashtag("  #vip ") == "vip"
    assert normalize_hashtag("##lead") == "lead"
    assert normalize_hashtag(None) == ""


def test_parse_hashtags_splits_and_dedupes_case_insensitively():
    assert parse_hashtags("vip, #Lead;vip\nLEAD,, new") == ["vip", "Lead", "new"]


def test_parse_hashtags_accepts_iterables():
    assert parse_hashtags(["#a", "b", " "]) == ["a", "b"]


def test_join_hashtags_returns_none_when_empty():
    assert join_hashtags([]) is None
    assert join_hashtags(["", "#"]) is None


def test_join_hashtags_rejects_overlong_values():
    with pytest.raises(ValueError):
        join_hashtags([f"tag{i:04d}" for i in range(100)])


def test_has_any_hashtag_matches_whole_tags_only():
    assert has_any_hashtag("vip,lead", ["LEAD"]) is True
    assert has_any_hashtag("vipclient", ["vip"]) is False
    # An empty filter matches everything
    assert has_any_hashtag("vip", []) is True


def test_count_and_rename():
    assert count_hashtag("vip,lead", "#VIP") == 1
    assert rename_hashtag("vip,lead", "vip", "gold") == "gold,lead"
    assert rename_hashtag("vip,gold", "vip", "gold") == "gold"
