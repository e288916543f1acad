import json

from pubgolf.config import GolfConfig


def test_creates_default_config_file(tmp_path):
    path = tmp_path / "pubgolf_config.json"
    config = GolfConfig(str(path))

    assert path.exists()
    assert config.get("event_name") == "Pub Golf"
    assert config.get("adjustments", "min_points") == 1
    assert config.is_feature_enabled("live_updates")


def test_file_values_merge_with_defaults(tmp_path):
    path = tmp_path / "pubgolf_config.json"
    path.write_text(json.dumps({"event_name": "Julefrokost", "features": {"live_updates": False}}))

    config = GolfConfig(str(path))

    assert config.get("event_name") == "Julefrokost"
    assert not config.is_feature_enabled("live_updates")
    assert config.is_feature_enabled("adjustment_history")


def test_merge_does_not_leak_into_defaults(tmp_path):
    path = tmp_path / "pubgolf_config.json"
    path.write_text(json.dumps({"leaderboard": {"max_entries": 5}}))

    GolfConfig(str(path))

    assert GolfConfig.DEFAULT_CONFIG["leaderboard"]["max_entries"] == 100


def test_invalid_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / "pubgolf_config.json"
    path.write_text("{not json")

    config = GolfConfig(str(path))

    assert config.get("event_name") == "Pub Golf"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("EVENT_NAME", "Bar Golf")
    monkeypatch.setenv("LIVE_UPDATES", "off")
    monkeypatch.setenv("MIN_ADJUSTMENT_POINTS", "2")

    config = GolfConfig(str(tmp_path / "pubgolf_config.json"))

    assert config.get("event_name") == "Bar Golf"
    assert config.get("features", "live_updates") is False
    assert config.get("adjustments", "min_points") == 2


def test_invalid_values_reset(tmp_path, monkeypatch):
    monkeypatch.setenv("MAX_LEADERBOARD_ENTRIES", "-4")
    path = tmp_path / "pubgolf_config.json"
    path.write_text(json.dumps({"auth": {"users": ["nope"]}}))

    config = GolfConfig(str(path))

    assert config.get("leaderboard", "max_entries") == 100
    assert config.get("auth", "users") == {}


def test_watched_tables(tmp_path, monkeypatch):
    assert GolfConfig(str(tmp_path / "a.json")).watched_tables() == ("scores", "penalties")

    monkeypatch.setenv("WATCH_PENALTIES", "false")
    assert GolfConfig(str(tmp_path / "b.json")).watched_tables() == ("scores",)


def test_get_missing_key_returns_none(config):
    assert config.get("nope") is None
    assert config.get("features", "nope") is None
