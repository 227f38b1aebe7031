"""Config store precedence: overrides > config file > env > defaults."""
from chat_relay.config_store import ConfigStore
from chat_relay.settings import Settings


def test_defaults_without_file(tmp_path):
    store = ConfigStore(Settings, str(tmp_path / "missing.yaml"))
    s = store.get_settings()
    assert s.port == 3000
    assert s.store_backend == "memory"
    assert s.token_cache_ttl_seconds == 0


def test_file_wins_over_env(tmp_path, monkeypatch):
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.setenv("PUSH_TIMEOUT_SECONDS", "3")
    config = tmp_path / "config.yaml"
    config.write_text("port: 5000\nrequire_recipient: true\n")

    s = ConfigStore(Settings, str(config)).get_settings()

    assert s.port == 5000
    assert s.require_recipient is True
    assert s.push_timeout_seconds == 3


def test_json_config_file(tmp_path):
    config = tmp_path / "config.json"
    config.write_text('{"message_cache_max_entries": 50}')
    assert ConfigStore(Settings, str(config)).get_settings().message_cache_max_entries == 50


def test_invalid_yaml_falls_back_to_env(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("port: [unclosed\n")
    assert ConfigStore(Settings, str(config)).get_settings().port == 3000


def test_update_and_clear_overrides(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("port: 5000\n")
    store = ConfigStore(Settings, str(config))

    assert store.update({"port": 6000}) is True
    assert store.get_settings().port == 6000

    store.clear_overrides()
    assert store.get_settings().port == 5000


def test_invalid_update_keeps_previous_config(tmp_path):
    store = ConfigStore(Settings, str(tmp_path / "config.yaml"))
    store.update({"message_cache_max_entries": 20})

    assert store.update({"message_cache_max_entries": 0}) is False
    assert store.get_settings().message_cache_max_entries == 20


def test_reload_picks_up_file_changes(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("bind_retries: 1\n")
    store = ConfigStore(Settings, str(config))
    assert store.get_settings().bind_retries == 1

    config.write_text("bind_retries: 7\n")
    store.reload_from_file()
    assert store.get_settings().bind_retries == 7
