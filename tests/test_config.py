import json

from server_manager.config import AppConfig, load_config, save_config


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(str(tmp_path / "nope.json"))
    assert config == AppConfig()
    assert config.dockge_compose_file == "/opt/dockge/compose.yaml"


def test_save_and_load(tmp_path):
    path = str(tmp_path / "etc" / "config.json")
    config = AppConfig(stacks_dir="/srv/stacks", dockge_port=5002)

    assert save_config(config, path)
    assert load_config(path) == config


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"dockge_dir": "/srv/dockge", "legacy_option": True}))

    config = load_config(str(path))

    assert config.dockge_dir == "/srv/dockge"
    assert config.dockge_compose_file == "/srv/dockge/compose.yaml"


def test_malformed_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(str(path)) == AppConfig()

    path.write_text("[1, 2]")
    assert load_config(str(path)) == AppConfig()
