from __future__ import annotations

from pathlib import Path

import pytest

from scholarflow.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    ConfigManager,
    get_user_config_dir,
    load_assistant_config,
)


@pytest.fixture()
def config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.delenv("APPDATA", raising=False)
    return tmp_path


def test_config_dir_is_created_under_xdg(config_home: Path) -> None:
    directory = get_user_config_dir("ScholarFlowTest")

    assert directory == config_home / "ScholarFlowTest"
    assert directory.is_dir()


def test_json_update_merges_sections(config_home: Path) -> None:
    manager = ConfigManager(app_name="ScholarFlowTest")
    manager.save({"assistant": {"model": "a"}, "ui": {"theme": "dark"}})

    merged = manager.update({"assistant": {"api_key": "k"}})

    assert merged == {"assistant": {"model": "a", "api_key": "k"}, "ui": {"theme": "dark"}}
    assert manager.load() == merged


def test_ini_round_trip(config_home: Path) -> None:
    manager = ConfigManager(app_name="ScholarFlowTest", format="ini")
    manager.save({"assistant": {"model": "m"}})

    assert manager.load() == {"assistant": {"model": "m"}}
    with pytest.raises(ValueError):
        manager.save({"assistant": "flat"})


def test_unknown_format_rejected(config_home: Path) -> None:
    with pytest.raises(ValueError):
        ConfigManager(app_name="ScholarFlowTest", format="yaml")


def test_assistant_config_defaults(config_home: Path) -> None:
    config = load_assistant_config(ConfigManager(app_name="ScholarFlowTest"), environ={})

    assert config.base_url == DEFAULT_BASE_URL
    assert config.model == DEFAULT_MODEL
    assert config.api_key is None
    assert not config.has_credentials
    assert config.timeout == 60.0
    assert config.max_retries == 2


def test_environment_overrides_settings_file(config_home: Path) -> None:
    manager = ConfigManager(app_name="ScholarFlowTest")
    manager.save(
        {
            "assistant": {
                "api_key": "from-file",
                "model": "file-model",
                "timeout": "15",
                "max_retries": "not a number",
            }
        }
    )

    config = load_assistant_config(
        manager,
        environ={"SCHOLARFLOW_API_KEY": "from-env", "SCHOLARFLOW_BASE_URL": "http://local/v1"},
    )

    assert config.api_key == "from-env"
    assert config.base_url == "http://local/v1"
    assert config.model == "file-model"
    assert config.timeout == 15.0
    assert config.max_retries == 2
    assert config.has_credentials
