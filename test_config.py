"""
Tests for plugin configuration loading
"""
import pytest

from conftest import ADMIN_ID
from tutu.config import Config, load_config


@pytest.fixture
def toml_file(tmp_path, monkeypatch):
    def write(content):
        path = tmp_path / "config.toml"
        path.write_text(content, encoding="utf-8")
        monkeypatch.setenv("TUTU_CONFIG_TOML", str(path))
        return path

    return write


def test_defaults():
    cfg = Config()
    assert cfg.tutu_admins == []
    assert cfg.tutu_bot_name == "tutu"
    assert cfg.tutu_database_url == "sqlite+aiosqlite:///data/tutu.db"
    assert cfg.tutu_callback_path == "/tutu"
    assert cfg.tutu_enable_callback is True
    assert cfg.tutu_enable_onebot is True
    assert cfg.tutu_clean_hour == -1


def test_aliases_and_validators():
    cfg = Config.parse_obj({"admins": [280710651, " 1 ", ""], "callback_path": "hook"})
    assert cfg.tutu_admins == ["280710651", "1"]
    assert cfg.tutu_callback_path == "/hook"

    assert Config(tutu_admins="42").tutu_admins == ["42"]


def test_admins_fall_back_to_superusers(monkeypatch):
    monkeypatch.setenv("TUTU_CONFIG_TOML", "")
    cfg = load_config()
    assert cfg.tutu_admins == [ADMIN_ID]


def test_toml_fills_only_missing_values(toml_file):
    toml_file(
        """
[tutu]
admins = ["1", 2]
database_url = "sqlite+aiosqlite:///elsewhere.db"
clean_hour = 3
callback_path = "/hook"
"""
    )

    cfg = load_config()
    assert cfg.tutu_admins == ["1", "2"]
    assert cfg.tutu_clean_hour == 3
    assert cfg.tutu_callback_path == "/hook"
    # 全局配置优先于配置文件
    assert cfg.tutu_database_url == "sqlite+aiosqlite://"


def test_toml_without_section(toml_file):
    toml_file('[other]\nkey = "value"\n')

    cfg = load_config()
    assert cfg.tutu_clean_hour == -1
    assert cfg.tutu_admins == [ADMIN_ID]
