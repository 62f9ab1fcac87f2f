"""Test configuration loading"""

from pathlib import Path

import pytest

from spot_remote.core import config as config_module
from spot_remote.core.config import (
    DEFAULT_LARGE_SEARCH_LIMIT,
    DEFAULT_REDIRECT_URI,
    DEFAULT_SMALL_SEARCH_LIMIT,
    IconConfig,
    find_config_file,
    load_config,
)
from spot_remote.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, temp_dir):
    """Isolate tests from the developer's environment, .env and config files."""
    monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTIFY_REDIRECT_URI", raising=False)
    monkeypatch.chdir(temp_dir)
    monkeypatch.setattr(config_module, "USER_CONFIG_DIR", temp_dir / "user")


def write_config(directory: Path, content: str) -> Path:
    path = directory / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test load_config"""

    def test_full_file(self, temp_dir):
        path = write_config(temp_dir, """
spotify:
  client_id: "abc"
  redirect_uri: "http://localhost:9000/callback"
  device_id: "device_1"
behavior:
  liked_icon: "<3"
search:
  large_limit: 30
  small_limit: 6
logging:
  directory: "logs"
  level: "debug"
""")

        config = load_config(path)

        assert config.spotify.client_id == "abc"
        assert config.spotify.redirect_uri == "http://localhost:9000/callback"
        assert config.spotify.device_id == "device_1"
        assert config.icons.liked_icon == "<3"
        assert config.icons.playing_icon == IconConfig().playing_icon
        assert config.search.large_limit == 30
        assert config.search.small_limit == 6
        assert config.logging.directory == Path("logs")
        assert config.logging.level == "DEBUG"

    def test_defaults(self, temp_dir):
        path = write_config(temp_dir, "spotify:\n  client_id: abc\n")

        config = load_config(path)

        assert config.spotify.redirect_uri == DEFAULT_REDIRECT_URI
        assert config.spotify.device_id is None
        assert config.icons == IconConfig()
        assert config.search.large_limit == DEFAULT_LARGE_SEARCH_LIMIT
        assert config.search.small_limit == DEFAULT_SMALL_SEARCH_LIMIT
        assert config.logging.level == "INFO"

    def test_environment_overrides_file(self, temp_dir, monkeypatch):
        path = write_config(temp_dir, "spotify:\n  client_id: abc\n")
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "from_env")
        monkeypatch.setenv("SPOTIFY_REDIRECT_URI", "http://127.0.0.1:1234/cb")

        config = load_config(path)

        assert config.spotify.client_id == "from_env"
        assert config.spotify.redirect_uri == "http://127.0.0.1:1234/cb"

    def test_no_file_uses_environment(self, monkeypatch):
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "from_env")

        config = load_config()

        assert config.spotify.client_id == "from_env"

    def test_missing_client_id(self, temp_dir):
        path = write_config(temp_dir, "search:\n  small_limit: 5\n")

        with pytest.raises(ConfigError, match="client_id"):
            load_config(path)

    def test_invalid_yaml(self, temp_dir):
        path = write_config(temp_dir, "spotify: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, temp_dir):
        path = write_config(temp_dir, "- just\n- a list\n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_section_not_a_mapping(self, temp_dir):
        path = write_config(temp_dir, "spotify: abc\n")

        with pytest.raises(ConfigError, match="spotify"):
            load_config(path)

    @pytest.mark.parametrize("value", ["0", "51", "ten", "true"])
    def test_invalid_limit(self, temp_dir, value):
        path = write_config(temp_dir, f"spotify:\n  client_id: abc\nsearch:\n  large_limit: {value}\n")

        with pytest.raises(ConfigError, match="large_limit"):
            load_config(path)

    def test_invalid_log_level(self, temp_dir):
        path = write_config(temp_dir, "spotify:\n  client_id: abc\nlogging:\n  level: LOUD\n")

        with pytest.raises(ConfigError, match="logging.level"):
            load_config(path)

    def test_non_string_icon(self, temp_dir):
        path = write_config(temp_dir, "spotify:\n  client_id: abc\nbehavior:\n  liked_icon: 3\n")

        with pytest.raises(ConfigError, match="liked_icon"):
            load_config(path)


class TestFindConfigFile:
    """Test config file lookup"""

    def test_explicit_missing_path(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            find_config_file(temp_dir / "nope.yaml")

    def test_working_directory(self, temp_dir):
        path = write_config(temp_dir, "spotify:\n  client_id: abc\n")

        assert find_config_file() == Path.cwd() / "config.yaml"
        assert find_config_file().samefile(path)

    def test_user_directory(self, temp_dir):
        user_dir = temp_dir / "user"
        user_dir.mkdir()
        path = write_config(user_dir, "spotify:\n  client_id: abc\n")

        assert find_config_file() == path

    def test_nothing_found(self):
        assert find_config_file() is None
