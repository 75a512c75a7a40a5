"""Tests for configuration loading."""

import pytest

from dropbox_linker.config_loader import DEFAULT_LINK_EXPIRATION_DAYS, LinkerConfig, load_config
from dropbox_linker.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("DROPBOX_APP_KEY", raising=False)
    monkeypatch.delenv("DROPBOX_ROOT_NAMESPACE_ID", raising=False)


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        assert config == LinkerConfig()
        assert not config.is_valid()
        assert config.link_expiration_days == DEFAULT_LINK_EXPIRATION_DAYS
        assert config.callback_port == 17823
        assert config.large_attachment_threshold_bytes == 10 * 1024 * 1024

    def test_full_file(self, tmp_path):
        path = write_config(
            tmp_path,
            """
dropbox:
  app_key: abc123
  root_namespace_id: 987654
  local_root: /Users/me/Dropbox (Acme)
  callback_port: 18000
  link_expiration_days: 14
attachments:
  large_threshold_bytes: 5242880
logging:
  verbose: true
  log_file: /tmp/linker.log
""",
        )

        config = load_config(path)

        assert config.is_valid()
        assert config.app_key == "abc123"
        assert config.root_namespace_id == "987654"
        assert config.local_root == "/Users/me/Dropbox (Acme)"
        assert config.callback_port == 18000
        assert config.link_expiration_days == 14
        assert config.large_attachment_threshold_bytes == 5242880
        assert config.verbose is True
        assert config.log_file == "/tmp/linker.log"

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_config(write_config(tmp_path, "")) == LinkerConfig()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "dropbox:\n  app_key: from_file\n  root_namespace_id: '1'\n")
        monkeypatch.setenv("DROPBOX_APP_KEY", "from_env")
        monkeypatch.setenv("DROPBOX_ROOT_NAMESPACE_ID", "2")

        config = load_config(path)

        assert config.app_key == "from_env"
        assert config.root_namespace_id == "2"

    def test_auto_namespace(self, tmp_path):
        config = load_config(write_config(tmp_path, "dropbox:\n  root_namespace_id: AUTO\n"))
        assert config.discover_namespace

    def test_explicit_namespace_is_not_discovered(self):
        assert not LinkerConfig(root_namespace_id="123").discover_namespace
        assert not LinkerConfig().discover_namespace

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError, match="Error reading configuration file"):
            load_config(write_config(tmp_path, "dropbox: [unclosed"))

    def test_non_mapping_document(self, tmp_path):
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(write_config(tmp_path, "- just\n- a list\n"))

    def test_non_mapping_section(self, tmp_path):
        with pytest.raises(ConfigError, match="'dropbox' must be a mapping"):
            load_config(write_config(tmp_path, "dropbox: nope\n"))

    @pytest.mark.parametrize(
        "text, field",
        [
            ("dropbox:\n  callback_port: zero\n", "dropbox.callback_port"),
            ("dropbox:\n  link_expiration_days: 0\n", "dropbox.link_expiration_days"),
            ("attachments:\n  large_threshold_bytes: -5\n", "attachments.large_threshold_bytes"),
        ],
    )
    def test_invalid_numbers(self, tmp_path, text, field):
        with pytest.raises(ConfigError, match=field):
            load_config(write_config(tmp_path, text))
