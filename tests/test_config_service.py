"""Tests for layered configuration loading."""

import os

import pytest

from pushdeploy.exceptions import ConfigurationError
from pushdeploy.models.deployment import TransitionAction
from pushdeploy.services.config_service import ConfigService, parse_bool

REQUIRED = {"host": "203.0.113.7", "app": "shop", "artifact": "/tmp/shop.tar.gz", "ref": "v1.2.0"}


@pytest.fixture
def config_service(tmp_path):
    return ConfigService(working_dir=tmp_path, environ={})


class TestDefaults:
    def test_minimal_config(self, config_service):
        """Only host, app, artifact and ref are required."""
        config = config_service.load(REQUIRED)

        assert config.target.username == "deploy"
        assert config.target.tree_path == "/var/www/shop"
        assert config.target.port == 22
        assert config.runtime_version == "20"
        assert config.transition.action == TransitionAction.SKIP
        assert config.use_tag_namespace is False
        assert config.trust.hosts == ["203.0.113.7"]
        assert config.timeout is None

    def test_missing_values_are_listed(self, config_service):
        with pytest.raises(ConfigurationError) as exc_info:
            config_service.load({"host": "203.0.113.7"})

        context = exc_info.value.context
        assert "app" in context
        assert "artifact" in context
        assert "ref" in context
        assert "Missing required value: host" not in context


class TestLayering:
    """YAML < PUSHDEPLOY_* < CLI."""

    def test_file_values(self, tmp_path):
        (tmp_path / "pushdeploy.yml").write_text(
            "host: from-file.example.com\n"
            "app: shop\n"
            "artifact: /tmp/shop.tar.gz\n"
            "ref: main\n"
            "deploy-path: /srv/apps\n"
            "transition: restart\n"
            "process: shop\n"
        )
        config = ConfigService(working_dir=tmp_path, environ={}).load()

        assert config.target.host == "from-file.example.com"
        assert config.target.tree_path == "/srv/apps/shop"
        assert config.transition.action == TransitionAction.HARD_RESTART

    def test_environment_beats_file(self, tmp_path):
        (tmp_path / "pushdeploy.yml").write_text("host: from-file.example.com\nport: 2200\n")
        environ = {"PUSHDEPLOY_HOST": "from-env.example.com", "PUSHDEPLOY_TAGS": "true"}

        values = ConfigService(working_dir=tmp_path, environ=environ).resolve()

        assert values["host"] == "from-env.example.com"
        assert values["port"] == 2200
        assert values["tags"] is True

    def test_cli_beats_environment(self, tmp_path):
        environ = {"PUSHDEPLOY_HOST": "from-env.example.com", "PUSHDEPLOY_PORT": "2222"}
        values = ConfigService(working_dir=tmp_path, environ=environ).resolve(
            {"host": "from-cli.example.com", "port": None}
        )

        assert values["host"] == "from-cli.example.com"
        assert values["port"] == 2222

    def test_dotenv_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PUSHDEPLOY_RUNTIME_VERSION", raising=False)
        (tmp_path / ".env").write_text("PUSHDEPLOY_RUNTIME_VERSION=18\n")

        values = ConfigService(working_dir=tmp_path).resolve()

        assert values["runtime_version"] == "18"
        os.environ.pop("PUSHDEPLOY_RUNTIME_VERSION", None)


class TestFileErrors:
    def test_explicit_file_must_exist(self, config_service):
        with pytest.raises(ConfigurationError, match="not found"):
            config_service.resolve(config_file="missing.yml")

    def test_unknown_keys(self, tmp_path):
        (tmp_path / "pushdeploy.yml").write_text("host: a\nhots: b\n")
        with pytest.raises(ConfigurationError, match="hots"):
            ConfigService(working_dir=tmp_path, environ={}).resolve()

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "pushdeploy.yml").write_text("host: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigService(working_dir=tmp_path, environ={}).resolve()

    def test_top_level_must_be_mapping(self, tmp_path):
        (tmp_path / "pushdeploy.yml").write_text("- host\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigService(working_dir=tmp_path, environ={}).resolve()

    def test_bad_integer(self, config_service):
        with pytest.raises(ConfigurationError, match="port"):
            config_service.resolve({"port": "ssh"})


class TestValidation:
    def test_process_required_for_restart(self, config_service):
        with pytest.raises(ConfigurationError) as exc_info:
            config_service.load({**REQUIRED, "transition": "Restart"})
        assert "--process" in exc_info.value.context

    def test_app_must_be_one_segment(self, config_service):
        with pytest.raises(ConfigurationError) as exc_info:
            config_service.load({**REQUIRED, "app": "../etc"})
        assert "single path segment" in exc_info.value.context

    def test_upload_source_must_exist(self, config_service, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            config_service.load({**REQUIRED, "upload": str(tmp_path / "nope.tar.gz")})
        assert "Upload source not found" in exc_info.value.context

    def test_upload_sets_local_path(self, config_service, tmp_path):
        local = tmp_path / "shop.tar.gz"
        local.write_bytes(b"")
        config = config_service.load({**REQUIRED, "upload": str(local)})
        assert config.bundle.needs_upload
        assert config.bundle.local_path == local


class TestTrust:
    def test_trusted_hosts_parsed(self, config_service):
        config = config_service.load({**REQUIRED, "known_hosts": "a.test, b.test,,a.test"})
        assert config.trust.hosts == ["a.test", "b.test"]

    def test_key_material_from_environment(self, tmp_path):
        environ = {"PUSHDEPLOY_SSH_KEY": "-----BEGIN KEY-----\n", "PUSHDEPLOY_SSH_DIR": str(tmp_path)}
        settings = ConfigService(working_dir=tmp_path, environ=environ).load_trust()

        assert settings.key_material == "-----BEGIN KEY-----\n"
        assert settings.known_hosts_path == tmp_path / "known_hosts"

    def test_key_material_not_in_display_dict(self, config_service):
        config = config_service.load({**REQUIRED, "ssh_key": "SECRET-KEY"})
        assert "SECRET-KEY" not in str(config.to_dict())


@pytest.mark.parametrize(
    "value,expected",
    [(True, True), ("true", True), ("1", True), ("YES", True), ("false", False), ("0", False), ("", False)],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected
