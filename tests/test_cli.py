"""Tests for the pushdeploy command line."""

import json

import pytest
from click.testing import CliRunner

from pushdeploy.commands.deploy import DeployCommand, DeployOptions, collect_overrides
from pushdeploy.commands.doctor import DoctorCommand
from pushdeploy.main import cli
from pushdeploy.services import ConfigService
from tests.conftest import FakeExecutor

PLAN_ARGS = ["-H", "203.0.113.7", "-a", "shop", "--artifact", "/tmp/shop.tar.gz", "-r", "v1.2.0"]


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CliRunner inside an empty project directory with no PUSHDEPLOY_* leakage."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PUSHDEPLOY_LOG_DIR", str(tmp_path / "logs"))
    for key in ("HOST", "APP", "ARTIFACT", "REF", "SSH_KEY", "KNOWN_HOSTS", "TRANSITION", "PROCESS"):
        monkeypatch.delenv(f"PUSHDEPLOY_{key}", raising=False)
    return CliRunner()


class TestPlan:
    def test_json_plan(self, runner):
        result = runner.invoke(cli, ["plan", *PLAN_ARGS, "--tags", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["config"]["namespace"] == "tag"
        assert data["config"]["tree"] == "/var/www/shop"
        assert data["stages"] == ["trust", "sync", "materialize", "runtime", "transition"]

    def test_skip_trust_drops_stage(self, runner):
        result = runner.invoke(cli, ["plan", *PLAN_ARGS, "--skip-trust", "--json"])
        assert json.loads(result.output)["stages"][0] == "sync"

    def test_missing_values_exit_1(self, runner):
        result = runner.invoke(cli, ["plan", "-H", "203.0.113.7", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["error"] == "Invalid deployment configuration"
        assert data["details"]["type"] == "ConfigurationError"

    def test_reads_config_file(self, runner, tmp_path):
        (tmp_path / "pushdeploy.yml").write_text(
            "host: app.example.com\napp: shop\nartifact: /tmp/shop.tar.gz\nref: main\n"
        )
        result = runner.invoke(cli, ["plan", "--json"])
        assert json.loads(result.output)["config"]["host"] == "app.example.com"

    def test_table_output(self, runner):
        result = runner.invoke(cli, ["plan", *PLAN_ARGS])
        assert result.exit_code == 0
        assert "Deployment Plan" in result.output
        assert "trust" in result.output


class TestSSHSetup:
    def test_writes_key(self, runner, tmp_path):
        key_path = tmp_path / "ssh" / "deploy_key"
        result = runner.invoke(
            cli,
            ["ssh:setup", "--key", "test-key-material", "--key-path", str(key_path), "--json"],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["key"] == "written"
        assert key_path.read_text() == "test-key-material\n"

    def test_key_from_stdin(self, runner, tmp_path):
        key_path = tmp_path / "ssh" / "deploy_key"
        result = runner.invoke(
            cli,
            ["ssh:setup", "--key-file", "-", "--key-path", str(key_path), "--json"],
            input="-----BEGIN KEY-----\n",
        )
        assert result.exit_code == 0, result.output
        assert key_path.exists()

    def test_missing_key_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["ssh:setup", "--key-file", str(tmp_path / "nope"), "--json"])
        assert result.exit_code == 1
        assert "Key file not found" in json.loads(result.output)["error"]


class TestDeployCommand:
    """DeployCommand with injected executors."""

    def _command(self, tmp_path, executor, **overrides):
        values = {
            "host": "203.0.113.7",
            "app": "shop",
            "artifact": "/tmp/shop.tar.gz",
            "ref": "v1.2.0",
            "tags": True,
            "transition": "reload",
            "process": "shop",
            "skip_trust": True,
            **overrides,
        }
        return DeployCommand(
            DeployOptions(overrides=values),
            json_output=True,
            executor=executor,
            local_executor=FakeExecutor(),
            config_service=ConfigService(working_dir=tmp_path, environ={}),
        )

    def test_successful_deploy(self, tmp_path, scripted_host, capsys):
        self._command(tmp_path, scripted_host).run()

        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "success"
        assert [stage["status"] for stage in data["stages"]] == [
            "skipped",
            "success",
            "success",
            "success",
            "success",
        ]

    def test_failed_stage_exits_1(self, tmp_path, capsys):
        executor = FakeExecutor().on(r"is-inside-work-tree", returncode=128)

        with pytest.raises(SystemExit) as exc_info:
            self._command(tmp_path, executor).run()

        assert exc_info.value.code == 1
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "failure"
        sync = data["stages"][1]
        assert sync["details"]["error"] == "RepositoryStateError"
        assert data["stages"][2]["message"] == "Not run: 'sync' failed"

    def test_configuration_error_exits_1(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            self._command(tmp_path, FakeExecutor(), process=None).run()

        assert exc_info.value.code == 1
        assert json.loads(capsys.readouterr().out)["details"]["type"] == "ConfigurationError"


def test_collect_overrides_unset_flags_are_none():
    overrides = collect_overrides(host="a", tags=False, skip_trust=True)
    assert overrides == {"host": "a", "tags": None, "skip_trust": True}


def test_help_lists_commands(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for name in ("deploy", "ssh:setup", "plan", "doctor"):
        assert name in result.output


class TestDoctor:
    """DoctorCommand against a temporary ~/.ssh."""

    def _command(self, tmp_path, monkeypatch):
        ssh_dir = tmp_path / "ssh"
        environ = {
            "PUSHDEPLOY_HOST": "203.0.113.7",
            "PUSHDEPLOY_SSH_DIR": str(ssh_dir),
            "PUSHDEPLOY_KEY_PATH": str(ssh_dir / "id_rsa"),
        }
        cmd = DoctorCommand(config_service=ConfigService(working_dir=tmp_path, environ=environ))
        monkeypatch.setattr(cmd, "check_tool", lambda tool_name: True)
        return cmd, ssh_dir

    def test_healthy_setup(self, tmp_path, monkeypatch, require_ssh_keygen):
        cmd, ssh_dir = self._command(tmp_path, monkeypatch)
        ssh_dir.mkdir()
        key = ssh_dir / "id_rsa"
        key.write_text("-----BEGIN KEY-----\n")
        key.chmod(0o600)
        (ssh_dir / "known_hosts").write_text("203.0.113.7 ssh-ed25519 AAAAC3NzaC1lZDI1NTE5\n")

        cmd.run()

        assert cmd.problems == 0

    def test_missing_key_and_store(self, tmp_path, monkeypatch):
        cmd, _ = self._command(tmp_path, monkeypatch)

        with pytest.raises(SystemExit) as exc_info:
            cmd.run()

        assert exc_info.value.code == 1
        assert cmd.problems == 2

    def test_open_key_and_untrusted_host(self, tmp_path, monkeypatch, require_ssh_keygen):
        cmd, ssh_dir = self._command(tmp_path, monkeypatch)
        ssh_dir.mkdir()
        key = ssh_dir / "id_rsa"
        key.write_text("-----BEGIN KEY-----\n")
        key.chmod(0o644)
        (ssh_dir / "known_hosts").write_text("other.example.com ssh-ed25519 AAAAC3NzaC1lZDI1NTE5\n")

        with pytest.raises(SystemExit):
            cmd.run()

        assert cmd.problems == 2
