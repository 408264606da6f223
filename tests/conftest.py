"""Pytest configuration and fixtures for pushdeploy tests."""

import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

import pytest

from pushdeploy.models.deployment import (
    ArtifactBundle,
    DeployConfig,
    DeploymentTarget,
    ProcessTransitionPolicy,
    TrustSettings,
)
from pushdeploy.models.results import SSHResult
from pushdeploy.services.ssh_service import LocalExecutor


class FakeExecutor:
    """
    Records commands and answers them from a script.

    Responses are matched with re.search in registration order. A response
    registered with times=N is used N times and then falls through to the
    next match. Unmatched commands succeed with empty output. Commands
    registered with passthrough() run in a real local shell.
    """

    def __init__(self):
        self.responses = []
        self.commands: List[str] = []
        self.uploads = []

    def on(
        self,
        pattern: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        times: Optional[int] = None,
        first: bool = False,
    ):
        response = [re.compile(pattern), SSHResult(returncode, stdout, stderr), times]
        if first:
            self.responses.insert(0, response)
        else:
            self.responses.append(response)
        return self

    def raise_on(self, pattern: str, error: Exception):
        self.responses.append([re.compile(pattern), error, None])
        return self

    def passthrough(self, pattern: str):
        self.responses.append([re.compile(pattern), LocalExecutor(), None])
        return self

    def execute_command(self, host, command, timeout=None, capture_output=True):
        self.commands.append(command)
        for response in self.responses:
            pattern, result, remaining = response
            if remaining == 0 or not pattern.search(command):
                continue
            if remaining is not None:
                response[2] = remaining - 1
            if isinstance(result, Exception):
                raise result
            if isinstance(result, LocalExecutor):
                return result.execute_command(host, command, timeout, capture_output)
            return SSHResult(
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                host=host,
                command=command,
            )
        return SSHResult(returncode=0, host=host, command=command)

    def upload_file(self, host, local_path, remote_path, timeout=None):
        self.uploads.append((str(local_path), remote_path))
        return SSHResult(returncode=0, host=host, command=f"scp {local_path} {remote_path}")

    def ran(self, pattern: str) -> List[str]:
        """Commands matching pattern, in order."""
        return [command for command in self.commands if re.search(pattern, command)]


def git(*args, cwd=None) -> str:
    """Run git with a fixed identity and return stdout."""
    result = subprocess.run(
        ["git", "-c", "user.email=ci@example.com", "-c", "user.name=CI", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@pytest.fixture
def fake_executor():
    """A scripted executor that never touches a shell."""
    return FakeExecutor()


@pytest.fixture
def require_git():
    if shutil.which("git") is None:
        pytest.skip("git is not installed")


@pytest.fixture
def require_tar():
    if shutil.which("tar") is None or shutil.which("bash") is None:
        pytest.skip("tar/bash are not installed")


@pytest.fixture
def require_ssh_keygen():
    if shutil.which("ssh-keygen") is None or shutil.which("bash") is None:
        pytest.skip("ssh-keygen is not installed")



@pytest.fixture
def git_origin(tmp_path, require_git):
    """
    A bare origin with two commits on main and tag v1.0.0 on the first,
    plus a clone of it standing in for the host's working tree.
    """
    work = tmp_path / "work"
    work.mkdir()
    git("init", "-q", cwd=work)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=work)

    (work / "app").mkdir()
    (work / "app" / "index.js").write_text("console.log('v1')\n")
    git("add", ".", cwd=work)
    git("commit", "-q", "-m", "v1", cwd=work)
    git("tag", "v1.0.0", cwd=work)
    first = git("rev-parse", "HEAD", cwd=work)

    (work / "app" / "index.js").write_text("console.log('v2')\n")
    git("commit", "-q", "-am", "v2", cwd=work)
    second = git("rev-parse", "HEAD", cwd=work)

    origin = tmp_path / "origin.git"
    git("clone", "-q", "--bare", str(work), str(origin))

    tree = tmp_path / "www" / "shop"
    tree.parent.mkdir()
    git("clone", "-q", str(origin), str(tree))

    return {"work": work, "origin": origin, "tree": tree, "v1": first, "v2": second}


@pytest.fixture
def trust_settings(tmp_path) -> TrustSettings:
    ssh_dir = tmp_path / "ssh"
    return TrustSettings(
        key_material=None,
        key_path=str(ssh_dir / "id_rsa"),
        hosts=["203.0.113.7"],
        ssh_dir=str(ssh_dir),
    )


@pytest.fixture
def deploy_config(trust_settings) -> DeployConfig:
    """Config for a tag deploy of 'shop' with a reload transition."""
    return DeployConfig(
        target=DeploymentTarget(host="203.0.113.7", app_name="shop", deploy_path="/var/www"),
        bundle=ArtifactBundle(path="/tmp/shop.tar.gz", reference="v1.2.0"),
        reference="v1.2.0",
        trust=trust_settings,
        use_tag_namespace=True,
        runtime_version="20",
        transition=ProcessTransitionPolicy.parse("reload", "shop"),
    )


@pytest.fixture
def scripted_host(fake_executor):
    """Fake host on which every stage of a /var/www/shop deploy succeeds."""
    tree_files = "./.env\n./app/index.js\n./package-lock.json\n"
    return (
        fake_executor.on(r"rev-parse --is-inside-work-tree", stdout="true\n")
        .on(r"rev-parse --verify --quiet 'refs/tags/v1\.2\.0\^\{commit\}'", stdout="4f2c0d9e1a7b\n")
        .on(r"^test -f /tmp/shop\.tar\.gz$")
        .on(r"^tar -tf", stdout="./\n./app/\n./app/index.js\n./package-lock.json\n")
        .on(r"^cd /var/www/shop && find", stdout="./.env\n./app/index.js\n", times=1)
        .on(r"^cd /var/www/shop && find", stdout=tree_files)
        .on(r"^mktemp -d", stdout="/var/www/.pushdeploy-stage.Ab12Cd\n")
        .on(r"nvm version", stdout="v20.11.1\n")
        .on(r"&& echo package-lock\.json", stdout="package-lock.json\n")
        .on(r"pm2 jlist", stdout='[{"name": "shop", "pm_id": 0}]')
    )


def read_mode(path: Path) -> int:
    return path.stat().st_mode & 0o777
