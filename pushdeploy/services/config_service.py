"""
Configuration Management Service

Layered config loading: constants < YAML file < PUSHDEPLOY_* environment < CLI.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from pushdeploy.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_DEPLOY_PATH,
    DEFAULT_GIT_REMOTE,
    DEFAULT_RUNTIME_VERSION,
    DEFAULT_SSH_DIR,
    DEFAULT_SSH_KEY_PATH,
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    DEFAULT_START_COMMAND,
    DEFAULT_TRANSITION,
    ENV_PREFIX,
)
from pushdeploy.exceptions import ConfigurationError
from pushdeploy.models.deployment import (
    ArtifactBundle,
    DeployConfig,
    DeploymentTarget,
    ProcessTransitionPolicy,
    TrustSettings,
)
from pushdeploy.models.results import ValidationResult
from pushdeploy.utils import parse_host_list

DEFAULTS: Dict[str, Any] = {
    "port": DEFAULT_SSH_PORT,
    "username": DEFAULT_SSH_USER,
    "deploy_path": DEFAULT_DEPLOY_PATH,
    "runtime_version": DEFAULT_RUNTIME_VERSION,
    "transition": DEFAULT_TRANSITION,
    "start_command": DEFAULT_START_COMMAND,
    "git_remote": DEFAULT_GIT_REMOTE,
    "key_path": DEFAULT_SSH_KEY_PATH,
    "ssh_dir": DEFAULT_SSH_DIR,
    "tags": False,
    "skip_trust": False,
}

KNOWN_KEYS = set(DEFAULTS) | {
    "host",
    "app",
    "artifact",
    "upload",
    "checksum",
    "ref",
    "process",
    "timeout",
    "ssh_key",
    "known_hosts",
    "key_types",
}

BOOLEAN_KEYS = {"tags", "skip_trust"}
INTEGER_KEYS = {"port", "timeout"}


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class ConfigService:
    """
    Centralized configuration service.

    Responsibilities:
    - Read the optional YAML config file
    - Read PUSHDEPLOY_* variables (a local .env is loaded first)
    - Merge CLI overrides and build validated DeployConfig / TrustSettings
    """

    def __init__(self, working_dir: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        self.working_dir = Path(working_dir or Path.cwd())
        self._environ = environ

    @property
    def environ(self) -> Dict[str, str]:
        if self._environ is None:
            env_file = self.working_dir / ".env"
            if env_file.exists():
                load_dotenv(env_file, override=False)
            self._environ = dict(os.environ)
        return self._environ

    def load_file(self, config_file: Optional[str] = None) -> Dict[str, Any]:
        """
        Load the YAML config file.

        An explicit path must exist; the default pushdeploy.yml is optional.

        Raises:
            ConfigurationError: If the file is missing (explicit path) or invalid
        """
        if config_file:
            path = Path(config_file).expanduser()
            if not path.is_absolute():
                path = self.working_dir / path
            if not path.exists():
                raise ConfigurationError(f"Config file not found: {path}")
        else:
            path = self.working_dir / DEFAULT_CONFIG_FILE
            if not path.exists():
                return {}

        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}", context=str(e))

        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level")

        data = {str(key).replace("-", "_"): value for key, value in data.items()}
        unknown = sorted(set(data) - KNOWN_KEYS)
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in {path}: {', '.join(unknown)}",
                context=f"Known keys: {', '.join(sorted(KNOWN_KEYS))}",
            )
        return data

    def load_env(self) -> Dict[str, Any]:
        """Collect PUSHDEPLOY_<KEY> variables for known keys."""
        values = {}
        for key in KNOWN_KEYS:
            env_key = f"{ENV_PREFIX}{key.upper()}"
            if env_key in self.environ and self.environ[env_key] != "":
                values[key] = self.environ[env_key]
        return values

    def resolve(self, overrides: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None) -> Dict[str, Any]:
        """Merge all layers; CLI overrides that are None do not count."""
        merged: Dict[str, Any] = dict(DEFAULTS)
        merged.update(self.load_file(config_file))
        merged.update(self.load_env())
        for key, value in (overrides or {}).items():
            if value is not None:
                merged[key] = value

        for key in BOOLEAN_KEYS:
            merged[key] = parse_bool(merged.get(key, False))
        for key in INTEGER_KEYS:
            if merged.get(key) is not None:
                try:
                    merged[key] = int(merged[key])
                except (TypeError, ValueError):
                    raise ConfigurationError(f"'{key}' must be an integer, got {merged[key]!r}")
        return merged

    def load_trust(self, overrides: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None) -> TrustSettings:
        """Build trust stage settings."""
        values = self.resolve(overrides, config_file)
        return self._trust_from(values)

    def load(self, overrides: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None) -> DeployConfig:
        """
        Build the full deployment configuration.

        Raises:
            ConfigurationError: If required values are missing or invalid
        """
        values = self.resolve(overrides, config_file)

        validation = self.validate(values)
        if validation.has_errors:
            raise ConfigurationError(
                "Invalid deployment configuration",
                context="\n".join(validation.errors),
            )

        target = DeploymentTarget(
            host=values["host"],
            app_name=values["app"],
            username=values["username"],
            deploy_path=values["deploy_path"],
            port=values["port"],
        )

        upload = values.get("upload")
        bundle = ArtifactBundle(
            path=values["artifact"],
            reference=values["ref"],
            checksum=values.get("checksum") or None,
            local_path=Path(upload).expanduser() if upload else None,
        )

        trust = self._trust_from(values)
        if not trust.hosts:
            trust.hosts = [target.host]

        return DeployConfig(
            target=target,
            bundle=bundle,
            reference=values["ref"],
            trust=trust,
            use_tag_namespace=values["tags"],
            runtime_version=str(values["runtime_version"]),
            transition=ProcessTransitionPolicy.parse(values["transition"], values.get("process")),
            start_command=values["start_command"],
            git_remote=values["git_remote"],
            skip_trust=values["skip_trust"],
            timeout=values.get("timeout"),
        )

    def validate(self, values: Dict[str, Any]) -> ValidationResult:
        """Check required deployment values."""
        result = ValidationResult(is_valid=True)

        for key, flag in (("host", "--host"), ("app", "--app"), ("artifact", "--artifact"), ("ref", "--ref")):
            if not values.get(key):
                result.add_error(f"Missing required value: {key} ({flag} or {ENV_PREFIX}{key.upper()})")

        app = values.get("app") or ""
        if "/" in app or app in (".", ".."):
            result.add_error(f"App name must be a single path segment, got '{app}'")

        transition = str(values.get("transition") or DEFAULT_TRANSITION).strip().lower()
        if transition != "skip" and not values.get("process"):
            result.add_error("A process name (--process) is required unless --transition is skip")

        if values.get("upload") and not Path(values["upload"]).expanduser().is_file():
            result.add_error(f"Upload source not found: {values['upload']}")

        return result

    def _trust_from(self, values: Dict[str, Any]) -> TrustSettings:
        return TrustSettings(
            key_material=values.get("ssh_key"),
            key_path=values["key_path"],
            hosts=parse_host_list(values.get("known_hosts")),
            ssh_dir=values["ssh_dir"],
            key_types=values.get("key_types"),
        )
