"""SSH setup command - install the deploy key and trust hosts"""

import click
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from pushdeploy.base import BaseCommand
from pushdeploy.constants import DEFAULT_SSH_PORT
from pushdeploy.exceptions import ConfigurationError
from pushdeploy.models.results import ResultStatus
from pushdeploy.services import ConfigService, TrustStoreService


@dataclass
class SSHSetupOptions:
    """Options for ssh:setup command."""

    overrides: Dict[str, Any] = field(default_factory=dict)
    key_file: Optional[str] = None
    config_file: Optional[str] = None


class SSHSetupCommand(BaseCommand):
    """
    Prepare SSH trust on this machine.

    Features:
    - Writes the private key only if none exists at the path
    - Scans and appends hashed host keys for unknown hosts
    - Reports unreachable hosts without stopping the batch
    """

    def __init__(
        self,
        options: SSHSetupOptions,
        verbose: bool = False,
        json_output: bool = False,
        trust_service: Optional[TrustStoreService] = None,
        config_service: Optional[ConfigService] = None,
    ):
        super().__init__(verbose=verbose, json_output=json_output)
        self.options = options
        self.trust_service = trust_service or TrustStoreService()
        self.config_service = config_service or ConfigService()

    def _read_key_file(self) -> Optional[str]:
        key_file = self.options.key_file
        if not key_file:
            return None
        if key_file == "-":
            return click.get_text_stream("stdin").read()
        path = Path(key_file).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Key file not found: {path}")
        return path.read_text()

    def execute(self) -> None:
        """Execute ssh:setup command."""
        overrides = dict(self.options.overrides)
        key_from_file = self._read_key_file()
        if key_from_file is not None:
            overrides["ssh_key"] = key_from_file

        values = self.config_service.resolve(overrides, self.options.config_file)
        settings = self.config_service.load_trust(overrides, self.options.config_file)
        port = values.get("port") or DEFAULT_SSH_PORT
        if not settings.hosts and values.get("host"):
            settings.hosts = [values["host"]]

        self.show_header(
            title="SSH Setup",
            details={
                "Key": settings.key_path,
                "Known hosts": str(settings.known_hosts_path),
                "Hosts": ", ".join(settings.hosts) or "none",
            },
        )

        logger = self.init_logger("global", "ssh-setup")

        key_state = "skipped"
        if settings.key_material:
            if logger:
                logger.step("Installing deploy key")
            written = self.trust_service.ensure_key(settings.key_path, settings.key_material)
            key_state = "written" if written else "already present"
            if logger:
                logger.success(f"Key {key_state}: {settings.key_path}")
        elif logger:
            logger.log("No key material given; key left untouched")

        if logger:
            logger.step("Trusting hosts")
        report = self.trust_service.ensure_known_hosts(
            settings.known_hosts_path, settings.hosts, port=port, key_types=settings.key_types
        )

        if logger:
            for host in report.added:
                logger.success(f"{host}: host key added")
            for host in report.skipped:
                logger.success(f"{host}: already trusted")
            for host, reason in report.failed.items():
                logger.warning(f"{host}: {reason}")

        exit_code = 1 if report.status == ResultStatus.FAILURE else 0

        if self.json_output:
            self.output_json({"key": key_state, **report.to_dict()}, exit_code=exit_code)
            return

        if report.status == ResultStatus.PARTIAL:
            self.print_warning(
                f"Partially succeeded: {len(report.failed)} of "
                f"{len(report.failed) + len(report.added) + len(report.skipped)} host(s) failed"
            )
        elif report.status == ResultStatus.FAILURE:
            self.print_error("No host could be scanned")
        else:
            self.print_success("SSH trust ready")

        self._log_path_hint()
        if exit_code:
            raise SystemExit(exit_code)


@click.command(name="ssh:setup")
@click.option("--key", "ssh_key", help="Private key contents (prefer PUSHDEPLOY_SSH_KEY)")
@click.option("--key-file", help="Read the private key from a file ('-' for stdin)")
@click.option("--key-path", help="Where to write the key [default: ~/.ssh/id_rsa]")
@click.option("--hosts", "known_hosts", help="Comma-separated hosts to trust")
@click.option("--ssh-dir", help="Directory holding known_hosts [default: ~/.ssh]")
@click.option("--port", type=int, help="SSH port the hosts listen on [default: 22]")
@click.option("--key-types", help="ssh-keyscan key types, e.g. ed25519,rsa")
@click.option("--config", "-c", "config_file", help="YAML config file [default: pushdeploy.yml]")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def ssh_setup(key_file, config_file, verbose, json_output, **kwargs):
    """
    Install the deploy key and trust host keys

    Existing key files are never replaced; hosts already in known_hosts
    are not scanned again. Unreachable hosts are reported, the rest are
    still trusted.

    Examples:
        # Key from the environment, two hosts
        PUSHDEPLOY_SSH_KEY="$(cat deploy_key)" pushdeploy ssh:setup --hosts web1.example.com,web2.example.com

        # Key from stdin
        cat deploy_key | pushdeploy ssh:setup --key-file - --hosts 203.0.113.7
    """
    options = SSHSetupOptions(overrides=kwargs, key_file=key_file, config_file=config_file)
    cmd = SSHSetupCommand(options, verbose=verbose, json_output=json_output)
    cmd.run()
