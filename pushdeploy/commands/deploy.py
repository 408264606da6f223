"""Deploy command - run the full deployment pipeline against one host"""

import click
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pushdeploy.base import BaseCommand
from pushdeploy.constants import STAGE_TRUST
from pushdeploy.models.deployment import DeployConfig
from pushdeploy.models.results import PipelineResult, ResultStatus
from pushdeploy.models.ssh import SSHConfig
from pushdeploy.pipeline import DeploymentPipeline, PipelineContext
from pushdeploy.services import ConfigService, LocalExecutor, SSHService
from pushdeploy.ui_components import render_pipeline_result


@dataclass
class DeployOptions:
    """Options for deploy command (None means: not given on the CLI)."""

    overrides: Dict[str, Any] = field(default_factory=dict)
    config_file: Optional[str] = None


class DeployCommand(BaseCommand):
    """
    Deploy a release to a host.

    Stages:
    - trust: deploy key + known_hosts
    - sync: git hard reset to the reference
    - materialize: overlay the artifact, keeping local files
    - runtime: nvm version + lockfile install
    - transition: pm2 skip / restart / reload
    """

    def __init__(
        self,
        options: DeployOptions,
        verbose: bool = False,
        json_output: bool = False,
        executor=None,
        local_executor=None,
        config_service: Optional[ConfigService] = None,
    ):
        super().__init__(verbose=verbose, json_output=json_output)
        self.options = options
        self.executor = executor
        self.local_executor = local_executor
        self.config_service = config_service or ConfigService()

    def build_executor(self, config: DeployConfig, logger=None) -> SSHService:
        """SSH executor using the key and trust store the trust stage manages."""
        ssh_config = SSHConfig(
            key_path=config.trust.key_path,
            user=config.target.username,
            known_hosts_path=str(config.trust.known_hosts_path),
            port=config.target.port,
        )
        return SSHService(ssh_config, logger=logger)

    def execute(self) -> None:
        """Execute deploy command."""
        config = self.config_service.load(self.options.overrides, self.options.config_file)

        self.show_header(
            title="Deploy",
            app=config.target.app_name,
            details={
                "Target": f"{config.target.username}@{config.target.host}:{config.target.tree_path}",
                "Reference": f"{config.reference} ({'tag' if config.use_tag_namespace else 'commit'})",
                "Artifact": config.bundle.path,
                "Transition": config.transition.action.value,
            },
        )

        logger = self.init_logger(config.target.app_name, "deploy")

        context = PipelineContext(
            config=config,
            executor=self.executor or self.build_executor(config, logger),
            local_executor=self.local_executor or LocalExecutor(logger=logger),
        )
        skip = [STAGE_TRUST] if config.skip_trust else []
        result = DeploymentPipeline(logger=logger, skip=skip).run(context)

        self._report(result)

    def _report(self, result: PipelineResult) -> None:
        exit_code = 1 if result.is_failure else 0

        if self.json_output:
            self.output_json(result.to_dict(), exit_code=exit_code)
            return

        self.console.print()
        self.console.print(render_pipeline_result(result))

        failed = result.failed_stage
        if failed:
            self.console.print(
                f"\n[bold red]✗ Deployment halted at '{failed.stage}'.[/bold red] "
                "[dim]Earlier stages were not rolled back; fix the cause and re-run.[/dim]"
            )
        elif result.status == ResultStatus.PARTIAL:
            self.console.print("\n[yellow]⚠ Deployed with warnings[/yellow]")
        else:
            self.console.print("\n[green]✓ Deployment complete[/green]")

        self._log_path_hint()

        if exit_code:
            raise SystemExit(exit_code)


def collect_overrides(**kwargs) -> Dict[str, Any]:
    """Map CLI values onto config keys; unset flags stay None."""
    overrides = dict(kwargs)
    for flag in ("tags", "skip_trust"):
        overrides[flag] = True if overrides.get(flag) else None
    return overrides


@click.command()
@click.option("--host", "-H", help="Target host (name or IP)")
@click.option("--port", type=int, help="SSH port [default: 22]")
@click.option("--username", "-u", help="SSH user [default: deploy]")
@click.option("--app", "-a", help="Application name (tree = <deploy-path>/<app>)")
@click.option("--deploy-path", help="Base directory on the host [default: /var/www]")
@click.option("--artifact", help="Path of the release archive on the host")
@click.option(
    "--upload",
    type=click.Path(exists=True, dir_okay=False),
    help="Local archive to upload to --artifact first",
)
@click.option("--checksum", help="Expected sha256 of the archive")
@click.option("--ref", "-r", help="Commit, branch or tag to deploy")
@click.option("--tags", is_flag=True, help="Resolve --ref as a tag")
@click.option("--runtime-version", help="Node version for nvm [default: 20]")
@click.option(
    "--transition",
    "-t",
    type=click.Choice(["skip", "restart", "reload"], case_sensitive=False),
    help="Process transition policy [default: skip]",
)
@click.option("--process", "-p", help="pm2 process name (required unless skip)")
@click.option("--start-command", help="Command pm2 runs for a new process [default: npm start]")
@click.option("--key-path", help="Private key path [default: ~/.ssh/id_rsa]")
@click.option("--ssh-dir", help="Directory holding known_hosts [default: ~/.ssh]")
@click.option("--known-hosts", help="Comma-separated hosts to trust [default: --host]")
@click.option("--skip-trust", is_flag=True, help="Do not touch the key or known_hosts")
@click.option("--timeout", type=int, help="Per-command timeout in seconds")
@click.option("--config", "-c", "config_file", help="YAML config file [default: pushdeploy.yml]")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def deploy(config_file, verbose, json_output, **kwargs):
    """
    Deploy a release artifact over SSH

    Runs trust → sync → materialize → runtime → transition. The first
    failing stage halts the run; nothing is rolled back.

    Values can also come from pushdeploy.yml or PUSHDEPLOY_* variables.

    Examples:
        # Deploy tag v1.2.0 and reload the running process
        pushdeploy deploy -H 203.0.113.7 -a shop --artifact /tmp/shop.tar.gz \\
            -r v1.2.0 --tags -t reload -p shop

        # Upload a local build first, restart afterwards
        pushdeploy deploy -H app.example.com -a shop --upload dist/shop.tar.gz \\
            --artifact /tmp/shop.tar.gz -r main -t restart -p shop
    """
    options = DeployOptions(overrides=collect_overrides(**kwargs), config_file=config_file)
    cmd = DeployCommand(options, verbose=verbose, json_output=json_output)
    cmd.run()
