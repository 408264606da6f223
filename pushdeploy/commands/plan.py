"""Plan command - show what a deploy would do without touching any host"""

import click
from rich.table import Table

from pushdeploy.base import BaseCommand
from pushdeploy.commands.deploy import DeployOptions, collect_overrides
from pushdeploy.constants import STAGE_TRUST
from pushdeploy.pipeline import default_stages
from pushdeploy.services import ConfigService


class PlanCommand(BaseCommand):
    """Resolve the deployment configuration and list the stages that would run."""

    def __init__(self, options: DeployOptions, json_output: bool = False, config_service=None):
        super().__init__(json_output=json_output)
        self.options = options
        self.config_service = config_service or ConfigService()

    def execute(self) -> None:
        config = self.config_service.load(self.options.overrides, self.options.config_file)
        stages = [stage.name for stage in default_stages()]
        if config.skip_trust:
            stages.remove(STAGE_TRUST)

        if self.json_output:
            self.output_json({"config": config.to_dict(), "stages": stages})
            return

        self.show_header(title="Deployment Plan", app=config.target.app_name)

        table = Table(title_justify="left", padding=(0, 1), show_header=False)
        table.add_column("Setting", style="cyan", no_wrap=True)
        table.add_column("Value")
        for key, value in config.to_dict().items():
            if isinstance(value, list):
                value = ", ".join(value)
            table.add_row(key, "[dim]-[/dim]" if value in (None, "") else str(value))
        self.console.print(table)

        self.console.print(f"\n[dim]Stages:[/dim] {' → '.join(stages)}\n")


@click.command()
@click.option("--host", "-H", help="Target host (name or IP)")
@click.option("--port", type=int, help="SSH port")
@click.option("--username", "-u", help="SSH user")
@click.option("--app", "-a", help="Application name")
@click.option("--deploy-path", help="Base directory on the host")
@click.option("--artifact", help="Path of the release archive on the host")
@click.option("--ref", "-r", help="Commit, branch or tag to deploy")
@click.option("--tags", is_flag=True, help="Resolve --ref as a tag")
@click.option("--runtime-version", help="Node version for nvm")
@click.option(
    "--transition",
    "-t",
    type=click.Choice(["skip", "restart", "reload"], case_sensitive=False),
    help="Process transition policy",
)
@click.option("--process", "-p", help="pm2 process name")
@click.option("--skip-trust", is_flag=True, help="Leave out the trust stage")
@click.option("--config", "-c", "config_file", help="YAML config file [default: pushdeploy.yml]")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def plan(config_file, json_output, **kwargs):
    """
    Show the resolved deployment plan

    Merges pushdeploy.yml, PUSHDEPLOY_* variables and options exactly like
    deploy does, then prints the result. No host is contacted.

    Examples:
        pushdeploy plan -H 203.0.113.7 -a shop --artifact /tmp/shop.tar.gz -r main
    """
    options = DeployOptions(overrides=collect_overrides(**kwargs), config_file=config_file)
    PlanCommand(options, json_output=json_output).run()
