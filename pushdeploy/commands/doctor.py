"""pushdeploy CLI - Doctor command"""

import click
import os
import stat
import subprocess
from rich.table import Table

from pushdeploy.base import BaseCommand
from pushdeploy.constants import REQUIRED_TOOLS
from pushdeploy.exceptions import ProbeError
from pushdeploy.services import ConfigService, TrustStoreService
from pushdeploy.utils import known_hosts_name


class DoctorCommand(BaseCommand):
    """Local health check: tools, deploy key and known_hosts."""

    def __init__(
        self, verbose: bool = False, config_file=None, config_service=None, trust_service=None
    ):
        super().__init__(verbose=verbose)
        self.config_file = config_file
        self.config_service = config_service or ConfigService()
        self.trust_service = trust_service or TrustStoreService()
        self.problems = 0
        self.table = Table(
            title="System Health Report", title_justify="left", padding=(0, 1)
        )
        self.table.add_column("Check", style="cyan", no_wrap=True)
        self.table.add_column("Status")
        self.table.add_column("Details", style="dim")

    def check_tool(self, tool_name: str) -> bool:
        """Check if a tool is installed."""
        try:
            subprocess.run(["which", tool_name], check=True, capture_output=True)
            return True
        except subprocess.CalledProcessError:
            return False

    def check_tools(self) -> None:
        for tool in REQUIRED_TOOLS:
            if self.check_tool(tool):
                self.table.add_row(f"✅ {tool}", "[green]Installed[/green]", "")
            else:
                self.problems += 1
                self.table.add_row(
                    f"❌ {tool}", "[red]Missing[/red]", "Install the OpenSSH client"
                )

    def check_key(self, settings) -> None:
        key_path = settings.key_path_expanded
        if not key_path.exists():
            self.problems += 1
            self.table.add_row(
                "❌ Deploy key", "[red]Missing[/red]", "Run: pushdeploy ssh:setup"
            )
            return

        mode = stat.S_IMODE(os.stat(key_path).st_mode)
        if mode & 0o077:
            self.problems += 1
            self.table.add_row(
                "⚠️  Deploy key",
                "[yellow]Too open[/yellow]",
                f"{oct(mode)}; run: chmod 600 {key_path}",
            )
        else:
            self.table.add_row("✅ Deploy key", "[green]OK[/green]", str(key_path))

    def check_known_hosts(self, settings, hosts, port) -> None:
        store = settings.known_hosts_path
        if not store.exists():
            self.problems += 1
            self.table.add_row(
                "❌ known_hosts", "[red]Missing[/red]", "Run: pushdeploy ssh:setup"
            )
            return

        self.table.add_row("✅ known_hosts", "[green]Found[/green]", str(store))
        for host in hosts:
            try:
                known = self.trust_service.is_known(store, known_hosts_name(host, port))
            except ProbeError as e:
                self.problems += 1
                self.table.add_row(f"  ❌ {host}", "[red]Lookup failed[/red]", e.reason)
                continue
            if known:
                self.table.add_row(f"  ✅ {host}", "[green]Trusted[/green]", "")
            else:
                self.problems += 1
                self.table.add_row(
                    f"  ❌ {host}",
                    "[red]Unknown[/red]",
                    f"Run: pushdeploy ssh:setup --hosts {host}",
                )

    def execute(self) -> None:
        """Execute doctor command."""
        self.show_header(
            title="System Diagnostics",
            subtitle="Checking local tools and SSH trust",
        )

        values = self.config_service.resolve(config_file=self.config_file)
        settings = self.config_service.load_trust(config_file=self.config_file)
        hosts = settings.hosts or ([values["host"]] if values.get("host") else [])

        self.check_tools()
        self.check_key(settings)
        self.check_known_hosts(settings, hosts, values["port"])

        self.console.print()
        self.console.print(self.table)
        self.console.print()

        if self.problems:
            self.print_warning(f"{self.problems} problem(s) found")
            raise SystemExit(1)
        self.print_success("All checks passed")


@click.command()
@click.option("--config", "-c", "config_file", help="YAML config file [default: pushdeploy.yml]")
def doctor(config_file):
    """
    Health check & diagnostics

    Checks:
    - ssh, scp, ssh-keyscan and ssh-keygen are installed
    - The deploy key exists with private permissions
    - Configured hosts are present in known_hosts
    """
    cmd = DoctorCommand(config_file=config_file)
    cmd.run()
