"""
pushdeploy - UI Components
Standardized headers and result tables
"""

from typing import Optional

from rich.console import Console
from rich.table import Table

from pushdeploy.models.results import PipelineResult, ResultStatus

BRAND = "pushdeploy"

STATUS_STYLES = {
    ResultStatus.SUCCESS: ("✓", "green"),
    ResultStatus.PARTIAL: ("◐", "yellow"),
    ResultStatus.FAILURE: ("✗", "red"),
    ResultStatus.SKIPPED: ("–", "dim"),
}


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    app: Optional[str] = None,
    details: Optional[dict] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized pushdeploy command header.

    Args:
        title: Main title (e.g., "Deploy", "SSH Setup")
        subtitle: Optional subtitle line
        app: App name (if applicable)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy",
            app="shop",
            details={"Host": "203.0.113.7", "Ref": "v1.2.0"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{BRAND}[/bold color(214)] [dim]›[/dim]"

    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{subtitle}[/dim]")

    if app:
        console.print(f"{prefix} App: [cyan]{app}[/cyan]")

    if details:
        for key, value in details.items():
            if value is None or value == "":
                continue
            console.print(f"{prefix} {key}: [cyan]{value}[/cyan]", highlight=False)

    console.print()


def render_pipeline_result(result: PipelineResult) -> Table:
    """Build a per-stage summary table."""
    table = Table(title="Deployment Summary", title_justify="left", padding=(0, 1))
    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Details", style="dim")

    for stage in result.stages:
        symbol, color = STATUS_STYLES[stage.status]
        table.add_row(
            stage.stage,
            f"[{color}]{symbol} {stage.status.value}[/{color}]",
            stage.message,
        )
    return table
