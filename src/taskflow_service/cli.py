"""CLI for reviewing drafts, connecting sources and running the pollers."""

import logging

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .database import get_user_stats, init_db
from .exceptions import TaskFlowError
from .models.draft import Draft, DraftEdits, DraftStatus
from .models.integration import IntegrationConnectRequest
from .models.source import SourceType
from .models.task import EnergyLevel, Workspace
from .services import draft_service, integration_service
from .services.scanner import scan_integration
from .services.scheduler import Scheduler

app = typer.Typer(help="TaskFlow CLI")
console = Console()

USER_OPTION = typer.Option(..., "--user", "-u", envvar="TASKFLOW_USER", help="User id")


def _fail(message: str):
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def _print_draft(draft: Draft):
    console.print(f"\n[bold]Draft {draft.id}[/bold] [dim]({draft.status.value})[/dim]")
    console.print(f"  Title: [cyan]{draft.title}[/cyan]")
    console.print(f"  Source: {draft.source.value} ({draft.source_id})")
    console.print(f"  Workspace: {draft.workspace.value if draft.workspace else '-'}")
    console.print(f"  Energy: {draft.energy.value if draft.energy else '-'}")
    console.print(f"  Estimate: {draft.estimated_time or '-'} min")
    console.print(f"  Tags: {', '.join(draft.tags) or '-'}")
    console.print(f"  Confidence: {draft.ai_confidence:.0%}")
    console.print(f"  Created: {draft.created_at}")
    if draft.description:
        preview = " ".join(draft.description.split())[:200]
        console.print(f"  Description: [dim]{preview}[/dim]")


@app.command()
def init():
    """Initialize the database."""
    init_db()
    console.print(f"[green]Initialized database at {settings.db_path}[/green]")


@app.command()
def drafts(
    user: str = USER_OPTION,
    status: DraftStatus = typer.Option(DraftStatus.PENDING, "--status", "-s", help="Filter by status"),
):
    """List drafts awaiting review."""
    items = draft_service.list_drafts(user, status)

    if not items:
        console.print(f"[yellow]No {status.value} drafts[/yellow]")
        return

    table = Table(title=f"{status.value.title()} Drafts ({len(items)})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Source", style="green")
    table.add_column("Energy")
    table.add_column("Est.")
    table.add_column("Confidence")

    for draft in items:
        energy_color = {
            EnergyLevel.HIGH: "red",
            EnergyLevel.MEDIUM: "yellow",
            EnergyLevel.LOW: "green",
        }.get(draft.energy, "white")
        table.add_row(
            str(draft.id),
            draft.title[:50],
            draft.source.value,
            f"[{energy_color}]{draft.energy.value if draft.energy else '-'}[/{energy_color}]",
            f"{draft.estimated_time}m" if draft.estimated_time else "-",
            f"{draft.ai_confidence:.0%}",
        )

    console.print(table)


@app.command()
def show(draft_id: int, user: str = USER_OPTION):
    """Show details of a draft."""
    try:
        _print_draft(draft_service.get_draft(user, draft_id))
    except TaskFlowError as e:
        _fail(str(e))


@app.command()
def approve(
    draft_id: int,
    user: str = USER_OPTION,
    title: str = typer.Option(None, "--title", "-t", help="Override the title"),
    energy: EnergyLevel = typer.Option(None, "--energy", "-e", help="Override the energy"),
    workspace: Workspace = typer.Option(None, "--workspace", "-w", help="Override the workspace"),
    minutes: int = typer.Option(None, "--minutes", "-m", help="Override the estimate"),
):
    """Approve a draft, creating a task."""
    edits = DraftEdits(
        **{
            name: value
            for name, value in {
                "title": title,
                "energy": energy,
                "workspace": workspace,
                "estimated_time": minutes,
            }.items()
            if value is not None
        }
    )
    try:
        task = draft_service.approve_draft(user, draft_id, edits)
    except TaskFlowError as e:
        _fail(str(e))
    console.print(f"[green]✓ Created task[/green] {task.title} [dim]({task.id})[/dim]")


@app.command()
def reject(draft_id: int, user: str = USER_OPTION):
    """Reject a draft."""
    try:
        draft_service.reject_draft(user, draft_id)
    except TaskFlowError as e:
        _fail(str(e))
    console.print(f"[yellow]Rejected draft {draft_id}[/yellow]")


@app.command("bulk-approve")
def bulk_approve(draft_ids: list[int], user: str = USER_OPTION):
    """Approve several drafts at once."""
    response = draft_service.bulk_approve(user, draft_ids)
    for result in response.results:
        if result.success:
            console.print(f"[green]✓ {result.id}[/green] {result.task.title}")
        else:
            console.print(f"[red]✗ {result.id}[/red] {result.error}")


@app.command()
def review(user: str = USER_OPTION):
    """Interactively review pending drafts."""
    items = draft_service.list_drafts(user)
    if not items:
        console.print("[yellow]No pending drafts[/yellow]")
        return

    reviewed = 0
    for draft in items:
        _print_draft(draft)
        while True:
            choice = typer.prompt("[a]pprove, [r]eject, [s]kip, [q]uit", default="s").lower()
            try:
                if choice == "a":
                    task = draft_service.approve_draft(user, draft.id)
                    console.print(f"[green]✓ Created task[/green] {task.title}")
                elif choice == "r":
                    draft_service.reject_draft(user, draft.id)
                    console.print("[yellow]Rejected[/yellow]")
                elif choice == "q":
                    console.print(f"\n[bold]Review ended.[/bold] Reviewed {reviewed} drafts.")
                    return
                elif choice != "s":
                    console.print("[red]Invalid choice. Use: a, r, s, or q[/red]")
                    continue
            except TaskFlowError as e:
                console.print(f"[red]{e}[/red]")
            break
        if choice in ("a", "r"):
            reviewed += 1

    console.print(f"\n[bold green]Review complete![/bold green] Reviewed {reviewed} drafts.")


@app.command()
def connect(
    source: SourceType,
    token: str = typer.Option(..., "--token", help="Access token (email/chat) or bot token"),
    user: str = USER_OPTION,
    every: int = typer.Option(None, "--every", help="Minutes between scans"),
    rules: str = typer.Option(None, "--rules", help="Free-text relevance rules"),
    setting: list[str] = typer.Option([], "--setting", help="Source setting as key=value"),
):
    """Connect a source with an already-issued token."""
    key = "bot_token" if source == SourceType.BOT else "access_token"
    extra = {}
    for pair in setting:
        name, sep, value = pair.partition("=")
        if not sep:
            _fail(f"Invalid setting '{pair}', expected key=value")
        extra[name.strip()] = value.strip()

    request = IntegrationConnectRequest(
        credentials={key: token},
        scan_frequency=every,
        filter_instructions=rules,
        settings=extra,
    )
    try:
        integration = integration_service.connect_integration(user, source, request)
    except TaskFlowError as e:
        _fail(str(e))
    console.print(
        f"[green]Connected {source.value}[/green] (every {integration.scan_frequency} min)"
    )


@app.command()
def scan(
    user: str,
    source: SourceType,
    max_items: int = typer.Option(None, "--max", "-n", help="Max items to fetch"),
):
    """Scan one source now."""
    try:
        result = scan_integration(user, source, max_items=max_items)
    except TaskFlowError as e:
        _fail(str(e))

    if result.error:
        _fail(f"Scan failed: {result.error}")

    table = Table(title=f"Scan {source.value} for {user}")
    table.add_column("Fetched", justify="right")
    table.add_column("Tasks", justify="right", style="green")
    table.add_column("Drafts", justify="right", style="cyan")
    table.add_column("Duplicates", justify="right", style="dim")
    table.add_column("Filtered", justify="right", style="dim")
    table.add_column("Errors", justify="right", style="red")
    table.add_row(
        str(result.fetched),
        str(result.tasks_created),
        str(result.drafts_created),
        str(result.duplicates),
        str(result.irrelevant),
        str(result.errors),
    )
    console.print(table)


@app.command()
def run(tick: float = typer.Option(None, "--tick", help="Seconds between poller ticks")):
    """Run the source pollers until interrupted."""
    init_db()
    console.print("[bold]Starting pollers[/bold] (Ctrl+C to stop)")
    Scheduler(tick_seconds=tick).run_forever()


@app.command()
def stats(user: str = USER_OPTION):
    """Show XP, level and streak."""
    current = get_user_stats(user)
    console.print(f"\n[bold]{user}[/bold]")
    console.print(f"  Level: [cyan]{current.level}[/cyan]")
    console.print(f"  XP: {current.xp} ({settings.xp_per_level - current.xp % settings.xp_per_level} to next level)")
    console.print(f"  Streak: {current.streak} day(s)")


def main():
    """Entry point."""
    logging.basicConfig(
        level=logging.INFO if not settings.debug else logging.DEBUG,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app()


if __name__ == "__main__":
    main()
