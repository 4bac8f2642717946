"""Command-line interface for Cafe Credits."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from cafe_credits.allocation.service import AllocationCoordinator
from cafe_credits.core.browser import BrowserSession
from cafe_credits.core.prober import ReferralProber
from cafe_credits.core.scanner import BatchScanner
from cafe_credits.domain import CreditStatus, ProbeResult
from cafe_credits.email.service import EmailService
from cafe_credits.errors import RosterFormatError, StoreUnavailableError
from cafe_credits.extractors.referral import extract_code, find_referral_urls, to_referral_link
from cafe_credits.extractors.roster import parse_roster
from cafe_credits.logging_config import get_logger, setup_logging
from cafe_credits.settings import settings
from cafe_credits.storage import Database, Ledger, build_ledger
from cafe_credits.storage.exporter import Exporter

# Configure logging
setup_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="cafe-credits",
    help="Cafe Credits - verify referral credits and send them to attendees",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()

_state: dict[str, str] = {"mode": settings.storage_mode}

STATUS_STYLES = {
    "available": "green",
    "redeemed": "red",
    "unknown": "yellow",
}


@app.callback()
def main(
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Storage backend: local (CSV files) or cloud (database)"),
    ] = None,
) -> None:
    """Select the storage backend for every command."""
    if mode is not None:
        if mode not in ("local", "cloud"):
            raise typer.BadParameter("mode must be 'local' or 'cloud'", param_hint="--mode")
        _state["mode"] = mode


def _ledger() -> Ledger:
    try:
        return build_ledger(_state["mode"])
    except StoreUnavailableError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(1)


def _coordinator(ledger: Ledger) -> AllocationCoordinator:
    if _state["mode"] == "local":
        return AllocationCoordinator(ledger)
    if not settings.has_cloud_config:
        console.print("[yellow]Email is not configured (CAFE_RESEND_API_KEY, CAFE_RESEND_FROM_EMAIL); "
                      "sends will fail and credits stay available[/yellow]")
    return AllocationCoordinator(ledger, EmailService())


def _status_label(result: ProbeResult) -> str:
    status = result.status.value
    return f"[{STATUS_STYLES[status]}]{status}[/{STATUS_STYLES[status]}]"


def _progress() -> Progress:
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    )


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables (cloud mode)."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    database = Database()
    try:
        database.ping()
    except StoreUnavailableError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(1)
    database.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("probe")
def probe_url(
    url: Annotated[str, typer.Argument(help="Referral URL to check")],
    headless: Annotated[bool, typer.Option("--headless/--headed", help="Hide the browser window")] = True,
) -> None:
    """Check a single referral URL without storing anything."""
    link = to_referral_link(url)
    if link is None:
        console.print("[red]Could not extract a referral code from that URL[/red]")
        raise typer.Exit(1)

    console.print(f"Extracted code: [bold]{link.code}[/bold]")

    async def _run() -> ProbeResult:
        return await ReferralProber(session_factory=lambda: BrowserSession(headless=headless)).probe(url)

    result = asyncio.run(_run())
    link = link.with_checked_at(result.checked_at)
    console.print(f"Status: {_status_label(result)} (checked {link.checked_at:%Y-%m-%d %H:%M:%S} UTC)")
    if result.amount is not None:
        console.print(f"Amount: ${result.amount}")
    if result.error:
        console.print(f"Detail: {result.error}")


@app.command("scan")
def scan_file(
    file: Annotated[Path, typer.Argument(help="File containing referral URLs", exists=True, dir_okay=False)],
    headless: Annotated[bool | None, typer.Option("--headless/--headed", help="Hide the browser window")] = None,
    export: Annotated[Path | None, typer.Option("--export", "-e", help="Write available URLs to a JSON file")] = None,
) -> None:
    """Check every referral URL in a file and store the available credits."""
    urls = find_referral_urls(file.read_text(encoding="utf-8", errors="replace"))
    if not urls:
        console.print("[yellow]No referral URLs found in file[/yellow]")
        return

    console.print(f"[bold blue]Checking {len(urls)} referral URLs...[/bold blue]")
    ledger = _ledger()
    scanner = BatchScanner(headless=headless)

    with _progress() as progress:
        task = progress.add_task("Checking", total=len(urls))

        def on_progress(index: int, total: int, result: ProbeResult) -> None:
            progress.update(task, completed=index)

        results, summary = asyncio.run(scanner.scan_and_record(urls, ledger, on_progress))

    table = Table(title="Scan results")
    table.add_column("Code", style="cyan")
    table.add_column("Status")
    table.add_column("Amount", justify="right")
    for url, result in results.items():
        table.add_row(
            extract_code(url) or url,
            _status_label(result),
            f"${result.amount}" if result.amount is not None else "",
        )
    console.print(table)

    console.print(f"[bold green]✓[/bold green] {summary.available} available, "
                  f"{summary.redeemed} redeemed, {summary.unknown} unknown")
    console.print(f"  Saved: {summary.added} new (${summary.added_amount}), "
                  f"{summary.already_stored} already stored")
    if summary.malformed:
        console.print(f"  [yellow]Skipped {summary.malformed} URLs without a referral code[/yellow]")

    if export is not None:
        exported = Exporter.to_json(results, export)
        console.print(f"  Exported {len(exported)} available URLs to {export}")


@app.command("recheck")
def recheck_credits(
    headless: Annotated[bool | None, typer.Option("--headless/--headed", help="Hide the browser window")] = None,
) -> None:
    """Re-check stored available credits and retire the redeemed ones."""
    ledger = _ledger()
    total = len(ledger.list_credits(CreditStatus.AVAILABLE))
    if not total:
        console.print("[yellow]No available credits to check[/yellow]")
        return

    scanner = BatchScanner(headless=headless)
    with _progress() as progress:
        task = progress.add_task("Re-checking", total=total)
        summary = asyncio.run(
            scanner.recheck(ledger, lambda index, _total, _result: progress.update(task, completed=index))
        )

    console.print(f"[bold green]✓[/bold green] Checked {summary.checked}: "
                  f"{summary.still_available} still available, {summary.redeemed} redeemed, "
                  f"{summary.unknown} unknown")


@app.command("import-attendees")
def import_attendees(
    file: Annotated[Path, typer.Argument(help="Attendee CSV export", exists=True, dir_okay=False)],
) -> None:
    """Import attendees from a registration CSV."""
    try:
        roster = parse_roster(file)
    except RosterFormatError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(1)

    ledger = _ledger()
    added = skipped = 0
    for attendee in roster.attendees:
        result = ledger.add_person(attendee)
        if result.added:
            added += 1
        else:
            skipped += 1

    console.print(f"[bold green]✓[/bold green] Imported {added} attendees")
    console.print(f"  Already present: {skipped}")
    console.print(f"  Invalid rows skipped: {roster.skipped_rows}")


@app.command("people")
def list_people(
    pending: Annotated[bool, typer.Option("--pending", help="Only people without credits")] = False,
) -> None:
    """List attendees."""
    people = _ledger().list_people()
    if pending:
        people = [p for p in people if not p.sent_credits]

    if not people:
        console.print("[yellow]No people found[/yellow]")
        return

    table = Table(title="People")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("Working on")
    table.add_column("Credits", justify="center")

    for person in people:
        table.add_row(
            person.id,
            person.full_name,
            person.email,
            (person.working_on or "")[:40],
            "[green]sent[/green]" if person.sent_credits else "-",
        )

    console.print(table)


@app.command("send")
def send_credit(
    person_id: Annotated[str, typer.Argument(help="Person ID")],
) -> None:
    """Send the next available credit to one person."""
    ledger = _ledger()
    result = asyncio.run(_coordinator(ledger).send_credit_to(person_id))

    if not result.success:
        console.print(f"[bold red]✗[/bold red] {result.error}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓[/bold green] Sent ${result.credit.amount} credit to "
                  f"{result.person.full_name} <{result.person.email}>")


@app.command("send-pending")
def send_pending() -> None:
    """Send a credit to everyone who has not received one."""
    ledger = _ledger()
    coordinator = _coordinator(ledger)

    def on_progress(index, total, person, result) -> None:
        mark = "[green]✓[/green]" if result.success else "[red]✗[/red]"
        detail = "" if result.success else f" ({result.error})"
        console.print(f"  {mark} [{index}/{total}] {person.email}{detail}")

    summary = asyncio.run(coordinator.send_to_pending(on_progress))

    console.print(f"[bold green]✓[/bold green] Sent: {summary.sent}, failed: {summary.failed}")
    if summary.remaining:
        console.print(f"[yellow]Ran out of credits; {summary.remaining} people still waiting[/yellow]")


@app.command("tally")
def show_tally() -> None:
    """Show credit totals by status."""
    tally = _ledger().tally()

    table = Table(title="Credits")
    table.add_column("Status", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Amount", justify="right")

    for status in CreditStatus:
        table.add_row(
            status.value,
            str(getattr(tally.count, status.value)),
            f"${getattr(tally, status.value)}",
        )
    table.add_row("[bold]total[/bold]", str(tally.count.total), f"${tally.total}")

    console.print(table)


@app.command("export")
def export_credits(
    output_path: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file path (defaults to <exports_dir>/credits.csv)"),
    ] = None,
    status: Annotated[str | None, typer.Option("--status", "-s", help="Only credits with this status")] = None,
) -> None:
    """Export the credit ledger to CSV."""
    try:
        status_filter = CreditStatus(status) if status else None
    except ValueError:
        console.print(f"[red]Unknown status: {status}[/red]")
        raise typer.Exit(1)

    credits = _ledger().list_credits(status_filter)
    if not credits:
        console.print("[yellow]No credits to export[/yellow]")
        return

    if output_path is None:
        settings.exports_dir.mkdir(parents=True, exist_ok=True)
        output_path = settings.exports_dir / "credits.csv"

    Exporter.to_csv(credits, output_path)
    console.print(f"[bold green]✓[/bold green] Exported {len(credits)} credits to {output_path}")


if __name__ == "__main__":
    app()
