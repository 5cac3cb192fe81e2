"""Command-line interface for lendingdesk.

Built with Typer for commands and Rich for output. The engine never formats
text itself; this module turns results and error kinds into messages.
"""

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .catalog import BorrowerCreate, CatalogDirectory, ItemCreate, get_policy, policies
from .config import get_config
from .db import Database, get_db
from .errors import LendingDeskError
from .lending import LendingEngine, LendingError, Result
from .lending.replay import ScriptAction, ScriptError, apply_step, read_script
from .reports import ReportManager

# Create the main app
app = typer.Typer(
    name="lendingdesk",
    help="Lend catalog items, track loans and compute overdue fines.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()

ERROR_MESSAGES = {
    LendingError.BORROWER_NOT_FOUND: "Borrower not found!",
    LendingError.ITEM_NOT_FOUND: "Item not found!",
    LendingError.LOAN_NOT_FOUND: "Loan not found!",
    LendingError.UNKNOWN_BORROWER_TYPE: "Borrower type is no longer registered!",
    LendingError.BORROW_LIMIT_REACHED: "Borrower has reached the maximum borrowing limit!",
    LendingError.ITEM_UNAVAILABLE: "Item is not available!",
    LendingError.DUPLICATE_LOAN: "Borrower already holds a copy of this item!",
    LendingError.NO_ACTIVE_LOAN_FOR_ITEM: "No active loan found for this item!",
    LendingError.ALREADY_RETURNED: "Loan has already been returned!",
}


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def configure_logging() -> None:
    """Set the log level from configuration."""
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def parse_date(value: Optional[str]) -> date:
    """Parse an ISO date option, defaulting to today."""
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        print_error(f"Invalid date: {value} (expected YYYY-MM-DD)")
        raise typer.Exit(1)


def format_money(amount) -> str:
    return f"${amount:.2f}"


def print_issue(result: Result, borrower_id: str, item_id: str) -> None:
    """Print the outcome of an issue request."""
    if result.ok:
        receipt = result.value
        print_success(f"Issued {item_id} to {borrower_id} as {receipt.loan_id}")
        console.print(f"  Due date: {receipt.due_date.isoformat()}")
    else:
        print_error(ERROR_MESSAGES[result.error])


def print_return(result: Result) -> None:
    """Print the outcome of a return request."""
    if not result.ok:
        print_error(ERROR_MESSAGES[result.error])
        return

    outcome = result.value
    print_success(f"Returned {outcome.item_id} from {outcome.borrower_id} ({outcome.loan_id})")
    if outcome.days_overdue > 0:
        console.print(f"  [yellow]{outcome.days_overdue} days overdue[/yellow]")
        console.print(f"  Fine: [bold]{format_money(outcome.fine)}[/bold]")
    else:
        console.print("  Returned on time. No fine.")


def format_item_table(items: list, title: str = "Items") -> Table:
    """Create a rich table for displaying items."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Code")
    table.add_column("Available", justify="center")

    for item in items:
        table.add_row(
            item.id,
            item.title,
            item.author or "-",
            item.catalog_code or "-",
            f"{item.available_copies}/{item.total_copies}",
        )

    return table


def format_borrower_table(borrowers: list, title: str = "Borrowers") -> Table:
    """Create a rich table for displaying borrowers."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Borrowed", justify="center")

    for borrower in borrowers:
        table.add_row(
            borrower.id,
            borrower.name,
            borrower.email or "-",
            borrower.policy.display_name,
            f"{borrower.active_loan_count}/{borrower.loan_limit}",
        )

    return table


def print_stats(reports: ReportManager, library_name: str) -> None:
    """Print the statistics panel."""
    stats = reports.get_stats()
    body = (
        f"Total Items: {stats.total_items}\n"
        f"Total Borrowers: {stats.total_borrowers}\n"
        f"Total Loans: {stats.total_loans}\n"
        f"Active Loans: {stats.active_loans}\n"
        f"Available Copies: {stats.total_available_copies}/{stats.total_copies}"
    )
    console.print(Panel(body, title=f"Statistics: {library_name}", expand=False))


# ============================================================================
# Commands
# ============================================================================


@app.command("policies")
def list_policies() -> None:
    """Show borrower types and their privileges."""
    table = Table(title="Borrower Types", show_header=True, header_style="bold magenta")
    table.add_column("Type", style="cyan")
    table.add_column("Loan Limit", justify="right")
    table.add_column("Loan Period", justify="right")
    table.add_column("Fine / Day", justify="right")

    for policy in policies:
        table.add_row(
            policy.name,
            str(policy.loan_limit),
            f"{policy.loan_period_days} days",
            format_money(policy.fine_rate),
        )

    console.print(table)


@app.command()
def fine(
    borrower_type: str = typer.Argument(..., help="Borrower type, e.g. standard"),
    days: int = typer.Argument(..., help="Days overdue"),
) -> None:
    """Compute the fine a borrower type owes for overdue days."""
    try:
        policy = get_policy(borrower_type)
    except LendingDeskError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(
        f"{policy.display_name} fine for {days} days overdue: "
        f"[bold]{format_money(policy.compute_fine(days))}[/bold]"
    )


@app.command()
def demo(
    today: Optional[str] = typer.Option(None, "--today", "-t", help="Issue date (YYYY-MM-DD)"),
    return_after: int = typer.Option(
        0, "--return-after", "-r", help="Days between issuing and returning"
    ),
) -> None:
    """Walk through a sample lending session."""
    configure_logging()
    config = get_config()
    issue_date = parse_date(today)
    return_date = issue_date + timedelta(days=return_after)

    db = Database(":memory:")
    db.create_tables()
    directory = CatalogDirectory(db)
    engine = LendingEngine(db, directory)
    reports = ReportManager(db)

    console.print(Panel(f"[bold]{config.library_name}[/bold]", title="lendingdesk demo"))

    for data in (
        ItemCreate(id="B001", title="Introduction to Java", author="James Gosling",
                   catalog_code="ISBN-001", total_copies=3),
        ItemCreate(id="B002", title="Data Structures", author="Robert Lafore",
                   catalog_code="ISBN-002", total_copies=2),
        ItemCreate(id="B003", title="Design Patterns", author="Gang of Four",
                   catalog_code="ISBN-003", total_copies=2),
        ItemCreate(id="B004", title="Clean Code", author="Robert Martin",
                   catalog_code="ISBN-004", total_copies=1),
    ):
        directory.add_item(data)

    for data in (
        BorrowerCreate(id="S001", name="Alice Johnson", email="alice@university.edu"),
        BorrowerCreate(id="S002", name="Bob Smith", email="bob@university.edu"),
        BorrowerCreate(id="F001", name="Dr. Carol White", email="carol@university.edu",
                       borrower_type="privileged"),
    ):
        directory.register_borrower(data)

    print_stats(reports, config.library_name)
    console.print(format_item_table(directory.list_items()))
    console.print(format_borrower_table(directory.list_borrowers()))

    console.print("\n[bold]Issuing items[/bold]")
    for borrower_id, item_id in (("S001", "B001"), ("S001", "B002"), ("F001", "B003"), ("S002", "B004")):
        print_issue(engine.issue(borrower_id, item_id, issue_date), borrower_id, item_id)

    console.print("\n[bold]Issuing an unavailable item[/bold]")
    print_issue(engine.issue("S001", "B004", issue_date), "S001", "B004")

    print_stats(reports, config.library_name)
    console.print(format_borrower_table(directory.list_borrowers()))

    console.print(f"\n[bold]Returning items on {return_date.isoformat()}[/bold]")
    print_return(engine.return_item("S001", "B001", return_date))
    print_return(engine.return_item("F001", "B003", return_date))

    console.print("\n[bold]Fines by borrower type (5 days overdue)[/bold]")
    for borrower_id in ("S001", "F001"):
        borrower = directory.find_borrower(borrower_id)
        console.print(
            f"  {borrower.policy.display_name}: {format_money(borrower.compute_fine(5))}"
        )

    print_stats(reports, config.library_name)
    console.print(format_item_table(directory.list_items()))


@app.command()
def replay(
    catalog_file: Path = typer.Argument(..., help="JSON catalog with items and borrowers"),
    script_file: Path = typer.Argument(..., help="CSV of dated issue/return rows"),
    as_of: Optional[str] = typer.Option(
        None, "--as-of", help="Date for the overdue report (default: last script date)"
    ),
) -> None:
    """Load a catalog and apply a transaction script to it."""
    configure_logging()
    config = get_config()

    for path in (catalog_file, script_file):
        if not path.exists():
            print_error(f"File not found: {path}")
            raise typer.Exit(1)

    db = get_db()
    directory = CatalogDirectory(db)
    engine = LendingEngine(db, directory)
    reports = ReportManager(db)

    try:
        items, borrowers = directory.load_file(catalog_file)
        steps = read_script(script_file)
    except (ScriptError, LendingDeskError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_info(f"Loaded {items} items and {borrowers} borrowers")

    refused = 0
    for step in steps:
        console.print(
            f"[dim]{step.date.isoformat()}[/dim] {step.action.value} "
            f"{step.item_id} / {step.borrower_id}"
        )
        result = apply_step(engine, step)
        if step.action == ScriptAction.ISSUE:
            print_issue(result, step.borrower_id, step.item_id)
        else:
            print_return(result)
        if not result.ok:
            refused += 1

    print_stats(reports, config.library_name)

    report_date = parse_date(as_of) if as_of else (steps[-1].date if steps else date.today())
    overdue = reports.get_overdue_report(report_date)
    if overdue.loans:
        table = Table(
            title=f"Overdue as of {report_date.isoformat()}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Loan", style="dim")
        table.add_column("Item", style="cyan")
        table.add_column("Borrower", style="green")
        table.add_column("Due")
        table.add_column("Days", justify="right")
        table.add_column("Fine", justify="right")
        for loan in overdue.loans:
            table.add_row(
                loan.loan_id,
                loan.item_title,
                loan.borrower_name,
                loan.due_date.isoformat(),
                str(loan.days_overdue),
                format_money(loan.accrued_fine),
            )
        console.print(table)
    else:
        print_info(f"No overdue loans as of {report_date.isoformat()}")

    if refused:
        print_info(f"{refused} of {len(steps)} transactions refused")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"lendingdesk version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
