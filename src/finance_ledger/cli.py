"""Command-line interface for the finance ledger."""

import argparse
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from finance_ledger import __version__
from finance_ledger.config import Config, ConfigError, load_config
from finance_ledger.models.account import Account, AccountType
from finance_ledger.models.report import AccountSnapshot, FinancialHealth, TransferVerdict
from finance_ledger.processing.analytics import AnalyticsEngine
from finance_ledger.processing.importer import ImportOrchestrator, ImportResult, RawFile
from finance_ledger.processing.reconciliation import ReconciliationEngine
from finance_ledger.utils.decimal_utils import format_currency
from finance_ledger.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

CONFIG_DIR_ENV = "FINANCE_LEDGER_CONFIG_DIR"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="finance-ledger",
        description=(
            "Import bank and transfer-service CSV exports into per-account ledgers, "
            "then report budgets, trends and transfer reconciliation"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --input-dir ./exports
  %(prog)s checking_march.csv wise_march.csv --as-of 2024-03-31
  %(prog)s -i ./exports --workers 4 -vv
  %(prog)s --validate-only --config-dir ./config
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "files",
        nargs="*",
        type=Path,
        help="CSV files to import",
    )

    parser.add_argument(
        "-i", "--input-dir",
        type=Path,
        default=None,
        help="Directory whose *.csv files are imported",
    )

    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help=f"Config directory (default: ${CONFIG_DIR_ENV} or ./config)",
    )

    parser.add_argument(
        "--as-of",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Reference date for trends and 30-day figures (YYYY-MM-DD, default: today)",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads used to parse files of one account (default: from settings)",
    )

    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate configuration files",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log file path (default: from settings, else finance_ledger.log)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for info, -vv for debug)",
    )

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def resolve_config_dir(cli_value: Optional[Path]) -> Path:
    """Pick the config directory: command line, then environment, then ./config."""
    if cli_value is not None:
        return cli_value
    env_value = os.environ.get(CONFIG_DIR_ENV)
    if env_value:
        return Path(env_value)
    return Path("config")


def validate_config(config_dir: Path) -> int:
    """Validate configuration files.

    Args:
        config_dir: Directory holding the YAML files.

    Returns:
        0 if valid, 1 if errors found.
    """
    console.print("[bold]Validating configuration files...[/bold]\n")

    warnings = []
    if not config_dir.exists():
        warnings.append(f"Config directory not found: {config_dir}")

    for filename in ("settings.yaml", "accounts.yaml", "dialects.yaml", "assets.yaml"):
        path = config_dir / filename
        if path.exists():
            console.print(f"[green]✓[/green] {filename}: {path}")
        else:
            warnings.append(f"{filename} not found in {config_dir}, using defaults")

    try:
        config = load_config(config_dir=config_dir)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"\n[red]Errors:[/red]\n  - {e}")
        return 1

    console.print("\n[green]✓[/green] Configuration loaded successfully")
    console.print(f"  - {len(config.accounts)} accounts")
    console.print(f"  - {len(config.dialects)} dialects")
    console.print(f"  - {len(config.assets)} assets")
    console.print(f"  - {len(config.reconciliation.transfer_checks)} transfer checks")

    if warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")

    console.print("\n[green]Configuration is valid.[/green]")
    return 0


def collect_files(paths: list[Path], input_dir: Optional[Path]) -> list[RawFile]:
    """Read the delivered files into (name, bytes) pairs.

    Explicit paths come first in the given order, then the *.csv files of
    the input directory sorted by name.

    Raises:
        FileNotFoundError: If a path or the input directory does not exist.
    """
    all_paths = list(paths)
    if input_dir is not None:
        if not input_dir.is_dir():
            raise FileNotFoundError(f"Input directory not found: {input_dir}")
        all_paths.extend(sorted(p for p in input_dir.iterdir() if p.suffix.lower() == ".csv"))

    files = []
    for path in all_paths:
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        files.append((path.name, path.read_bytes()))
    return files


def create_progress() -> Progress:
    """Create a progress display.

    Returns:
        Rich Progress instance.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    )


def import_delivery(
    orchestrator: ImportOrchestrator, files: list[RawFile]
) -> tuple[dict[str, ImportResult], list[str]]:
    """Route files to accounts and import them with a progress bar."""
    routed, unmatched = orchestrator.route_files(files)
    results: dict[str, ImportResult] = {}
    with create_progress() as progress:
        task = progress.add_task("Importing...", total=len(routed))
        for account_id, account_files in routed.items():
            account = orchestrator.config.accounts[account_id]
            progress.update(task, description=f"Importing {account.name}")
            results[account_id] = orchestrator.import_files(account, account_files)
            progress.update(task, advance=1)
    return results, unmatched


def display_import_summary(results: dict[str, ImportResult], unmatched: list[str]) -> None:
    """Display import counts per account."""
    console.print("\n[bold]Import Summary[/bold]")
    for account_id, result in results.items():
        console.print(
            f"  {account_id}: {result.imported} imported, {result.duplicates} duplicates "
            f"from {len(result.files)} files"
        )
        for source in result.empty_files:
            console.print(f"    [yellow]nothing importable in {source}[/yellow]")

    if unmatched:
        console.print(f"\n[yellow]Unrouted files ({len(unmatched)}):[/yellow]")
        for source in unmatched[:10]:
            console.print(f"  - {source}")
        if len(unmatched) > 10:
            console.print(f"  ... and {len(unmatched) - 10} more")


def display_snapshot(snapshot: AccountSnapshot) -> None:
    """Display one account's totals, budget lines and top categories."""
    console.print(f"\n[bold]{snapshot.name}[/bold] ({snapshot.transaction_count} transactions)")
    console.print(
        f"  Debits {format_currency(snapshot.total_debits)}  "
        f"Credits {format_currency(snapshot.total_credits)}  "
        f"Net {snapshot.net_balance_display}"
    )

    if snapshot.categories:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Category")
        table.add_column("Budget", justify="right")
        table.add_column("Spent", justify="right")
        table.add_column("Used", justify="right")
        for status in snapshot.categories + [snapshot.budget]:
            style = "red" if status.is_over_budget else None
            table.add_row(
                status.name,
                format_currency(status.allocation),
                format_currency(status.spent),
                f"{status.utilization_percentage:.0f}%",
                style=style,
            )
        console.print(table)
        console.print(f"  Budget health: {snapshot.health_score * 100:.0f}%")

    for spend in snapshot.top_categories:
        console.print(f"  {spend.category}: {format_currency(spend.amount)} ({spend.percentage:.1f}%)")


def display_financial_health(net_worth: Decimal, health: FinancialHealth) -> None:
    """Display net worth and the composite health score."""
    console.print("\n[bold]Financial Health[/bold]")
    console.print(f"  Net worth: {format_currency(net_worth)}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Score")
    table.add_column("Value", justify="right")
    for name, value in (
        ("Portfolio", health.portfolio),
        ("Budget", health.budget),
        ("Savings", health.savings),
        ("Diversification", health.diversification),
        ("Assets", health.asset_health),
    ):
        table.add_row(name, f"{value:.0f}")
    table.add_row("Overall", f"{health.overall:.0f} ({health.grade})", style="bold")
    console.print(table)


def first_active(accounts: list[Account], account_type: AccountType) -> Optional[Account]:
    return next((a for a in accounts if a.is_active and a.account_type is account_type), None)


def display_verdicts(verdicts: list[TransferVerdict]) -> None:
    """Display reconciliation verdicts."""
    if not verdicts:
        return
    console.print("\n[bold]Transfer Reconciliation[/bold]")
    for verdict in verdicts:
        mark = "[green]✓[/green]" if verdict.is_valid else "[red]✗[/red]"
        console.print(f"  {mark} {verdict.message}")


def run(config: Config, files: list[RawFile], as_of: date, workers: Optional[int]) -> int:
    """Import files, then print snapshots and reconciliation verdicts.

    Returns:
        0 when every transfer check matched, 2 otherwise.
    """
    orchestrator = ImportOrchestrator(config, max_workers=workers)
    results, unmatched = import_delivery(orchestrator, files)
    display_import_summary(results, unmatched)

    analytics = AnalyticsEngine(config.analytics)
    accounts = sorted(config.accounts.values(), key=lambda a: a.display_order)
    for account in accounts:
        if account.is_active and account.ledger:
            display_snapshot(analytics.snapshot(account, as_of))

    spending = first_active(accounts, AccountType.CHECKING)
    savings = first_active(accounts, AccountType.SAVINGS)
    if spending and savings:
        net_worth = analytics.net_worth(
            [a for a in accounts if a.is_active], assets=config.assets, as_of=as_of
        )
        health = analytics.financial_health(spending, savings, as_of, assets=config.assets)
        display_financial_health(net_worth, health)

    reconciliation = ReconciliationEngine(
        tolerance=config.reconciliation.tolerance,
        asset_income_category=config.analytics.asset_income_category,
    )
    verdicts = reconciliation.reconcile(config.accounts, config.reconciliation.transfer_checks)
    display_verdicts(verdicts)

    revenue_assets = config.assets.revenue_asset_names
    if spending and revenue_assets:
        cash_flow = reconciliation.validate_asset_cash_flow(spending, revenue_assets)
        mark = "[green]✓[/green]" if cash_flow.is_valid else "[yellow]![/yellow]"
        console.print(f"  {mark} Asset income: {cash_flow.message}")

    return 0 if all(v.is_valid for v in verdicts) else 2


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, 1 for errors, 2 for transfer mismatches).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = get_log_level(args.verbose)
    if args.log_file:
        # Before settings.yaml is read only an explicit log file may be opened
        setup_logging(level=log_level, log_file=args.log_file, console_output=args.verbose > 0)

    config_dir = resolve_config_dir(args.config_dir)

    if args.validate_only:
        return validate_config(config_dir)

    if not args.files and args.input_dir is None:
        console.print("[red]Error: give CSV files or --input-dir[/red]")
        parser.print_usage()
        return 1

    try:
        config = load_config(config_dir=config_dir)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("Run with --validate-only to check configuration files.")
        return 1

    # settings.yaml supplies the defaults that -v and --log-file override
    setup_logging(
        level=log_level if args.verbose else config.logging.level,
        log_file=args.log_file or config.logging.file,
        console_output=args.verbose > 0,
    )

    try:
        files = collect_files(args.files, args.input_dir)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(f"[bold]Finance Ledger v{__version__}[/bold]\n")
    console.print(f"Found {len(files)} files to import")
    if not files:
        console.print("[yellow]No CSV files found.[/yellow]")
        return 0

    as_of = args.as_of or date.today()
    logger.info(f"Importing {len(files)} files as of {as_of}")
    return run(config, files, as_of, args.workers)


if __name__ == "__main__":
    raise SystemExit(main())
