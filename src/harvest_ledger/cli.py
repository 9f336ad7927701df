"""Command-line front end for Harvest Ledger.

Usage:
    harvest-ledger add-farmer --name "Ramesh" --place Kota --crop wheat \\
        --contact 9876543210 --acres 4.5 --rate 1800
    harvest-ledger farmers --range month --search kota
    harvest-ledger edit-farmer 1001 --paid 5000
    harvest-ledger analytics
    harvest-ledger connect ~/harvester_data.json
"""

import argparse
import sys
from collections.abc import Sequence
from datetime import date
from pathlib import Path

import structlog

from harvest_ledger.aggregator import DateRangePreset, RecordFilter, date_range_preset
from harvest_ledger.config import configure_logging, get_settings
from harvest_ledger.errors import PersistenceError, UserCancelled, ValidationError
from harvest_ledger.formatting import format_acres, format_currency, format_date
from harvest_ledger.forms import ExpenseForm, FarmerForm
from harvest_ledger.ledger import Ledger
from harvest_ledger.records import to_date

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_VALIDATION = 1
EXIT_PERSISTENCE = 2


def confirm(prompt: str, assume_yes: bool = False) -> None:
    """Ask for a yes/no confirmation.

    Raises:
        UserCancelled: If the user does not answer yes.
    """
    if assume_yes:
        return
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError as e:
        raise UserCancelled("no confirmation given") from e
    if answer.strip().lower() not in ("y", "yes"):
        raise UserCancelled("cancelled by user")


def _add_farmer_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--name", required=required)
    parser.add_argument("--date", help="Job date, YYYY-MM-DD (default: today)")
    parser.add_argument("--place", required=required)
    parser.add_argument("--crop", required=required)
    parser.add_argument("--contact", required=required, help="10-digit mobile number")
    parser.add_argument("--acres", required=required)
    parser.add_argument("--rate", required=required, help="Rate per acre")
    parser.add_argument("--paid", help="Amount received so far")
    parser.add_argument(
        "--settled",
        dest="is_settled",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mark the bill as settled regardless of balance",
    )
    parser.add_argument("--comments")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harvest-ledger",
        description="Billing and expense records for a harvesting service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--data-dir", type=Path, help="Local cache directory")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output to stderr"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add-farmer", help="Record a new harvesting bill")
    _add_farmer_fields(p, required=True)

    p = sub.add_parser("edit-farmer", help="Change an existing bill")
    p.add_argument("record", help="Record id or bill number")
    _add_farmer_fields(p, required=False)

    p = sub.add_parser("delete-farmer", help="Delete a bill")
    p.add_argument("record", help="Record id or bill number")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    p = sub.add_parser("farmers", help="List bills with totals")
    p.add_argument("--search", default="", help="Match name, place, contact, crop or bill no")
    p.add_argument("--from", dest="start", help="First date, YYYY-MM-DD")
    p.add_argument("--to", dest="end", help="Last date, YYYY-MM-DD")
    p.add_argument(
        "--range",
        choices=[preset.value for preset in DateRangePreset],
        help="Quick date range (overrides --from/--to)",
    )

    p = sub.add_parser("add-expense", help="Record an expense")
    p.add_argument("--date", help="YYYY-MM-DD (default: today)")
    p.add_argument("--amount", required=True)
    p.add_argument("--category", default="")
    p.add_argument("--desc", default="")

    p = sub.add_parser("delete-expense", help="Delete an expense")
    p.add_argument("record", help="Expense id")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sub.add_parser("expenses", help="List expenses")
    sub.add_parser("analytics", help="Net profit and rollups")

    p = sub.add_parser("connect", help="Save to a database file and keep it in sync")
    p.add_argument("path", type=Path)

    p = sub.add_parser("open", help="Load a database file, replacing current records")
    p.add_argument("path", type=Path)
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sub.add_parser("disconnect", help="Stop syncing to the database file")

    p = sub.add_parser("export-xlsx", help="Export bills to a spreadsheet")
    p.add_argument("--dir", type=Path, default=Path.cwd())

    p = sub.add_parser("backup", help="Write a dated JSON backup")
    p.add_argument("--dir", type=Path, default=Path.cwd())

    p = sub.add_parser("share", help="Print the share message and WhatsApp link")
    p.add_argument("record", help="Record id or bill number")

    p = sub.add_parser("receipt", help="Save a PNG receipt")
    p.add_argument("record", help="Record id or bill number")
    p.add_argument("--dir", type=Path, default=Path.cwd())

    return parser


def _farmer_form(args: argparse.Namespace, base: FarmerForm) -> FarmerForm:
    return base.updated(
        name=args.name,
        date=args.date,
        place=args.place,
        crop=args.crop,
        contact=args.contact,
        acres=args.acres,
        rate=args.rate,
        paid=args.paid,
        is_settled=args.is_settled,
        comments=args.comments,
    )


def _print_farmers(ledger: Ledger, args: argparse.Namespace) -> None:
    today = date.today()
    if args.range:
        start, end = date_range_preset(args.range, today)
    else:
        start = to_date(args.start, "from") if args.start else None
        end = to_date(args.end, "to") if args.end else None

    view = ledger.farmer_view(RecordFilter(text=args.search, start=start, end=end), today)
    if not view.rows:
        print("No records found.")

    for row in view.rows:
        record, state = row.record, row.state
        bill_no = f"#{record.bill_no}" if record.bill_no is not None else "#-"
        line = (
            f"{format_date(record.date)}  {bill_no:<6} {record.name:<18} "
            f"{record.place:<12} {record.crop or '-':<10} {record.contact:<10} "
            f"{format_acres(record.acres):>6}  {format_currency(record.total):>10} "
            f"{format_currency(state.paid_amount):>10} {format_currency(state.balance):>10} "
            f"{state.status.value}"
        )
        if row.overdue:
            line += f"  ! {row.overdue.label}"
        print(line)

    summary = view.summary
    print()
    print(f"Revenue: {format_currency(summary.revenue)}")
    print(f"Acres:   {format_acres(summary.acres)}")
    print(f"Pending: {format_currency(summary.pending)}")


def _print_expenses(ledger: Ledger) -> None:
    view = ledger.expense_view()
    if not view.rows:
        print("No expenses recorded.")
    for expense in view.rows:
        print(
            f"{format_date(expense.date)}  {expense.category_label:<12} "
            f"{expense.desc:<30} {format_currency(expense.amount):>10}  {expense.id}"
        )
    print()
    print(f"Total expenses: {format_currency(view.total)}")


def _print_analytics(ledger: Ledger) -> None:
    analytics = ledger.analytics()
    print(f"Net profit: {format_currency(analytics.net_profit)}")
    print()
    print("Monthly (collected / expenses):")
    for bucket in analytics.monthly:
        print(
            f"  {bucket.label:<9} {format_currency(bucket.collected):>12} "
            f"{format_currency(bucket.expenses):>12}"
        )
    print()
    print("Acres by crop:")
    for crop, acres in analytics.crops.items():
        print(f"  {crop:<14} {acres:.2f} Acres")
    print()
    print("Expenses by category:")
    for category, amount in analytics.expense_categories.items():
        print(f"  {category:<14} {format_currency(amount)}")


def run(args: argparse.Namespace) -> int:
    """Execute one parsed command against the ledger."""
    ledger = Ledger.open(data_dir=args.data_dir)

    reminder = ledger.backup_reminder()
    if reminder is not None:
        print(
            f"Backup warning: you haven't saved a backup in {reminder} days. "
            "Run 'harvest-ledger backup' to write one.",
            file=sys.stderr,
        )

    command = args.command
    if command == "add-farmer":
        form = _farmer_form(args, FarmerForm(date=date.today().isoformat()))
        record = ledger.save_farmer(form)
        print(f"Saved bill #{record.bill_no} ({record.id})")
    elif command == "edit-farmer":
        existing = ledger.find_farmer(args.record)
        record = ledger.save_farmer(_farmer_form(args, FarmerForm.from_record(existing)))
        print(f"Updated bill #{record.bill_no}: {record.status.value}")
    elif command == "delete-farmer":
        record = ledger.find_farmer(args.record)
        confirm(f"Delete bill #{record.bill_no} for {record.name}?", args.yes)
        ledger.delete_farmer(record.id)
        print("Deleted.")
    elif command == "farmers":
        _print_farmers(ledger, args)
    elif command == "add-expense":
        form = ExpenseForm(
            date=args.date or date.today().isoformat(),
            amount=args.amount,
            category=args.category,
            desc=args.desc,
        )
        record = ledger.save_expense(form)
        print(f"Saved expense {record.id}")
    elif command == "delete-expense":
        confirm("Delete this expense?", args.yes)
        if ledger.delete_expense(args.record):
            print("Deleted.")
        else:
            print("No such expense.")
    elif command == "expenses":
        _print_expenses(ledger)
    elif command == "analytics":
        _print_analytics(ledger)
    elif command == "connect":
        ledger.connect_backup_file(args.path)
        print(f"Database connected: {args.path.name}. Changes will now auto-save to this file.")
    elif command == "open":
        confirm(f"Replace all records with {args.path.name}?", args.yes)
        ledger.open_backup_file(args.path)
        print("Database loaded successfully.")
    elif command == "disconnect":
        ledger.disconnect_backup_file()
        print("Database file disconnected.")
    elif command == "export-xlsx":
        print(ledger.export_spreadsheet(args.dir))
    elif command == "backup":
        print(ledger.export_backup(args.dir))
    elif command == "share":
        text, url = ledger.share(args.record)
        print(text)
        print()
        print(url)
    elif command == "receipt":
        print(ledger.receipt(args.record, args.dir))

    for warning in ledger.drain_warnings():
        print(f"Warning: {warning}", file=sys.stderr)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``harvest-ledger`` command."""
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    try:
        return run(args)
    except UserCancelled:
        logger.debug("command_cancelled", command=args.command)
        return EXIT_OK
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_VALIDATION
    except PersistenceError as e:
        logger.warning("persistence_error", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_PERSISTENCE


if __name__ == "__main__":
    sys.exit(main())
