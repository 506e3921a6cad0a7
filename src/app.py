"""Secret Santa organizer command-line entry point."""

import argparse
import asyncio
import logging
import random
import sys
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from src.config import (
    LOG_PATH,
    MAX_YEAR,
    MIN_YEAR,
    SettingsError,
    ensure_data_dir,
    load_settings,
    resolve_current_year,
    save_settings,
)
from src.matching import MatchingEngine, MatchingError, MatchStrategy
from src.notify import (
    EmailDeliveryError,
    send_assignment_emails,
    send_test_email,
    validate_email_config,
)
from src.output import CSVImportError, export_assignments_csv, import_history_csv, import_wishlist_csv
from src.participants import (
    Assignment,
    ExclusionPair,
    Participant,
    RosterError,
    YearData,
    add_exclusion_pair,
    add_participant,
    history_exclusion_pairs,
    merge_exclusion_pairs,
    merge_participants_by_name,
    normalize_email,
    remove_exclusion_pair,
    remove_participant,
    update_exclusion_pair_ids,
    update_participant,
)
from src.storage import SantaRepository

console = Console()


def configure_logging() -> None:
    """Configure application logging."""
    ensure_data_dir()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    log_path = str(LOG_PATH.resolve())
    has_file_handler = any(
        isinstance(handler, logging.FileHandler)
        and handler.baseFilename == log_path
        for handler in root_logger.handlers
    )
    if not has_file_handler:
        file_handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def _year(value: str) -> int:
    year = int(value)
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise argparse.ArgumentTypeError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return year


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secret-santa",
        description="Organize a Secret Santa draw that avoids recent repeat pairings.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("participants", help="List participants and exclusions")

    add = sub.add_parser("add", help="Add a participant by hand")
    add.add_argument("name")
    add.add_argument("email")
    add.add_argument("--wishlist")
    add.add_argument("--address")

    edit = sub.add_parser("edit", help="Change a participant's details")
    edit.add_argument("participant", help="Email or name")
    edit.add_argument("--name")
    edit.add_argument("--email")
    edit.add_argument("--wishlist")
    edit.add_argument("--address")

    remove = sub.add_parser("remove", help="Remove a participant and their exclusions")
    remove.add_argument("participant", help="Email or name")

    wishlist = sub.add_parser("import-wishlist", help="Import wishlist form responses (CSV)")
    wishlist.add_argument("csv_path")

    history = sub.add_parser("import-history", help="Import a previous year's assignments (CSV)")
    history.add_argument("csv_path")

    exclude = sub.add_parser("exclude", help="Forbid a pairing between two participants")
    exclude.add_argument("first", help="Email or name")
    exclude.add_argument("second", help="Email or name")
    exclude.add_argument(
        "--one-way", action="store_true", help="Only forbid FIRST giving to SECOND"
    )

    unexclude = sub.add_parser("unexclude", help="Remove the exclusion between two participants")
    unexclude.add_argument("first", help="Email or name")
    unexclude.add_argument("second", help="Email or name")

    generate = sub.add_parser("generate", help="Draw assignments")
    generate.add_argument("--year", type=_year, help="Draw year (default: configured or current)")
    generate.add_argument("--seed", type=int, help="Seed for a reproducible draw")
    generate.add_argument(
        "--strategy",
        choices=[s.value for s in MatchStrategy],
        default=MatchStrategy.RESTART.value,
        help="Search strategy (default: restart)",
    )
    generate.add_argument("--save", action="store_true", help="Archive the draw and export CSV")
    generate.add_argument("--export", metavar="PATH", help="CSV path used with --save")

    years = sub.add_parser("history", help="List archived years")
    years.add_argument("--delete", type=int, metavar="YEAR", help="Delete an archived year")

    send = sub.add_parser("send", help="Email givers their assignments")
    send.add_argument("--year", type=_year, help="Archived year to send (default: current)")
    send.add_argument("--test", nargs=2, metavar=("EMAIL", "NAME"), help="Send a test email")

    config = sub.add_parser("config", help="Show or change settings")
    year_group = config.add_mutually_exclusive_group()
    year_group.add_argument("--year", type=_year, help="Override the draw year")
    year_group.add_argument("--clear-year", action="store_true", help="Use the calendar year")
    config.add_argument("--service-id", help="EmailJS service id")
    config.add_argument("--template-id", help="EmailJS template id")
    config.add_argument("--public-key", help="EmailJS public key")

    sub.add_parser("clear", help="Clear participants and exclusions (keeps history)")

    return parser


def _print_assignments(year: int, assignments: List[Assignment]) -> None:
    table = Table(title=f"Secret Santa {year}")
    table.add_column("Giver")
    table.add_column("Recipient")
    for a in assignments:
        table.add_row(f"{a.giver_name} <{a.giver_email}>", f"{a.recipient_name} <{a.recipient_email}>")
    console.print(table)


def _find_participant(ref: str, participants: List[Participant]) -> Optional[Participant]:
    email = normalize_email(ref)
    for p in participants:
        if p.email.lower() == email:
            return p
    for p in participants:
        if p.name.strip().lower() == ref.strip().lower():
            return p
    return None


def _require_participants(participants: List[Participant], *refs: str) -> Tuple[Participant, ...]:
    found = []
    for ref in refs:
        participant = _find_participant(ref, participants)
        if participant is None:
            raise RosterError(f"No participant matches {ref!r}")
        found.append(participant)
    return tuple(found)


def cmd_participants(repo: SantaRepository, args: argparse.Namespace) -> int:
    participants = repo.load_participants()
    names = {p.id: p.name for p in participants}

    table = Table(title=f"Participants ({len(participants)})")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Wishlist")
    table.add_column("Address")
    for p in participants:
        table.add_row(p.name, p.email, "yes" if p.wishlist else "-", "yes" if p.address else "-")
    console.print(table)

    pairs = repo.load_exclusion_pairs()
    if pairs:
        table = Table(title=f"Exclusions ({len(pairs)})")
        table.add_column("Between")
        table.add_column("Direction")
        for pair in pairs:
            first = names.get(pair.participant1_id, pair.participant1_id)
            second = names.get(pair.participant2_id, pair.participant2_id)
            if pair.is_unidirectional:
                table.add_row(f"{first} -> {second}", "one-way (history)")
            else:
                table.add_row(f"{first} <-> {second}", "both ways")
        console.print(table)
    return 0


def cmd_import_wishlist(repo: SantaRepository, args: argparse.Namespace) -> int:
    imported = import_wishlist_csv(args.csv_path)
    existing = repo.load_participants()

    participants = merge_participants_by_name(imported.participants, existing)
    pairs = merge_exclusion_pairs(
        imported.exclusion_pairs,
        update_exclusion_pair_ids(repo.load_exclusion_pairs(), participants),
    )

    repo.save_participants(participants)
    repo.save_exclusion_pairs(pairs)

    existing_names = {p.name.strip().lower() for p in existing}
    updated = sum(1 for p in imported.participants if p.name.strip().lower() in existing_names)
    added = max(0, len(participants) - len(existing))
    console.print(
        f"Imported wishlist: {len(participants)} participants "
        f"({added} new, {updated} updated), {len(pairs)} exclusions."
    )
    return 0


def cmd_import_history(repo: SantaRepository, args: argparse.Namespace) -> int:
    imported = import_history_csv(args.csv_path)
    year_data = imported.year_data
    repo.save_year_data(year_data)

    existing = repo.load_participants()
    if existing:
        repo.save_participants(merge_participants_by_name(existing, imported.participants))

    new_pairs = history_exclusion_pairs(year_data)
    pairs = merge_exclusion_pairs(
        new_pairs,
        update_exclusion_pair_ids(
            repo.load_exclusion_pairs(), existing or imported.participants
        ),
    )
    repo.save_exclusion_pairs(pairs)

    console.print(
        f"Imported {len(year_data.assignments)} assignments from {year_data.year}. "
        f"Created {len(new_pairs)} exclusions from that year's pairings "
        f"({len(pairs)} exclusions total)."
    )
    return 0


def cmd_exclude(repo: SantaRepository, args: argparse.Namespace) -> int:
    participants = repo.load_participants()
    first, second = _require_participants(participants, args.first, args.second)

    pair = ExclusionPair(
        id=f"{first.id}-{second.id}",
        participant1_id=first.id,
        participant2_id=second.id,
        is_unidirectional=args.one_way,
    )
    repo.save_exclusion_pairs(add_exclusion_pair(repo.load_exclusion_pairs(), pair))
    console.print(f"Excluded {first.name} {'->' if args.one_way else '<->'} {second.name}")
    return 0


def cmd_unexclude(repo: SantaRepository, args: argparse.Namespace) -> int:
    participants = repo.load_participants()
    first, second = _require_participants(participants, args.first, args.second)

    repo.save_exclusion_pairs(
        remove_exclusion_pair(repo.load_exclusion_pairs(), first.id, second.id)
    )
    console.print(f"Removed exclusion between {first.name} and {second.name}")
    return 0


def cmd_add(repo: SantaRepository, args: argparse.Namespace) -> int:
    participants = add_participant(
        repo.load_participants(),
        args.name,
        args.email,
        wishlist=args.wishlist,
        address=args.address,
    )
    repo.save_participants(participants)
    console.print(f"Added {participants[-1].name} <{participants[-1].email}>")
    return 0


def cmd_edit(repo: SantaRepository, args: argparse.Namespace) -> int:
    participants = repo.load_participants()
    (current,) = _require_participants(participants, args.participant)

    participants = update_participant(
        participants,
        current.id,
        name=args.name,
        email=args.email,
        wishlist=args.wishlist,
        address=args.address,
    )
    repo.save_participants(participants)
    console.print(f"Updated {current.name}")
    return 0


def cmd_remove(repo: SantaRepository, args: argparse.Namespace) -> int:
    participants = repo.load_participants()
    (current,) = _require_participants(participants, args.participant)

    pairs_before = repo.load_exclusion_pairs()
    participants, pairs = remove_participant(participants, pairs_before, current.id)
    repo.save_participants(participants)
    repo.save_exclusion_pairs(pairs)
    console.print(
        f"Removed {current.name} and {len(pairs_before) - len(pairs)} of their exclusions"
    )
    return 0


def cmd_generate(repo: SantaRepository, args: argparse.Namespace) -> int:
    settings = load_settings()
    year = args.year or resolve_current_year(settings)

    engine = MatchingEngine(
        max_attempts=settings.max_attempts,
        years_to_avoid=settings.years_to_avoid,
        rng=random.Random(args.seed) if args.seed is not None else None,
        strategy=MatchStrategy(args.strategy),
    )
    participants = repo.load_participants()
    assignments = engine.generate(
        participants,
        repo.load_exclusion_pairs(),
        repo.load_historical_data(),
        year,
    )
    _print_assignments(year, assignments)

    if args.save:
        repo.save_year_data(YearData(year=year, assignments=assignments))
        path = export_assignments_csv(year, assignments, args.export)
        console.print(f"Assignments for {year} saved and exported to {path}")
    return 0


def cmd_history(repo: SantaRepository, args: argparse.Namespace) -> int:
    if args.delete is not None:
        if repo.delete_year_data(args.delete):
            console.print(f"Deleted {args.delete}")
            return 0
        console.print(f"[red]No data for {args.delete}[/red]")
        return 1

    table = Table(title="History")
    table.add_column("Year")
    table.add_column("Assignments")
    table.add_column("Saved")
    for year_data in repo.load_historical_data():
        table.add_row(
            str(year_data.year),
            str(len(year_data.assignments)),
            year_data.saved_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)
    return 0


def cmd_send(repo: SantaRepository, args: argparse.Namespace) -> int:
    settings = load_settings()
    if not validate_email_config(settings.email):
        console.print("[red]Please configure EmailJS settings first (secret-santa config).[/red]")
        return 1

    if args.test:
        email, name = args.test
        asyncio.run(send_test_email(settings.email, email, name))
        console.print(f"Test email sent to {email}")
        return 0

    year = args.year or resolve_current_year(settings)
    year_data = repo.get_year_data(year)
    if year_data is None or not year_data.assignments:
        console.print(f"[red]No saved assignments for {year}. Run generate --save first.[/red]")
        return 1

    with Progress(console=console) as progress:
        task = progress.add_task("Sending", total=len(year_data.assignments))
        report = asyncio.run(
            send_assignment_emails(
                year_data.assignments,
                settings.email,
                on_progress=lambda sent, total: progress.update(task, completed=sent),
            )
        )

    console.print(f"Sent {report.success} emails, {report.failed} failed.")
    for error in report.errors:
        console.print(error, style="red", markup=False)
    return 0 if report.failed == 0 else 1


def cmd_config(repo: SantaRepository, args: argparse.Namespace) -> int:
    settings = load_settings(apply_env=False)

    if args.year is not None:
        settings.year_override = args.year
    if args.clear_year:
        settings.year_override = None
    for attr in ("service_id", "template_id", "public_key"):
        value = getattr(args, attr)
        if value is not None:
            setattr(settings.email, attr, value)

    path = save_settings(settings)

    effective = load_settings()
    console.print(f"Settings: {path}")
    console.print(f"Draw year: {resolve_current_year(effective)}"
                  f"{' (overridden)' if effective.year_override else ''}")
    console.print(f"Email configured: {'yes' if validate_email_config(effective.email) else 'no'}")
    return 0


def cmd_clear(repo: SantaRepository, args: argparse.Namespace) -> int:
    repo.clear_temporary_data()
    console.print("Cleared participants and exclusions. History is preserved.")
    return 0


COMMANDS = {
    "participants": cmd_participants,
    "add": cmd_add,
    "edit": cmd_edit,
    "remove": cmd_remove,
    "import-wishlist": cmd_import_wishlist,
    "import-history": cmd_import_history,
    "exclude": cmd_exclude,
    "unexclude": cmd_unexclude,
    "generate": cmd_generate,
    "history": cmd_history,
    "send": cmd_send,
    "config": cmd_config,
    "clear": cmd_clear,
}


def main(argv: Optional[List[str]] = None, repo: Optional[SantaRepository] = None) -> int:
    """Entry point for the application."""
    load_dotenv()
    configure_logging()

    args = build_parser().parse_args(argv)
    repo = repo or SantaRepository()

    try:
        return COMMANDS[args.command](repo, args)
    except (
        MatchingError,
        CSVImportError,
        EmailDeliveryError,
        RosterError,
        SettingsError,
        ValidationError,
    ) as e:
        console.print(str(e), style="red", markup=False)
        return 1


if __name__ == "__main__":
    sys.exit(main())
