"""CSV import and export for assignment sheets and wishlist form responses."""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from src.config import DATA_DIR
from src.participants.models import Assignment, ExclusionPair, Participant, YearData
from src.participants.roster import normalize_email

logger = logging.getLogger(__name__)

HISTORY_HEADERS = [
    "Year",
    "Giver Name",
    "Giver Email",
    "Recipient Name",
    "Recipient Email",
]

# Column titles of the wishlist form's response sheet
WISHLIST_TIMESTAMP = "Timestamp"
WISHLIST_EMAIL = "Username"
WISHLIST_NAME = "What is your name?"
WISHLIST_EXCLUSIONS = "Any exclusions?"
WISHLIST_ITEMS = "What would you like for Christmas this year?"
WISHLIST_ADDRESS = "Where would you like your Christmas gift sent to?"


class CSVImportError(ValueError):
    """Raised when a CSV file cannot be imported."""


@dataclass
class HistoryImport:
    """Result of importing a previous year's assignment sheet."""
    year_data: YearData
    participants: List[Participant] = field(default_factory=list)


@dataclass
class WishlistImport:
    """Result of importing wishlist form responses."""
    participants: List[Participant] = field(default_factory=list)
    exclusion_pairs: List[ExclusionPair] = field(default_factory=list)


def default_export_path(year: int) -> Path:
    """Default file name for a year's assignment sheet."""
    return DATA_DIR / f"secret-santa-{year}.csv"


def export_assignments_csv(
    year: int,
    assignments: List[Assignment],
    filepath: Optional[str] = None,
) -> Path:
    """Export a year's assignments to CSV.

    Args:
        year: Year the assignments belong to
        assignments: Assignments to write, in order
        filepath: Path to write CSV file. Defaults to data/secret-santa-<year>.csv.

    Returns:
        Path the file was written to

    Raises:
        IOError: If file cannot be written
    """
    path = Path(filepath) if filepath else default_export_path(year)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=HISTORY_HEADERS)
        writer.writeheader()

        for assignment in assignments:
            writer.writerow({
                "Year": str(year),
                "Giver Name": assignment.giver_name,
                "Giver Email": assignment.giver_email,
                "Recipient Name": assignment.recipient_name,
                "Recipient Email": assignment.recipient_email,
            })

    logger.info(f"Exported {len(assignments)} assignments for {year} to {path}")
    return path


def _read_rows(path: Path) -> tuple[List[str], List[Dict[str, str]]]:
    """Read a CSV file with a header row, skipping blank lines."""
    try:
        with open(path, "r", newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            rows = [
                row for row in reader
                if any((value or "").strip() for value in row.values() if isinstance(value, str))
            ]
            return list(reader.fieldnames or []), rows
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise CSVImportError(f"Failed to parse CSV: {e}") from e


def _parse_year(value: Optional[str]) -> Optional[int]:
    try:
        return int((value or "").strip())
    except ValueError:
        return None


def validate_history_csv(filepath: str) -> bool:
    """Check that a file looks like an assignment sheet.

    Raises:
        CSVImportError: If the file is not a .csv file or lacks required headers
    """
    path = Path(filepath)
    if path.suffix.lower() != ".csv":
        raise CSVImportError("File must be a CSV file")

    headers, _ = _read_rows(path)
    if not all(header in headers for header in HISTORY_HEADERS):
        raise CSVImportError(f"CSV must have headers: {', '.join(HISTORY_HEADERS)}")

    return True


def import_history_csv(filepath: str) -> HistoryImport:
    """Import a previous year's assignment sheet.

    Every row must carry the same year. Emails are normalized and used as
    participant ids.

    Args:
        filepath: Path to the CSV file

    Returns:
        HistoryImport with the year's assignments and the people involved

    Raises:
        CSVImportError: If the file is empty, malformed, or spans several years
    """
    validate_history_csv(filepath)
    _, rows = _read_rows(Path(filepath))

    if not rows:
        raise CSVImportError("CSV file is empty")

    year = _parse_year(rows[0].get("Year"))
    if year is None:
        raise CSVImportError("Invalid year in CSV file")

    if any(_parse_year(row.get("Year")) != year for row in rows):
        raise CSVImportError("CSV file contains multiple years")

    participants: Dict[str, Participant] = {}
    assignments: List[Assignment] = []

    # Row numbers count the header as row 1
    for index, row in enumerate(rows, start=2):
        values = {header: (row.get(header) or "").strip() for header in HISTORY_HEADERS}

        if not all(values[h] for h in HISTORY_HEADERS[1:]):
            raise CSVImportError(f"Row {index} is missing required fields")

        giver_email = normalize_email(values["Giver Email"])
        recipient_email = normalize_email(values["Recipient Email"])

        for email, name in (
            (giver_email, values["Giver Name"]),
            (recipient_email, values["Recipient Name"]),
        ):
            if email not in participants:
                participants[email] = Participant(id=email, name=name, email=email)

        assignments.append(
            Assignment(
                giver_id=giver_email,
                giver_name=values["Giver Name"],
                giver_email=giver_email,
                recipient_id=recipient_email,
                recipient_name=values["Recipient Name"],
                recipient_email=recipient_email,
            )
        )

    logger.info(f"Imported {len(assignments)} assignments for {year} from {filepath}")

    return HistoryImport(
        year_data=YearData(year=year, assignments=assignments, saved_at=datetime.now()),
        participants=list(participants.values()),
    )


def import_wishlist_csv(filepath: str) -> WishlistImport:
    """Import wishlist form responses.

    The exclusions answer is a list of names separated by commas or
    semicolons. Each name is matched case-insensitively against the other
    respondents; names that match nobody are ignored.

    Args:
        filepath: Path to the CSV file

    Returns:
        WishlistImport with participants and their bidirectional exclusions

    Raises:
        CSVImportError: If the file is empty or a row lacks an email or name
    """
    _, rows = _read_rows(Path(filepath))

    if not rows:
        raise CSVImportError("CSV file is empty")

    participants: List[Participant] = []

    for index, row in enumerate(rows, start=2):
        email = (row.get(WISHLIST_EMAIL) or "").strip()
        name = (row.get(WISHLIST_NAME) or "").strip()

        if not email or not name:
            raise CSVImportError(f"Row {index} is missing required fields (Username or Name)")

        email = normalize_email(email)
        participants.append(
            Participant(
                id=email,
                name=name,
                email=email,
                wishlist=(row.get(WISHLIST_ITEMS) or "").strip(),
                address=(row.get(WISHLIST_ADDRESS) or "").strip(),
                exclusions=(row.get(WISHLIST_EXCLUSIONS) or "").strip(),
            )
        )

    by_name = {p.name.lower(): p for p in reversed(participants)}
    exclusion_pairs: List[ExclusionPair] = []
    seen = set()

    for participant in participants:
        if not participant.exclusions:
            continue

        for excluded_name in re.split(r"[;,]", participant.exclusions):
            excluded = by_name.get(excluded_name.strip().lower())
            if excluded is None:
                if excluded_name.strip():
                    logger.debug(f"Unknown exclusion {excluded_name.strip()!r} for {participant.name}")
                continue

            pair = ExclusionPair(
                id=f"{participant.id}-{excluded.id}",
                participant1_id=participant.id,
                participant2_id=excluded.id,
            )
            if pair.key in seen:
                continue
            seen.add(pair.key)
            exclusion_pairs.append(pair)

    logger.info(
        f"Imported {len(participants)} participants and {len(exclusion_pairs)} exclusions "
        f"from {filepath}"
    )
    return WishlistImport(participants=participants, exclusion_pairs=exclusion_pairs)
