"""CSV import and export tests."""

import csv

import pytest

from src.output import (
    CSVImportError,
    export_assignments_csv,
    import_history_csv,
    import_wishlist_csv,
    validate_history_csv,
)
from src.participants.models import Assignment

HISTORY_HEADER = "Year,Giver Name,Giver Email,Recipient Name,Recipient Email\n"
WISHLIST_HEADER = (
    "Timestamp,Username,What is your name?,Any exclusions?,"
    "What would you like for Christmas this year?,"
    "Where would you like your Christmas gift sent to?\n"
)


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestExportAssignmentsCsv:

    def test_writes_header_and_rows(self, tmp_path, alice, bob):
        assignments = [Assignment.between(alice, bob), Assignment.between(bob, alice)]

        path = export_assignments_csv(2024, assignments, str(tmp_path / "out" / "draw.csv"))

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 2
        assert rows[0] == {
            "Year": "2024",
            "Giver Name": "Alice",
            "Giver Email": "alice@example.com",
            "Recipient Name": "Bob",
            "Recipient Email": "bob@example.com",
        }

    def test_exported_file_imports_back(self, tmp_path, alice, bob, carol):
        assignments = [
            Assignment.between(alice, bob),
            Assignment.between(bob, carol),
            Assignment.between(carol, alice),
        ]
        path = export_assignments_csv(2023, assignments, str(tmp_path / "secret-santa-2023.csv"))

        imported = import_history_csv(str(path))

        assert imported.year_data.year == 2023
        assert imported.year_data.has_edge(bob.id, carol.id)
        assert {p.id for p in imported.participants} == {alice.id, bob.id, carol.id}


class TestImportHistoryCsv:

    def test_normalizes_emails(self, tmp_path):
        path = write(
            tmp_path,
            "h.csv",
            HISTORY_HEADER
            + "2023, Alice ,ALICE@Example.com,Bob,bob@example.com\n"
            + "2023,Bob,bob@example.com,Alice,alice@example.com\n",
        )

        result = import_history_csv(path)

        first = result.year_data.assignments[0]
        assert first.giver_id == "alice@example.com"
        assert first.giver_name == "Alice"
        assert [p.id for p in result.participants] == ["alice@example.com", "bob@example.com"]

    def test_blank_lines_are_skipped(self, tmp_path):
        path = write(
            tmp_path,
            "h.csv",
            HISTORY_HEADER + "2023,A,a@x.com,B,b@x.com\n\n2023,B,b@x.com,A,a@x.com\n",
        )

        assert len(import_history_csv(path).year_data.assignments) == 2

    def test_empty_file(self, tmp_path):
        path = write(tmp_path, "h.csv", HISTORY_HEADER)

        with pytest.raises(CSVImportError, match="empty"):
            import_history_csv(path)

    def test_invalid_year(self, tmp_path):
        path = write(tmp_path, "h.csv", HISTORY_HEADER + "last,A,a@x.com,B,b@x.com\n")

        with pytest.raises(CSVImportError, match="Invalid year"):
            import_history_csv(path)

    def test_multiple_years(self, tmp_path):
        path = write(
            tmp_path,
            "h.csv",
            HISTORY_HEADER + "2022,A,a@x.com,B,b@x.com\n2023,B,b@x.com,A,a@x.com\n",
        )

        with pytest.raises(CSVImportError, match="multiple years"):
            import_history_csv(path)

    def test_missing_field_reports_row_number(self, tmp_path):
        path = write(
            tmp_path,
            "h.csv",
            HISTORY_HEADER + "2023,A,a@x.com,B,b@x.com\n2023,B,,A,a@x.com\n",
        )

        with pytest.raises(CSVImportError, match="Row 3"):
            import_history_csv(path)


class TestValidateHistoryCsv:

    def test_wrong_extension(self, tmp_path):
        path = write(tmp_path, "h.txt", HISTORY_HEADER)

        with pytest.raises(CSVImportError, match="must be a CSV"):
            validate_history_csv(path)

    def test_missing_headers(self, tmp_path):
        path = write(tmp_path, "h.csv", "Year,Giver Name\n2023,A\n")

        with pytest.raises(CSVImportError, match="must have headers"):
            validate_history_csv(path)

    def test_valid_file(self, tmp_path):
        path = write(tmp_path, "h.csv", HISTORY_HEADER)

        assert validate_history_csv(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CSVImportError, match="Failed to parse"):
            validate_history_csv(str(tmp_path / "missing.csv"))


class TestImportWishlistCsv:

    def test_participants_and_exclusions(self, tmp_path):
        path = write(
            tmp_path,
            "w.csv",
            WISHLIST_HEADER
            + '1/1,Alice@Example.com,Alice,"bob; Unknown",Books,1 Main St\n'
            + "1/2,bob@example.com,Bob,Alice,Socks,\n"
            + "1/3,carol@example.com,Carol,,Tea,2 Oak Ave\n",
        )

        result = import_wishlist_csv(path)

        alice, bob, carol = result.participants
        assert alice.id == "alice@example.com"
        assert alice.wishlist == "Books"
        assert alice.address == "1 Main St"
        assert bob.address == ""
        assert carol.exclusions == ""

        # Alice->Bob and Bob->Alice are the same unordered pair
        assert len(result.exclusion_pairs) == 1
        pair = result.exclusion_pairs[0]
        assert (pair.participant1_id, pair.participant2_id) == (alice.id, bob.id)
        assert not pair.is_unidirectional

    def test_comma_separated_exclusions(self, tmp_path):
        path = write(
            tmp_path,
            "w.csv",
            WISHLIST_HEADER
            + '1/1,a@x.com,Ann,"Ben, Cat",,\n'
            + "1/2,b@x.com,Ben,,,\n"
            + "1/3,c@x.com,Cat,,,\n",
        )

        result = import_wishlist_csv(path)

        assert {p.participant2_id for p in result.exclusion_pairs} == {"b@x.com", "c@x.com"}

    def test_missing_name(self, tmp_path):
        path = write(tmp_path, "w.csv", WISHLIST_HEADER + "1/1,a@x.com,,,,\n")

        with pytest.raises(CSVImportError, match="Row 2"):
            import_wishlist_csv(path)

    def test_empty_file(self, tmp_path):
        path = write(tmp_path, "w.csv", WISHLIST_HEADER)

        with pytest.raises(CSVImportError, match="empty"):
            import_wishlist_csv(path)
