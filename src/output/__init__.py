"""Output module for importing and exporting assignment data."""

from src.output.export import (
    CSVImportError,
    HistoryImport,
    WishlistImport,
    export_assignments_csv,
    import_history_csv,
    import_wishlist_csv,
    validate_history_csv,
)

__all__ = [
    "CSVImportError",
    "HistoryImport",
    "WishlistImport",
    "export_assignments_csv",
    "import_history_csv",
    "import_wishlist_csv",
    "validate_history_csv",
]
