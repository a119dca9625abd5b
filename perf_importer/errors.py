"""
Error taxonomy for the import pipeline.

Every pipeline error is fatal to the current import attempt and is raised
before anything is written to the report store.
"""

from __future__ import annotations


class ImportPipelineError(ValueError):
    reason = "import_failed"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmptySource(ImportPipelineError):
    reason = "empty_source"

    def __init__(self, message: str = "The source is empty: no rows or cells were found.") -> None:
        super().__init__(message)


class SchemaUnresolved(ImportPipelineError):
    reason = "schema_unresolved"

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "Could not locate the required column(s) "
            f"{', '.join(self.missing)}. Check the campaign name and amount spent columns of the export."
        )


class NoDataExtracted(ImportPipelineError):
    reason = "no_data_extracted"

    def __init__(self, skipped_rows: int = 0) -> None:
        self.skipped_rows = skipped_rows
        super().__init__(
            f"Columns were mapped but no campaign rows were extracted ({skipped_rows} row(s) skipped as noise)."
        )


class InvalidTarget(ImportPipelineError):
    reason = "invalid_target"


class StoreError(RuntimeError):
    """Raised by report store adapters when a fetch or upsert fails."""
