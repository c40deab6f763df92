"""
Core pipelines - type formatting, export, file parsing and import.
"""

from .type_formatter import BooleanState, DateOrder, ParseOutcome, TypeFormatter, boolean_state
from .execution import CancellationToken, ExportProgress, ImportProgress
from .results import ImportResult, ImportRowError, ValidationError, ValidationWarning
from .artifact_writers import CsvArtifactWriter, SpreadsheetArtifactWriter
from .exporter import ExportArtifact, Exporter, ExportFormat, ExportJob, ExportScope, export_table
from .file_parser import FileFormat, FileParser, ParsedImportData, ParseHints, parse_file
from .importer import ColumnMapping, ImportOptions, Importer, OnError, import_rows

__all__ = [
    "BooleanState",
    "DateOrder",
    "ParseOutcome",
    "TypeFormatter",
    "boolean_state",
    "CancellationToken",
    "ExportProgress",
    "ImportProgress",
    "ImportResult",
    "ImportRowError",
    "ValidationError",
    "ValidationWarning",
    "CsvArtifactWriter",
    "SpreadsheetArtifactWriter",
    "ExportArtifact",
    "Exporter",
    "ExportFormat",
    "ExportJob",
    "ExportScope",
    "export_table",
    "FileFormat",
    "FileParser",
    "ParsedImportData",
    "ParseHints",
    "parse_file",
    "ColumnMapping",
    "ImportOptions",
    "Importer",
    "OnError",
    "import_rows",
]
