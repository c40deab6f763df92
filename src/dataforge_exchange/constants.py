"""
Centralized constants for DataForge Exchange.

Eliminates magic numbers scattered across the codebase.
Import from here instead of hardcoding values.
"""

# ===========================================================================
# Export / Import sizing
# ===========================================================================
EXPORT_CHUNK_SIZE = 1000        # Rows fetched per export round-trip
IMPORT_BATCH_SIZE = 100         # Rows written per import batch
MAX_CHUNK_SIZE = 50_000         # Upper bound accepted from configuration

# ===========================================================================
# File parsing
# ===========================================================================
DELIMITER_CANDIDATES = (",", ";", "\t")
DELIMITER_SAMPLE_LINES = 5      # Lines sampled for delimiter detection
ENCODING_SAMPLE_BYTES = 100_000 # Bytes sampled for encoding detection
FALLBACK_ENCODINGS = ("cp1252", "latin-1")
CSV_EXTENSIONS = (".csv", ".txt", ".tsv")
SPREADSHEET_EXTENSIONS = (".xlsx", ".xlsm")

# ===========================================================================
# Export artifacts
# ===========================================================================
CSV_BOM = "\ufeff"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
SPREADSHEET_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SPREADSHEET_SHEET_NAME_MAX = 31 # Excel hard limit on sheet title length

# ===========================================================================
# SQL identifiers
# ===========================================================================

# Letters, digits, underscore; % and $ allowed for system tables
IDENTIFIER_PATTERN = r"^[A-Za-z_%][A-Za-z0-9_%$]*$"

# ===========================================================================
# Environment overrides
# ===========================================================================
ENV_PREFIX = "DATAFORGE_EXCHANGE_"
