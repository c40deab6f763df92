"""
Exchange settings - tunables for the export and import pipelines.

Defaults come from constants.py; environment variables prefixed with
DATAFORGE_EXCHANGE_ override them:

    DATAFORGE_EXCHANGE_CHUNK_SIZE=5000
    DATAFORGE_EXCHANGE_BATCH_SIZE=250
    DATAFORGE_EXCHANGE_DATE_ORDER=eu
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import ENV_PREFIX, EXPORT_CHUNK_SIZE, IMPORT_BATCH_SIZE, MAX_CHUNK_SIZE
from .core.exporter import ExportJob
from .core.importer import ImportOptions
from .core.type_formatter import DateOrder, TypeFormatter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeSettings:
    """
    Per-application settings for export/import.

    Attributes:
        chunk_size: Rows fetched per export round-trip
        batch_size: Rows written per import batch
        date_order: How ambiguous NN/NN/YYYY dates are read
    """
    chunk_size: int = EXPORT_CHUNK_SIZE
    batch_size: int = IMPORT_BATCH_SIZE
    date_order: DateOrder = DateOrder.US

    def __post_init__(self):
        _check_size("chunk_size", self.chunk_size)
        _check_size("batch_size", self.batch_size)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExchangeSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            ExchangeSettings with overrides applied

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        chunk_raw = env.get(f"{ENV_PREFIX}CHUNK_SIZE")
        if chunk_raw:
            kwargs["chunk_size"] = _parse_int("CHUNK_SIZE", chunk_raw)

        batch_raw = env.get(f"{ENV_PREFIX}BATCH_SIZE")
        if batch_raw:
            kwargs["batch_size"] = _parse_int("BATCH_SIZE", batch_raw)

        order_raw = env.get(f"{ENV_PREFIX}DATE_ORDER")
        if order_raw:
            try:
                kwargs["date_order"] = DateOrder(order_raw.strip().lower())
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}DATE_ORDER must be one of "
                    f"{', '.join(o.value for o in DateOrder)}, got '{order_raw}'"
                ) from None

        settings = cls(**kwargs)
        if kwargs:
            logger.debug(f"Exchange settings overridden from environment: {sorted(kwargs)}")
        return settings

    def make_formatter(self) -> TypeFormatter:
        return TypeFormatter(date_order=self.date_order)

    def export_job(self, **kwargs) -> ExportJob:
        """ExportJob using the configured chunk size unless overridden."""
        kwargs.setdefault("chunk_size", self.chunk_size)
        return ExportJob(**kwargs)

    def import_options(self, **kwargs) -> ImportOptions:
        """ImportOptions using the configured batch size unless overridden."""
        kwargs.setdefault("batch_size", self.batch_size)
        return ImportOptions(**kwargs)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'") from None


def _check_size(name: str, value: int):
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    if value > MAX_CHUNK_SIZE:
        raise ValueError(f"{name} must not exceed {MAX_CHUNK_SIZE}, got {value}")
