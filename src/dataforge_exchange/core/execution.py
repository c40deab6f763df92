"""
Execution context - cooperative cancellation and typed progress events.

Pipelines poll the CancellationToken between chunks/batches; there is no
preemption of an in-flight query or write.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import OperationCancelled


class CancellationToken:
    """
    Cooperative cancellation flag shared between a caller and a pipeline.

    Usage:
        token = CancellationToken()
        task = asyncio.create_task(export_table(..., cancellation=token))
        token.cancel()
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        """Request cancellation; takes effect at the next checkpoint."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self):
        if self._cancelled:
            raise OperationCancelled("Operation cancelled")


@dataclass(frozen=True)
class ExportProgress:
    """Reported after each exported chunk."""
    percent: int
    rows_processed: int
    total_rows: int
    chunk_index: int


@dataclass(frozen=True)
class ImportProgress:
    """Reported after each imported batch."""
    percent: int
    rows_imported: int
    rows_failed: int
    batch_index: int


ExportProgressCallback = Callable[[ExportProgress], None]
ImportProgressCallback = Callable[[ImportProgress], None]


def percent_of(done: int, total: int) -> int:
    """Rounded completion percentage; an empty job is 100% done."""
    if total <= 0:
        return 100
    return min(100, round(100 * done / total))


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


async def emit_progress(callback: Optional[Callable[[Any], Any]], event: Any):
    """Deliver a progress event; coroutine callbacks are awaited."""
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result
