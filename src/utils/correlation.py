"""
Run IDs for reconciliation runs.

Every log record emitted while a run is in progress carries the run ID
that also ends up in the report, so logs and reports can be joined.
"""

import contextvars
import uuid
from typing import Optional

_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'run_id',
    default=None
)


def get_run_id() -> Optional[str]:
    """Run ID of the run in progress, or None outside a run."""
    return _run_id.get()


class RunContext:
    """
    Scopes a run ID to one reconciliation run.

    Usage:
        with RunContext() as run_id:
            report = checker._run(run_id)

    Whatever ID was active before (normally none) is back in place on exit,
    including when the run raised.
    """

    def __init__(self, run_id: Optional[str] = None):
        """
        Args:
            run_id: ID to use; a fresh UUID4 when not provided

        Raises:
            ValueError: If run_id is given but empty
        """
        if run_id is not None and not run_id:
            raise ValueError("Run ID must be a non-empty string")
        self.run_id = run_id or str(uuid.uuid4())
        self._token = None

    def __enter__(self) -> str:
        self._token = _run_id.set(self.run_id)
        return self.run_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        _run_id.reset(self._token)
        self._token = None


def run_id_filter(record):
    """
    Logging filter adding the run ID to log records.

    Records emitted outside a run get "N/A".
    """
    record.run_id = get_run_id() or "N/A"
    return True
