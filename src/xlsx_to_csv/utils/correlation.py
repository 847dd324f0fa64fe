"""Run ID management for tying together the log lines of one conversion.

Every conversion run gets a short identifier that the logging helpers attach
to their structured output.
"""

import contextvars
import uuid
from typing import Optional


class CorrelationContext:
    """Context manager holding the run ID of the current conversion."""

    _context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
        'xlsx_to_csv_run_id', default=None
    )

    @classmethod
    def set_correlation_id(cls, correlation_id: str) -> None:
        cls._context.set(correlation_id)

    @classmethod
    def get_correlation_id(cls) -> Optional[str]:
        """Get the run ID of the current context, or None outside a run."""
        return cls._context.get()

    @classmethod
    def generate_correlation_id(cls) -> str:
        """Generate a new run ID.

        Returns:
            Twelve hex characters taken from a random UUID
        """
        return uuid.uuid4().hex[:12]

    def __init__(self, correlation_id: Optional[str] = None):
        """Initialize context manager with optional run ID.

        Args:
            correlation_id: Run ID to use. If None, generates a new one.
        """
        self.correlation_id = correlation_id or self.generate_correlation_id()
        self.token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self.token = self._context.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.token is not None:
            self._context.reset(self.token)
            self.token = None
