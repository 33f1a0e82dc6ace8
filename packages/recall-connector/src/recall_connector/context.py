"""
Run context management using ContextVar for async-safe context propagation.
"""

from contextvars import ContextVar
from typing import Optional

# Identifier of the rebalancing run active in the current task
current_run_id: ContextVar[Optional[str]] = ContextVar('current_run_id', default=None)


def set_current_run(run_id: str) -> None:
    """Set the current run id in the context."""
    current_run_id.set(run_id)


def get_current_run() -> Optional[str]:
    """Get the current run id from the context."""
    return current_run_id.get()


def clear_current_run() -> None:
    """Clear the current run id from the context."""
    current_run_id.set(None)
