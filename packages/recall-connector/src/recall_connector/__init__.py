from .client import RecallClient
from .rebalancer import RecallRebalancer
from .models import CachedPrice, TokenInfo, RunState
from .logger import configure_root_logger, StructuredFormatter, RunContextFilter
from .context import set_current_run, get_current_run, clear_current_run

__version__ = "1.0.0"

__all__ = [
    "RecallClient",
    "RecallRebalancer",
    "CachedPrice",
    "TokenInfo",
    "RunState",
    "configure_root_logger",
    "StructuredFormatter",
    "RunContextFilter",
    "set_current_run",
    "get_current_run",
    "clear_current_run",
    "__version__",
]
