from .base_client import (
    ChainClient,
    MarketDataProvider,
    PortfolioProvider,
    TradeExecutor,
)
from .base_rebalancer import BaseRebalancer
from .models import (
    # Chain and token models
    ChainFamily,
    TokenDescriptor,
    Balance,
    # Provider snapshots
    PriceSnapshot,
    PortfolioSnapshot,
    # Configuration
    RebalanceConfig,
    DEFAULT_TARGET_ALLOCATION,
    # Planning models
    PlannedTrade,
    SubTrade,
    ConsolidationMove,
    # Execution models
    ExecutionStatus,
    TradeExecutionResult,
    # Analysis and report models
    AllocationAnalysis,
    ChainAnalysis,
    LoopState,
    IterationRecord,
    RebalanceSummary,
    RebalanceDetails,
    RebalanceReport,
    RebalancePreview,
)
from .exceptions import (
    RebalancerError,
    InvalidAllocationError,
    ProviderConnectionError,
    ProviderAPIError,
    TokenResolutionError,
    TradeExecutionError,
)
from . import registry

__version__ = "1.0.0"

__all__ = [
    "ChainClient",
    "MarketDataProvider",
    "PortfolioProvider",
    "TradeExecutor",
    "BaseRebalancer",
    "ChainFamily",
    "TokenDescriptor",
    "Balance",
    "PriceSnapshot",
    "PortfolioSnapshot",
    "RebalanceConfig",
    "DEFAULT_TARGET_ALLOCATION",
    "PlannedTrade",
    "SubTrade",
    "ConsolidationMove",
    "ExecutionStatus",
    "TradeExecutionResult",
    "AllocationAnalysis",
    "ChainAnalysis",
    "LoopState",
    "IterationRecord",
    "RebalanceSummary",
    "RebalanceDetails",
    "RebalanceReport",
    "RebalancePreview",
    "RebalancerError",
    "InvalidAllocationError",
    "ProviderConnectionError",
    "ProviderAPIError",
    "TokenResolutionError",
    "TradeExecutionError",
    "registry",
    "__version__",
]
