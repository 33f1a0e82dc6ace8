from .calculator import TradeCalculator, normalize_allocation
from .chain_analyzer import ChainDistributionAnalyzer
from .splitter import split_trade, split_consolidation_move
from .report import ReportGenerator
from .models import PortfolioValuation
from chain_connector_base import PlannedTrade, SubTrade, ConsolidationMove, AllocationAnalysis, ChainAnalysis

__version__ = "1.0.0"

__all__ = [
    "TradeCalculator",
    "normalize_allocation",
    "ChainDistributionAnalyzer",
    "split_trade",
    "split_consolidation_move",
    "ReportGenerator",
    "PortfolioValuation",
    "PlannedTrade",
    "SubTrade",
    "ConsolidationMove",
    "AllocationAnalysis",
    "ChainAnalysis",
    "__version__",
]
