from abc import ABC, abstractmethod
from typing import List, Optional
from .models import PortfolioSnapshot, PriceSnapshot, TokenDescriptor, TradeExecutionResult

class MarketDataProvider(ABC):
    """Source of current USD prices"""

    @abstractmethod
    async def fetch_prices(
        self,
        symbols: List[str],
        chain_hint: Optional[str] = None,
        use_cache: bool = False
    ) -> PriceSnapshot:
        """Get USD prices for symbols; unpriceable symbols go to the error list"""
        pass

class PortfolioProvider(ABC):
    """Source of the controlled account's balances"""

    @abstractmethod
    async def fetch_portfolio(
        self,
        filter_by_chain: Optional[str] = None,
        include_zero_balances: bool = False
    ) -> PortfolioSnapshot:
        """Get current balances (token address, chain, amount)"""
        pass

class TradeExecutor(ABC):
    """Executes exchanges between two tokens"""

    @abstractmethod
    async def execute_exchange(
        self,
        from_token: TokenDescriptor,
        to_token: TokenDescriptor,
        amount: float,
        slippage_tolerance_percent: float,
        reason: str
    ) -> TradeExecutionResult:
        """Attempt one exchange of `amount` whole units of from_token"""
        pass

class ChainClient(MarketDataProvider, PortfolioProvider, TradeExecutor):
    """Client for a venue that provides prices, balances and execution"""

    async def connect(self) -> bool:
        """Establish connection to the venue"""
        return True

    async def disconnect(self):
        """Close connection to the venue"""
        pass
