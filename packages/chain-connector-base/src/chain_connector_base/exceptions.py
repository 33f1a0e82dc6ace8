from typing import Optional

class RebalancerError(Exception):
    """Base class for rebalancing errors"""
    pass

class InvalidAllocationError(RebalancerError, ValueError):
    """Raised when the run configuration cannot be used (bad allocation or chain)"""
    pass

class ProviderConnectionError(RebalancerError):
    """Raised when a provider cannot be reached"""
    pass

class ProviderAPIError(RebalancerError):
    """Raised when a provider returns an error or unusable data"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class TokenResolutionError(RebalancerError, KeyError):
    """Raised when a symbol/chain pair is not in the registry"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""

class TradeExecutionError(RebalancerError):
    """Raised when a trade execution fails"""
    pass
