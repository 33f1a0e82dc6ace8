from abc import ABC, abstractmethod
from typing import Optional
import logging
from .base_client import ChainClient
from .models import RebalanceConfig, RebalancePreview, RebalanceReport

class BaseRebalancer(ABC):
    """Base rebalancer class with common functionality"""

    def __init__(self, client: ChainClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def run(self, config: RebalanceConfig) -> RebalanceReport:
        """Execute live rebalancing toward the configured target"""
        pass

    @abstractmethod
    async def calculate_rebalance(self, config: RebalanceConfig) -> RebalancePreview:
        """Calculate rebalance without executing (preview mode)"""
        pass
