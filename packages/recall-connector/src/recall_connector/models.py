from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from chain_connector_base import Balance, IterationRecord, LoopState, TradeExecutionResult

class CachedPrice(BaseModel):
    """Cached price data with timestamp for TTL validation"""
    price: float
    cached_at: datetime

class TokenInfo(BaseModel):
    """Token details and price returned by the token-info endpoint"""
    success: bool
    price: float = 0.0
    token: str
    chain: Optional[str] = None
    specific_chain: Optional[str] = None
    symbol: str = "UNKNOWN"
    error: Optional[str] = None

class RunState(BaseModel):
    """Mutable bookkeeping owned by one rebalancing run"""
    consolidation_results: List[TradeExecutionResult] = Field(default_factory=list)
    rebalancing_results: List[TradeExecutionResult] = Field(default_factory=list)
    iterations: List[IterationRecord] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    last_balances: List[Balance] = Field(default_factory=list)
    stop_reason: Optional[LoopState] = None
