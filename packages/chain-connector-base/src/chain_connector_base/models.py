from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Chain and token models
class ChainFamily(str, Enum):
    """Account-model family a specific chain belongs to"""
    EVM = "evm"
    SVM = "svm"

class TokenDescriptor(BaseModel):
    """Canonical token on one specific chain, resolved from the registry or a balance"""
    model_config = ConfigDict(frozen=True)

    symbol: str
    chain_family: ChainFamily
    specific_chain: str
    contract_address: str

    def same_token(self, other: "TokenDescriptor") -> bool:
        """True when both sides point at the same contract on the same chain"""
        return (
            self.specific_chain == other.specific_chain
            and self.contract_address.lower() == other.contract_address.lower()
        )

class Balance(BaseModel):
    """One token balance on one chain, as reported by the portfolio provider"""
    model_config = ConfigDict(frozen=True)

    token_address: str
    specific_chain: str
    chain_family: ChainFamily
    symbol: str
    amount: float = Field(ge=0)
    last_updated: Optional[datetime] = None

    def to_descriptor(self) -> TokenDescriptor:
        return TokenDescriptor(
            symbol=self.symbol,
            chain_family=self.chain_family,
            specific_chain=self.specific_chain,
            contract_address=self.token_address,
        )

# Provider snapshots
class PriceSnapshot(BaseModel):
    """USD prices by symbol plus the errors for symbols that could not be priced"""
    success: bool = True
    prices: Dict[str, float] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)

    def price_for(self, symbol: str) -> float:
        return self.prices.get(symbol, 0.0)

    def is_priced(self, symbol: str) -> bool:
        return self.price_for(symbol) > 0

class PortfolioSnapshot(BaseModel):
    """Balances returned by one portfolio fetch"""
    success: bool = True
    balances: List[Balance] = Field(default_factory=list)
    error: Optional[str] = None

# Per-run configuration
class RebalanceConfig(BaseModel):
    """Options accepted by one rebalancing run"""
    target_allocation: Dict[str, float]
    consolidate_to_chain: Optional[str] = None
    rebalance_threshold: float = Field(default=0.001, ge=0.0, le=1.0)
    convergence_threshold: float = Field(default=0.005, ge=0.0, le=1.0)
    min_trade_value_usd: float = Field(default=0.01, ge=0.0)
    max_slippage_percent: float = Field(default=2.0, ge=0.1, le=10.0)
    force_rebalance: bool = False
    skip_consolidation: bool = False
    max_iterations: int = Field(default=10, ge=1, le=100)
    max_trades_per_iteration: int = Field(default=3, ge=1)
    max_trade_fraction: float = Field(default=0.25, ge=0.0, le=1.0)

    @field_validator("target_allocation")
    @classmethod
    def validate_target_allocation(cls, v: Dict[str, float]) -> Dict[str, float]:
        if not v:
            raise ValueError("Target allocation must contain at least one symbol")
        return v

    @classmethod
    def from_percentages(cls, percentages: Optional[Dict[str, Optional[float]]] = None,
                         **options) -> "RebalanceConfig":
        """Build a config from raw 0-100 percentages, keeping only positive entries.

        Falls back to DEFAULT_TARGET_ALLOCATION when nothing positive is given.
        Raw values are renormalized by the engine at run time.
        """
        raw = {
            symbol: float(percent)
            for symbol, percent in (percentages or {}).items()
            if percent is not None and percent > 0
        }
        if not raw:
            raw = dict(DEFAULT_TARGET_ALLOCATION)
        return cls(target_allocation=raw, **options)

DEFAULT_TARGET_ALLOCATION: Dict[str, float] = {
    "USDC": 0.0,
    "WETH": 0.0,
    "USDT": 1.0,
    "SOL": 0.0,
}

# Planning models
class PlannedTrade(BaseModel):
    """A buy or sell the planner wants executed"""
    action: Literal['buy', 'sell']
    symbol: str
    current_amount: float
    target_amount: float
    difference_amount: float = Field(ge=0)
    difference_value_usd: float = Field(ge=0)
    priority: float
    preferred_chain: str

class SubTrade(PlannedTrade):
    """One fragment of a planned trade after splitting"""
    sub_trade_index: int = 1
    total_sub_trades: int = 1

    @property
    def label(self) -> str:
        if self.total_sub_trades > 1:
            return f" [Sub-trade {self.sub_trade_index}/{self.total_sub_trades}]"
        return ""

class ConsolidationMove(BaseModel):
    """Relocation of one token's balance from a non-target chain"""
    from_chain: str
    to_chain: str
    token: str
    amount: float
    value_usd: float

# Execution models
class ExecutionStatus:
    """Normalized trade execution statuses"""
    EXECUTED = "executed"
    SIMULATED_BRIDGE_TRANSFER = "simulated_bridge_transfer"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_TRADE = "invalid_trade"
    BAD_REQUEST = "bad_request"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    EXECUTION_ERROR = "execution_error"
    ERROR = "error"

class TradeExecutionResult(BaseModel):
    """Immutable record of one execution attempt"""
    model_config = ConfigDict(frozen=True)

    success: bool
    status: str
    message: str
    tx_reference: Optional[str] = None
    from_symbol: Optional[str] = None
    to_symbol: Optional[str] = None
    amount: Optional[float] = None
    value_usd: float = 0.0

# Analysis models
class AllocationAnalysis(BaseModel):
    """Drift of the current portfolio from its target, with the plan to fix it"""
    total_value_usd: float
    current_allocation: Dict[str, float]
    target_allocation: Dict[str, float]
    allocation_drift: Dict[str, float]
    needs_rebalancing: bool
    rebalancing_plan: List[PlannedTrade] = Field(default_factory=list)
    unpriced_symbols: List[str] = Field(default_factory=list)

    @property
    def max_drift(self) -> float:
        return max(self.allocation_drift.values(), default=0.0)

class ChainAnalysis(BaseModel):
    """Value spread of the portfolio across chains"""
    available_tokens: Dict[str, List[str]]
    token_distribution: Dict[str, Dict[str, float]]
    chain_values: Dict[str, float]
    consolidation_chain: Optional[str] = None
    consolidation_plan: List[ConsolidationMove] = Field(default_factory=list)

    @property
    def total_value_usd(self) -> float:
        return sum(self.chain_values.values())

# Rebalancing loop models
class LoopState(str, Enum):
    """States of the rebalancing loop"""
    EVALUATING = "evaluating"
    PLANNING_TRADES = "planning_trades"
    EXECUTING = "executing"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    ITERATION_CAP_REACHED = "iteration_cap_reached"

class IterationRecord(BaseModel):
    """What one loop iteration observed and did"""
    iteration: int
    max_drift: Optional[float] = None
    state: LoopState
    trades_attempted: int = 0
    bootstrap: bool = False
    error: Optional[str] = None

class RebalanceSummary(BaseModel):
    """Headline numbers of one run"""
    timestamp: str
    portfolio_value_usd: float
    consolidation_chain: Optional[str] = None
    consolidation_executed: bool
    consolidation_trades: int
    consolidation_attempted: int
    rebalancing_required: bool
    rebalancing_trades: int
    rebalancing_attempted: int
    total_volume_usd: float
    allocation_before: Dict[str, float]
    allocation_target: Dict[str, float]
    allocation_final: Dict[str, float]
    max_drift_before: float
    max_drift_after: float
    iterations_completed: int
    stop_reason: Optional[LoopState] = None
    recommendations: List[str] = Field(default_factory=list)

class RebalanceDetails(BaseModel):
    analysis: AllocationAnalysis
    chain_analysis: Optional[ChainAnalysis] = None
    consolidation_results: List[TradeExecutionResult] = Field(default_factory=list)
    rebalancing_results: List[TradeExecutionResult] = Field(default_factory=list)
    final_allocation: Dict[str, float] = Field(default_factory=dict)
    final_drift: Dict[str, float] = Field(default_factory=dict)
    iterations: List[IterationRecord] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

class RebalanceReport(BaseModel):
    """Result of a rebalancing run"""
    success: bool = True
    summary: RebalanceSummary
    details: RebalanceDetails

class RebalancePreview(BaseModel):
    """Result of a rebalance calculation without execution"""
    analysis: AllocationAnalysis
    chain_analysis: ChainAnalysis
    prices: PriceSnapshot
    success: bool = True
    warnings: List[str] = Field(default_factory=list)
