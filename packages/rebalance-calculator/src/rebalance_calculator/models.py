from typing import Dict, List
from pydantic import BaseModel, Field

class PortfolioValuation(BaseModel):
    """Balances folded by canonical symbol and valued at snapshot prices"""
    symbol_amounts: Dict[str, float] = Field(default_factory=dict)
    symbol_prices: Dict[str, float] = Field(default_factory=dict)
    symbol_values: Dict[str, float] = Field(default_factory=dict)
    total_value_usd: float = 0.0
    unpriced_symbols: List[str] = Field(default_factory=list)
