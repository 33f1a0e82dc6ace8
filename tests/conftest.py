"""
Shared fixtures for the rebalancer test suite.

Provides a zero-delay application config and an in-memory exchange that
implements the price, portfolio and execution providers. The exchange
fills every trade exactly at snapshot prices.
"""

from typing import Dict, List, Optional, Set, Tuple

import pytest
import yaml

from chain_connector_base import (
    Balance,
    ChainClient,
    ExecutionStatus,
    PortfolioSnapshot,
    PriceSnapshot,
    TokenDescriptor,
    TradeExecutionResult,
)
from chain_connector_base.registry import CHAIN_FAMILIES, TOKEN_ADDRESSES, lookup_symbol, normalize_symbol
from engine_config import load_config

DEFAULT_PRICES = {"USDC": 1.0, "USDT": 1.0, "WETH": 2000.0, "SOL": 100.0}


@pytest.fixture(autouse=True)
def app_config(tmp_path):
    """Load an application config with all pacing delays set to zero."""
    config_data = {
        "recall": {
            "base_url": "http://recall.test",
            "max_retries": 2,
            "retry_backoff_base_seconds": 0.0,
            "retry_max_delay_seconds": 0.0,
        },
        "trading": {
            "sub_trade_delay_seconds": 0,
            "iteration_delay_seconds": 0,
            "bootstrap_delay_seconds": 0,
            "consolidation_trade_delay_seconds": 0,
            "consolidation_move_delay_seconds": 0,
        },
    }
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config_data))
    return load_config(config_path)


def token_address(symbol: str, chain: str) -> str:
    return TOKEN_ADDRESSES.get(chain, {}).get(symbol, f"{symbol.lower()}-{chain}")


def make_balance(symbol: str, amount: float, chain: str = "eth") -> Balance:
    return Balance(
        token_address=token_address(normalize_symbol(symbol), chain),
        specific_chain=chain,
        chain_family=CHAIN_FAMILIES[chain],
        symbol=symbol,
        amount=amount,
    )


def make_prices(prices: Optional[Dict[str, float]] = None) -> PriceSnapshot:
    return PriceSnapshot(success=True, prices=dict(DEFAULT_PRICES if prices is None else prices))


class FakeChainClient(ChainClient):
    """In-memory exchange keyed by (chain, symbol)"""

    def __init__(self, holdings: Dict[Tuple[str, str], float], prices: Optional[Dict[str, float]] = None,
                 fail_portfolio_calls: Optional[Set[int]] = None):
        self.holdings = dict(holdings)
        self.prices = dict(DEFAULT_PRICES if prices is None else prices)
        self.fail_portfolio_calls = fail_portfolio_calls or set()
        self.portfolio_calls = 0
        self.price_calls = 0
        self.trades: List[dict] = []

    async def fetch_prices(self, symbols: List[str], chain_hint: Optional[str] = None,
                           use_cache: bool = False) -> PriceSnapshot:
        self.price_calls += 1
        prices = {s: self.prices[s] for s in symbols if s in self.prices}
        errors = [f"Failed to fetch price for {s}" for s in symbols if s not in self.prices]
        return PriceSnapshot(success=not errors, prices=prices, errors=errors)

    async def fetch_portfolio(self, filter_by_chain: Optional[str] = None,
                              include_zero_balances: bool = False) -> PortfolioSnapshot:
        self.portfolio_calls += 1
        if self.portfolio_calls in self.fail_portfolio_calls:
            return PortfolioSnapshot(success=False, error="portfolio service unavailable")

        balances = [
            make_balance(symbol, amount, chain)
            for (chain, symbol), amount in self.holdings.items()
            if amount > 0 and (filter_by_chain is None or chain == filter_by_chain)
        ]
        return PortfolioSnapshot(success=True, balances=balances)

    def _symbol(self, token: TokenDescriptor) -> str:
        return lookup_symbol(token.contract_address, token.specific_chain) or normalize_symbol(token.symbol)

    async def execute_exchange(self, from_token: TokenDescriptor, to_token: TokenDescriptor, amount: float,
                               slippage_tolerance_percent: float, reason: str) -> TradeExecutionResult:
        assert not from_token.same_token(to_token), "executor called with identical tokens"

        from_symbol = self._symbol(from_token)
        to_symbol = self._symbol(to_token)
        from_key = (from_token.specific_chain, from_symbol)
        to_key = (to_token.specific_chain, to_symbol)
        self.trades.append({
            "from": from_key,
            "to": to_key,
            "amount": amount,
            "reason": reason,
            "slippage": slippage_tolerance_percent,
        })

        available = self.holdings.get(from_key, 0.0)
        if amount > available + 1e-9:
            return TradeExecutionResult(
                success=False,
                status=ExecutionStatus.INSUFFICIENT_BALANCE,
                message=f"Available: {available}, Requested: {amount}",
            )

        remaining = available - amount
        if remaining <= 1e-12:
            self.holdings.pop(from_key, None)
        else:
            self.holdings[from_key] = remaining

        received = amount * self.prices[from_symbol] / self.prices[to_symbol]
        self.holdings[to_key] = self.holdings.get(to_key, 0.0) + received

        return TradeExecutionResult(
            success=True,
            status=ExecutionStatus.EXECUTED,
            message=f"Filled {amount} {from_symbol} -> {received} {to_symbol}",
            tx_reference=f"tx_{len(self.trades)}",
        )

    def total_value(self) -> float:
        return sum(amount * self.prices.get(symbol, 0.0) for (_, symbol), amount in self.holdings.items())


@pytest.fixture
def fake_client_factory():
    def factory(holdings, prices=None, fail_portfolio_calls=None):
        return FakeChainClient(holdings, prices=prices, fail_portfolio_calls=fail_portfolio_calls)
    return factory
