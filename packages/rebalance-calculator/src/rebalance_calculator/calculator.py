"""Allocation drift analysis and trade planning"""

from typing import Dict, List, Optional, Tuple
import logging
from chain_connector_base import (
    AllocationAnalysis,
    Balance,
    InvalidAllocationError,
    PlannedTrade,
    PriceSnapshot,
)
from chain_connector_base.registry import normalize_symbol, preferred_chain
from engine_config import get_config
from .models import PortfolioValuation


def normalize_allocation(raw_allocation: Dict[str, float]) -> Dict[str, float]:
    """Scale raw weights so they sum to 1.0. Zero weights are kept (full divest)."""
    for symbol, weight in raw_allocation.items():
        if weight is None or weight < 0:
            raise InvalidAllocationError(f"Allocation for {symbol} must be non-negative, got {weight}")

    total = sum(raw_allocation.values())
    if total <= 0:
        raise InvalidAllocationError("Allocation percentages must sum to a positive number")

    return {symbol: weight / total for symbol, weight in raw_allocation.items()}


class TradeCalculator:
    """Compute allocation drift and the trades needed to remove it"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.config = get_config()

    def analyze_allocation(self, balances: List[Balance], prices: PriceSnapshot,
                           target_allocation: Dict[str, float], min_trade_value_usd: float,
                           rebalance_threshold: float, force_rebalance: bool = False,
                           consolidate_to_chain: Optional[str] = None) -> AllocationAnalysis:
        """
        Compare current holdings against the target allocation.
        Returns AllocationAnalysis with a prioritized plan when rebalancing is warranted
        """
        valuation = self.value_portfolio(balances, prices)
        current_allocation, allocation_drift = self.calculate_drift(valuation, target_allocation)
        max_drift = max(allocation_drift.values(), default=0.0)

        needs_rebalancing = force_rebalance or max_drift > rebalance_threshold

        self.logger.info(f"Total portfolio value: ${valuation.total_value_usd:,.2f}")
        self.logger.info(f"Max drift: {max_drift * 100:.2f}% (threshold {rebalance_threshold * 100:.2f}%)")

        plan: List[PlannedTrade] = []
        if needs_rebalancing:
            plan = self.plan_trades(
                valuation=valuation,
                target_allocation=target_allocation,
                allocation_drift=allocation_drift,
                min_trade_value_usd=min_trade_value_usd,
                consolidate_to_chain=consolidate_to_chain
            )
        else:
            self.logger.info("Portfolio is well balanced, no rebalancing needed")

        return AllocationAnalysis(
            total_value_usd=valuation.total_value_usd,
            current_allocation=current_allocation,
            target_allocation=dict(target_allocation),
            allocation_drift=allocation_drift,
            needs_rebalancing=needs_rebalancing,
            rebalancing_plan=plan,
            unpriced_symbols=valuation.unpriced_symbols
        )

    def value_portfolio(self, balances: List[Balance], prices: PriceSnapshot) -> PortfolioValuation:
        """Fold balances by canonical symbol and value every held symbol at snapshot prices"""
        symbol_amounts: Dict[str, float] = {}
        for balance in balances:
            symbol = normalize_symbol(balance.symbol)
            symbol_amounts[symbol] = symbol_amounts.get(symbol, 0.0) + balance.amount

        # Every priced symbol, held or not, so unheld targets can be bought
        symbol_prices: Dict[str, float] = {
            normalize_symbol(symbol): prices.price_for(symbol)
            for symbol in prices.prices
            if prices.is_priced(symbol)
        }
        symbol_values: Dict[str, float] = {}
        unpriced = []
        for symbol, amount in symbol_amounts.items():
            price = symbol_prices.get(symbol, 0.0)
            if price <= 0 and amount > 0:
                unpriced.append(symbol)
            symbol_prices[symbol] = price
            symbol_values[symbol] = amount * price

        if unpriced:
            self.logger.warning(f"No usable price for held symbols {unpriced}; "
                                f"they are valued at $0 and excluded from trading")

        return PortfolioValuation(
            symbol_amounts=symbol_amounts,
            symbol_prices=symbol_prices,
            symbol_values=symbol_values,
            total_value_usd=sum(symbol_values.values()),
            unpriced_symbols=unpriced
        )

    def calculate_drift(self, valuation: PortfolioValuation,
                        target_allocation: Dict[str, float]) -> Tuple[Dict[str, float], Dict[str, float]]:
        """Current fraction and absolute drift for every target symbol"""
        total_value = valuation.total_value_usd
        current_allocation = {}
        allocation_drift = {}

        for symbol, target_percent in target_allocation.items():
            value = valuation.symbol_values.get(symbol, 0.0)
            current_percent = value / total_value if total_value > 0 else 0.0
            current_allocation[symbol] = current_percent
            allocation_drift[symbol] = abs(current_percent - target_percent)

        return current_allocation, allocation_drift

    def plan_trades(self, valuation: PortfolioValuation, target_allocation: Dict[str, float],
                    allocation_drift: Dict[str, float], min_trade_value_usd: float,
                    consolidate_to_chain: Optional[str] = None) -> List[PlannedTrade]:
        """Build the buy/sell plan, highest priority first"""
        trades = self._calculate_rebalance_trades(
            valuation=valuation,
            target_allocation=target_allocation,
            allocation_drift=allocation_drift,
            min_trade_value_usd=min_trade_value_usd,
            consolidate_to_chain=consolidate_to_chain
        )

        planned_symbols = {trade.symbol for trade in trades}
        liquidation_trades = self._calculate_liquidation_trades(
            valuation=valuation,
            target_allocation=target_allocation,
            planned_symbols=planned_symbols,
            min_trade_value_usd=min_trade_value_usd,
            consolidate_to_chain=consolidate_to_chain
        )
        trades.extend(liquidation_trades)

        return self._sort_trades_by_priority(trades)

    def _calculate_rebalance_trades(self, valuation: PortfolioValuation, target_allocation: Dict[str, float],
                                    allocation_drift: Dict[str, float], min_trade_value_usd: float,
                                    consolidate_to_chain: Optional[str]) -> List[PlannedTrade]:
        """Calculate trades that move each target symbol to its target value"""
        trades = []
        total_value = valuation.total_value_usd

        for symbol, target_percent in target_allocation.items():
            current_amount = valuation.symbol_amounts.get(symbol, 0.0)
            price = valuation.symbol_prices.get(symbol, 0.0)

            if price <= 0:
                self.logger.debug(f"Skipping {symbol}: no price available")
                continue

            target_value = total_value * target_percent
            target_amount = target_value / price
            difference_amount = target_amount - current_amount
            difference_value = abs(difference_amount * price)

            if difference_amount == 0 or difference_value < min_trade_value_usd:
                self.logger.debug(
                    f"Skipping {symbol}: ${difference_value:.4f} difference < "
                    f"${min_trade_value_usd} minimum trade value"
                )
                continue

            if target_percent <= 0:
                # Zero-weight targets are liquidations
                priority = self.config.trading.liquidation_priority
            else:
                priority = allocation_drift.get(symbol, 0.0) * 100

            trades.append(PlannedTrade(
                action='buy' if difference_amount > 0 else 'sell',
                symbol=symbol,
                current_amount=current_amount,
                target_amount=target_amount,
                difference_amount=abs(difference_amount),
                difference_value_usd=difference_value,
                priority=priority,
                preferred_chain=preferred_chain(symbol, consolidate_to_chain)
            ))

        return trades

    def _calculate_liquidation_trades(self, valuation: PortfolioValuation, target_allocation: Dict[str, float],
                                      planned_symbols: set, min_trade_value_usd: float,
                                      consolidate_to_chain: Optional[str]) -> List[PlannedTrade]:
        """Calculate full sells of held symbols that have no target weight"""
        trades = []

        for symbol, amount in valuation.symbol_amounts.items():
            if symbol in planned_symbols or target_allocation.get(symbol, 0.0) > 0:
                continue

            value = valuation.symbol_values.get(symbol, 0.0)
            if amount <= 0 or value < min_trade_value_usd or value <= 0:
                continue

            self.logger.info(f"Liquidating non-target {symbol}: {amount:.6f} tokens (${value:,.2f})")
            trades.append(PlannedTrade(
                action='sell',
                symbol=symbol,
                current_amount=amount,
                target_amount=0.0,
                difference_amount=amount,
                difference_value_usd=value,
                priority=self.config.trading.liquidation_priority,
                preferred_chain=preferred_chain(symbol, consolidate_to_chain)
            ))

        return trades

    def _sort_trades_by_priority(self, trades: List[PlannedTrade]) -> List[PlannedTrade]:
        """Sort trades by priority, most urgent first (stable for equal priorities)"""
        return sorted(trades, key=lambda trade: trade.priority, reverse=True)
