"""Split large trades into bounded sub-trades"""

import math
from typing import List
from chain_connector_base import ConsolidationMove, PlannedTrade, SubTrade

# Absorbs float error so an exact multiple of the cap does not gain a part
_SPLIT_EPSILON = 1e-9


def split_trade(trade: PlannedTrade, total_portfolio_value_usd: float,
                max_trade_fraction: float = 0.25) -> List[SubTrade]:
    """Split a planned trade so no part exceeds max_trade_fraction of the portfolio.

    Parts are equal; amounts and values sum back to the original trade.
    """
    max_value = total_portfolio_value_usd * max_trade_fraction

    if (total_portfolio_value_usd <= 0 or max_trade_fraction <= 0
            or trade.difference_value_usd <= 0 or trade.difference_value_usd <= max_value):
        return [SubTrade(**trade.model_dump(include=set(PlannedTrade.model_fields)))]

    parts = max(1, math.ceil(trade.difference_value_usd / max_value - _SPLIT_EPSILON))
    base = trade.model_dump(include=set(PlannedTrade.model_fields))
    base.update(
        difference_amount=trade.difference_amount / parts,
        difference_value_usd=trade.difference_value_usd / parts,
        total_sub_trades=parts
    )
    return [SubTrade(**base, sub_trade_index=index + 1) for index in range(parts)]


def split_consolidation_move(move: ConsolidationMove, total_portfolio_value_usd: float,
                             position_fraction: float = 0.20,
                             portfolio_fraction: float = 0.25) -> List[float]:
    """Token amounts for each consolidation sub-trade; the last part takes the remainder"""
    cap = min(move.value_usd * position_fraction, total_portfolio_value_usd * portfolio_fraction)
    if move.value_usd <= 0 or cap <= 0 or move.value_usd <= cap:
        return [move.amount]

    parts = max(1, math.ceil(move.value_usd / cap - _SPLIT_EPSILON))
    part_amount = move.amount / parts
    amounts = [part_amount] * (parts - 1)
    amounts.append(move.amount - part_amount * (parts - 1))
    return amounts
