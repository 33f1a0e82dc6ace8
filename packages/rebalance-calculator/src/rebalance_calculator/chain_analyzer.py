"""Cross-chain value distribution and consolidation planning"""

from typing import Dict, List, Optional
import logging
from chain_connector_base import Balance, ChainAnalysis, ConsolidationMove, PriceSnapshot
from chain_connector_base.registry import SUPPORTED_CHAINS, chain_preferences, normalize_symbol
from engine_config import get_config


class ChainDistributionAnalyzer:
    """Measure where portfolio value sits and plan moves onto one chain"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.config = get_config()

    def analyze(self, balances: List[Balance], prices: PriceSnapshot,
                target_allocation: Dict[str, float], consolidate_to_chain: Optional[str] = None,
                skip_consolidation: bool = False, min_trade_value_usd: float = 0.01) -> ChainAnalysis:
        """
        Build the chain distribution of the portfolio.
        A consolidation chain is chosen (or taken from the caller) unless consolidation is skipped
        """
        available_tokens: Dict[str, List[str]] = {chain: [] for chain in SUPPORTED_CHAINS}
        token_distribution: Dict[str, Dict[str, float]] = {}
        chain_values: Dict[str, float] = {chain: 0.0 for chain in SUPPORTED_CHAINS}

        for balance in balances:
            chain = balance.specific_chain
            symbol = normalize_symbol(balance.symbol)

            tokens = available_tokens.setdefault(chain, [])
            if symbol not in tokens:
                tokens.append(symbol)

            per_chain = token_distribution.setdefault(symbol, {})
            per_chain[chain] = per_chain.get(chain, 0.0) + balance.amount

            chain_values[chain] = chain_values.get(chain, 0.0) + balance.amount * prices.price_for(symbol)

        consolidation_chain = None
        if skip_consolidation:
            self.logger.info("Consolidation skipped by configuration")
        elif consolidate_to_chain:
            consolidation_chain = consolidate_to_chain
        else:
            consolidation_chain = self.select_consolidation_chain(chain_values, target_allocation)

        consolidation_plan: List[ConsolidationMove] = []
        if consolidation_chain:
            consolidation_plan = self.build_consolidation_plan(
                token_distribution=token_distribution,
                prices=prices,
                to_chain=consolidation_chain,
                min_trade_value_usd=min_trade_value_usd
            )

        return ChainAnalysis(
            available_tokens=available_tokens,
            token_distribution=token_distribution,
            chain_values=chain_values,
            consolidation_chain=consolidation_chain,
            consolidation_plan=consolidation_plan
        )

    def select_consolidation_chain(self, chain_values: Dict[str, float],
                                   target_allocation: Dict[str, float]) -> Optional[str]:
        """Pick the chain with the best value plus preference score, or None when value sits on one chain"""
        candidates = sorted(
            ((chain, value) for chain, value in chain_values.items() if value > 0),
            key=lambda item: item[1],
            reverse=True
        )
        if len(candidates) <= 1:
            self.logger.info("Portfolio value is on a single chain, no consolidation needed")
            return None

        bonus = self.config.consolidation.chain_preference_bonus
        best_chain, best_score = None, float("-inf")

        for chain, value in candidates:
            score = value
            for symbol, weight in target_allocation.items():
                if weight <= 0:
                    continue
                preferences = list(chain_preferences(symbol))
                if chain in preferences:
                    score += bonus / (preferences.index(chain) + 1)

            self.logger.debug(f"Chain {chain}: value ${value:,.2f}, score {score:,.2f}")
            if score > best_score:
                best_chain, best_score = chain, score

        self.logger.info(f"Selected consolidation chain: {best_chain}")
        return best_chain

    def build_consolidation_plan(self, token_distribution: Dict[str, Dict[str, float]], prices: PriceSnapshot,
                                 to_chain: str, min_trade_value_usd: float) -> List[ConsolidationMove]:
        """One move per (token, chain) off the target chain worth at least the trade minimum"""
        moves = []
        for symbol, per_chain in token_distribution.items():
            price = prices.price_for(symbol)
            for chain, amount in per_chain.items():
                if chain == to_chain or amount <= 0:
                    continue
                value = amount * price
                if value < min_trade_value_usd or value <= 0:
                    continue
                moves.append(ConsolidationMove(
                    from_chain=chain,
                    to_chain=to_chain,
                    token=symbol,
                    amount=amount,
                    value_usd=value
                ))

        moves.sort(key=lambda move: move.value_usd, reverse=True)
        return moves
