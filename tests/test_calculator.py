"""
Tests for allocation analysis and trade planning.
"""

import pytest

from chain_connector_base import InvalidAllocationError
from rebalance_calculator import TradeCalculator, normalize_allocation
from conftest import make_balance, make_prices


@pytest.fixture
def calculator():
    return TradeCalculator()


def analyze(calculator, balances, target, prices=None, **options):
    params = {"min_trade_value_usd": 0.01, "rebalance_threshold": 0.001}
    params.update(options)
    return calculator.analyze_allocation(
        balances=balances,
        prices=prices or make_prices(),
        target_allocation=target,
        **params
    )


class TestNormalizeAllocation:
    """Normalization of raw target weights."""

    def test_scales_to_one(self):
        result = normalize_allocation({"USDT": 60, "WETH": 30, "SOL": 10})

        assert result == pytest.approx({"USDT": 0.6, "WETH": 0.3, "SOL": 0.1})

    def test_idempotent(self):
        once = normalize_allocation({"USDT": 3, "WETH": 1, "USDC": 0})
        twice = normalize_allocation(once)

        assert twice == pytest.approx(once)

    def test_keeps_zero_weights(self):
        assert normalize_allocation({"USDT": 1, "USDC": 0})["USDC"] == 0.0

    def test_rejects_negative_weight(self):
        with pytest.raises(InvalidAllocationError):
            normalize_allocation({"USDT": 1, "WETH": -0.5})

    def test_rejects_zero_sum(self):
        with pytest.raises(InvalidAllocationError):
            normalize_allocation({"USDT": 0, "WETH": 0})

    def test_invalid_allocation_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_allocation({})


class TestAnalyzeAllocation:
    """Drift computation and rebalancing decision."""

    def test_drift_is_symmetric(self, calculator):
        balances = [make_balance("USDT", 700), make_balance("USDC", 300)]
        analysis = analyze(calculator, balances, {"USDT": 0.5, "USDC": 0.5})

        assert analysis.allocation_drift["USDT"] == pytest.approx(0.2)
        assert analysis.allocation_drift["USDC"] == pytest.approx(0.2)

    def test_already_balanced(self, calculator):
        balances = [make_balance("USDT", 500), make_balance("USDC", 500)]
        analysis = analyze(calculator, balances, {"USDT": 0.5, "USDC": 0.5})

        assert analysis.needs_rebalancing is False
        assert analysis.rebalancing_plan == []
        assert analysis.max_drift == pytest.approx(0.0)

    def test_force_rebalance_builds_plan_within_threshold(self, calculator):
        balances = [make_balance("USDT", 501), make_balance("USDC", 499)]
        analysis = analyze(calculator, balances, {"USDT": 0.5, "USDC": 0.5},
                           rebalance_threshold=0.05, force_rebalance=True)

        assert analysis.needs_rebalancing is True
        assert len(analysis.rebalancing_plan) == 2

    def test_plan_directions_and_amounts(self, calculator):
        balances = [make_balance("USDC", 1000)]
        analysis = analyze(calculator, balances, {"USDT": 0.5, "WETH": 0.5})

        trades = {t.symbol: t for t in analysis.rebalancing_plan}
        assert trades["USDT"].action == "buy"
        assert trades["USDT"].difference_amount == pytest.approx(500)
        assert trades["WETH"].action == "buy"
        assert trades["WETH"].difference_amount == pytest.approx(0.25)
        assert trades["USDC"].action == "sell"
        assert trades["USDC"].difference_value_usd == pytest.approx(1000)

    def test_symbol_variants_are_folded(self, calculator):
        balances = [make_balance("USDbC", 400, "base"), make_balance("USDC", 600, "eth")]
        analysis = analyze(calculator, balances, {"USDC": 1.0})

        assert analysis.current_allocation["USDC"] == pytest.approx(1.0)
        assert analysis.needs_rebalancing is False

    def test_zero_portfolio_yields_zero_allocation(self, calculator):
        analysis = analyze(calculator, [], {"USDT": 1.0})

        assert analysis.total_value_usd == 0.0
        assert analysis.current_allocation == {"USDT": 0.0}
        assert analysis.allocation_drift == {"USDT": pytest.approx(1.0)}


    def test_unheld_target_symbols_are_bought(self, calculator):
        balances = [make_balance("USDC", 600), make_balance("USDT", 400)]
        analysis = analyze(calculator, balances, {"USDC": 0.4, "USDT": 0.3, "WETH": 0.3})

        weth = next(t for t in analysis.rebalancing_plan if t.symbol == "WETH")
        assert weth.action == "buy"
        assert weth.current_amount == 0.0
        assert weth.target_amount == pytest.approx(0.15)
        assert weth.difference_value_usd == pytest.approx(300)
        assert weth.priority == pytest.approx(30)

    def test_valuation_prices_unheld_symbols(self, calculator):
        valuation = calculator.value_portfolio([make_balance("USDC", 100)], make_prices())

        assert valuation.symbol_prices["WETH"] == 2000.0
        assert "WETH" not in valuation.symbol_values
        assert valuation.total_value_usd == pytest.approx(100)


class TestPlanRules:
    """Liquidation, minimum trade value, ordering and unpriced symbols."""

    def test_non_target_holding_is_liquidated(self, calculator, app_config):
        balances = [make_balance("USDT", 500), make_balance("SOL", 5, "svm")]
        analysis = analyze(calculator, balances, {"USDT": 1.0})

        sol = next(t for t in analysis.rebalancing_plan if t.symbol == "SOL")
        assert sol.action == "sell"
        assert sol.difference_amount == pytest.approx(5)
        assert sol.target_amount == 0.0
        assert sol.priority == app_config.trading.liquidation_priority

    def test_zero_weight_target_is_not_sold_twice(self, calculator):
        balances = [make_balance("USDC", 1000)]
        analysis = analyze(calculator, balances, {"USDC": 0.0, "USDT": 1.0})

        assert [t.symbol for t in analysis.rebalancing_plan].count("USDC") == 1

    def test_zero_weight_target_uses_liquidation_priority(self, calculator, app_config):
        balances = [make_balance("USDC", 1000)]
        analysis = analyze(calculator, balances, {"USDC": 0.0, "USDT": 1.0})

        usdc = next(t for t in analysis.rebalancing_plan if t.symbol == "USDC")
        assert usdc.action == "sell"
        assert usdc.difference_amount == pytest.approx(1000)
        assert usdc.priority == app_config.trading.liquidation_priority

    def test_min_trade_value_filters_small_trades(self, calculator):
        balances = [make_balance("USDT", 505), make_balance("USDC", 495)]
        analysis = analyze(calculator, balances, {"USDT": 0.5, "USDC": 0.5}, min_trade_value_usd=10)

        assert analysis.needs_rebalancing is True
        assert analysis.rebalancing_plan == []

    def test_plan_sorted_by_priority(self, calculator):
        balances = [make_balance("USDC", 1000), make_balance("DAI", 0.001)]
        prices = make_prices({"USDC": 1.0, "USDT": 1.0, "WETH": 2000.0, "SOL": 100.0, "DAI": 1.0})
        analysis = analyze(calculator, balances, {"USDT": 0.6, "WETH": 0.4}, prices=prices)

        priorities = [t.priority for t in analysis.rebalancing_plan]
        assert priorities == sorted(priorities, reverse=True)
        assert "DAI" not in [t.symbol for t in analysis.rebalancing_plan]

    def test_preferred_chain_follows_consolidation_chain(self, calculator):
        balances = [make_balance("USDC", 1000)]
        analysis = analyze(calculator, balances, {"USDT": 0.5, "SOL": 0.5}, consolidate_to_chain="polygon")

        chains = {t.symbol: t.preferred_chain for t in analysis.rebalancing_plan}
        assert chains["USDT"] == "polygon"
        assert chains["SOL"] == "svm"

    def test_unpriced_symbol_is_valued_at_zero(self, calculator):
        balances = [make_balance("USDT", 1000), make_balance("WETH", 1)]
        prices = make_prices({"USDT": 1.0, "USDC": 1.0})
        analysis = analyze(calculator, balances, {"USDT": 0.5, "WETH": 0.5}, prices=prices)

        assert analysis.total_value_usd == pytest.approx(1000)
        assert analysis.unpriced_symbols == ["WETH"]
        assert "WETH" not in [t.symbol for t in analysis.rebalancing_plan]

    def test_zero_price_symbol_is_not_planned(self, calculator):
        balances = [make_balance("USDT", 1000)]
        prices = make_prices({"USDT": 1.0, "WETH": 0.0})
        analysis = analyze(calculator, balances, {"USDT": 0.5, "WETH": 0.5}, prices=prices)

        assert [t.symbol for t in analysis.rebalancing_plan] == ["USDT"]
