"""Aggregate a rebalancing run into a report"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging
from chain_connector_base import (
    AllocationAnalysis,
    ChainAnalysis,
    IterationRecord,
    LoopState,
    RebalanceDetails,
    RebalanceReport,
    RebalanceSummary,
    TradeExecutionResult,
)
from engine_config import get_config


class ReportGenerator:
    """Build the run summary, final drift and recommendations"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.config = get_config()

    def generate(self, analysis: AllocationAnalysis, chain_analysis: Optional[ChainAnalysis] = None,
                 consolidation_results: Optional[List[TradeExecutionResult]] = None,
                 rebalancing_results: Optional[List[TradeExecutionResult]] = None,
                 final_allocation: Optional[Dict[str, float]] = None,
                 iterations: Optional[List[IterationRecord]] = None,
                 stop_reason: Optional[LoopState] = None,
                 warnings: Optional[List[str]] = None) -> RebalanceReport:
        consolidation_results = consolidation_results or []
        rebalancing_results = rebalancing_results or []
        final_allocation = final_allocation or {}
        iterations = iterations or []

        consolidation_trades = sum(1 for r in consolidation_results if r.success)
        rebalancing_trades = sum(1 for r in rebalancing_results if r.success)
        total_volume = sum(r.value_usd for r in rebalancing_results if r.success)

        final_drift = {
            symbol: abs(final_allocation.get(symbol, 0.0) - target)
            for symbol, target in analysis.target_allocation.items()
        }
        max_drift_before = analysis.max_drift
        max_drift_after = max(final_drift.values(), default=0.0)

        recommendations = self.build_recommendations(
            analysis=analysis,
            consolidation_trades=consolidation_trades,
            rebalancing_trades=rebalancing_trades,
            max_drift_before=max_drift_before,
            max_drift_after=max_drift_after,
            iterations_completed=len(iterations),
            stop_reason=stop_reason
        )

        summary = RebalanceSummary(
            timestamp=datetime.now(timezone.utc).isoformat(),
            portfolio_value_usd=analysis.total_value_usd,
            consolidation_chain=chain_analysis.consolidation_chain if chain_analysis else None,
            consolidation_executed=consolidation_trades > 0,
            consolidation_trades=consolidation_trades,
            consolidation_attempted=len(consolidation_results),
            rebalancing_required=analysis.needs_rebalancing,
            rebalancing_trades=rebalancing_trades,
            rebalancing_attempted=len(rebalancing_results),
            total_volume_usd=total_volume,
            allocation_before=analysis.current_allocation,
            allocation_target=analysis.target_allocation,
            allocation_final=final_allocation,
            max_drift_before=max_drift_before,
            max_drift_after=max_drift_after,
            iterations_completed=len(iterations),
            stop_reason=stop_reason,
            recommendations=recommendations
        )

        details = RebalanceDetails(
            analysis=analysis,
            chain_analysis=chain_analysis,
            consolidation_results=consolidation_results,
            rebalancing_results=rebalancing_results,
            final_allocation=final_allocation,
            final_drift=final_drift,
            iterations=iterations,
            warnings=list(warnings or [])
        )

        self._log_summary(summary)
        return RebalanceReport(success=True, summary=summary, details=details)

    def build_recommendations(self, analysis: AllocationAnalysis, consolidation_trades: int,
                              rebalancing_trades: int, max_drift_before: float, max_drift_after: float,
                              iterations_completed: int, stop_reason: Optional[LoopState]) -> List[str]:
        recommendations = []

        if consolidation_trades > 0:
            recommendations.append(
                f"Successfully consolidated tokens across {consolidation_trades} chain moves."
            )

        if analysis.needs_rebalancing and rebalancing_trades == 0:
            recommendations.append(
                "Portfolio needed rebalancing but no trades executed. Check balances and market conditions."
            )

        if rebalancing_trades > 0 and max_drift_before > 0:
            improvement = (max_drift_before - max_drift_after) / max_drift_before * 100
            recommendations.append(
                f"Rebalancing improved allocation drift by {improvement:.1f}% "
                f"over {iterations_completed} iterations."
            )

        if stop_reason == LoopState.ITERATION_CAP_REACHED:
            recommendations.append(
                f"Iteration cap reached after {iterations_completed} iterations before convergence."
            )

        if max_drift_after > self.config.report.drift_warning_threshold:
            recommendations.append(
                f"Portfolio still has {max_drift_after * 100:.2f}% drift from target. "
                f"Consider running again if needed."
            )
        else:
            recommendations.append("Portfolio is now very close to target allocation!")

        return recommendations

    def _log_summary(self, summary: RebalanceSummary):
        self.logger.info("====== REBALANCE SUMMARY ======")
        self.logger.info(f"Portfolio value: ${summary.portfolio_value_usd:,.2f}")
        self.logger.info(f"Consolidation: {summary.consolidation_trades}/{summary.consolidation_attempted} "
                         f"trades on {summary.consolidation_chain or 'no chain'}")
        self.logger.info(f"Rebalancing: {summary.rebalancing_trades}/{summary.rebalancing_attempted} trades, "
                         f"${summary.total_volume_usd:,.2f} volume")
        self.logger.info(f"Max drift: {summary.max_drift_before * 100:.2f}% -> {summary.max_drift_after * 100:.2f}% "
                         f"after {summary.iterations_completed} iterations "
                         f"({summary.stop_reason.value if summary.stop_reason else 'no loop'})")
        for recommendation in summary.recommendations:
            self.logger.info(f"  - {recommendation}")
        self.logger.info("====== END REBALANCE SUMMARY ======")
