"""Iterative multi-chain rebalancer for a Recall Network agent"""

import asyncio
import logging
import time
import uuid
from typing import Dict, List, Optional, Tuple

try:
    from chain_connector_base import (
        Balance,
        BaseRebalancer,
        ChainAnalysis,
        ChainClient,
        ExecutionStatus,
        InvalidAllocationError,
        IterationRecord,
        LoopState,
        PlannedTrade,
        PriceSnapshot,
        ProviderAPIError,
        ProviderConnectionError,
        RebalanceConfig,
        RebalancePreview,
        RebalanceReport,
        SubTrade,
        TokenDescriptor,
        TokenResolutionError,
        TradeExecutionResult,
    )
    from chain_connector_base.registry import (
        SUPPORTED_CHAINS,
        SUPPORTED_TOKENS,
        is_stablecoin,
        normalize_symbol,
        preferred_chain,
        resolve_token,
    )
    from engine_config import get_config
    from rebalance_calculator import (
        ChainDistributionAnalyzer,
        ReportGenerator,
        TradeCalculator,
        normalize_allocation,
        split_consolidation_move,
        split_trade,
    )
    from .context import set_current_run, clear_current_run
    from .models import RunState
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure chain-connector-base, engine-config and rebalance-calculator packages are installed."
    )


class RecallRebalancer(BaseRebalancer):
    """Consolidates value onto one chain, then trades toward the target allocation until it converges"""

    def __init__(self, client: ChainClient, logger: Optional[logging.Logger] = None):
        self.config = get_config()
        super().__init__(client, logger)
        self.calculator = TradeCalculator(logger=self.logger)
        self.chain_analyzer = ChainDistributionAnalyzer(logger=self.logger)
        self.report_generator = ReportGenerator(logger=self.logger)

    async def run(self, config: RebalanceConfig) -> RebalanceReport:
        """Execute live rebalancing toward the configured target.

        Raises InvalidAllocationError for unusable input, ProviderConnectionError
        when the venue refuses the connection and ProviderAPIError when the
        baseline portfolio cannot be fetched. Individual trade
        failures never raise; they are reported in the returned report.
        """
        config = self._prepare_config(config)
        set_current_run(uuid.uuid4().hex[:12])
        try:
            if not await self.client.connect():
                raise ProviderConnectionError("Failed to connect to trading venue")
            try:
                return await self._run(config)
            finally:
                await self.client.disconnect()
        finally:
            clear_current_run()

    async def _run(self, config: RebalanceConfig) -> RebalanceReport:
        state = RunState()
        self.logger.info("Starting rebalance run")
        self._log_target_allocations(config.target_allocation)

        balances = await self._fetch_balances()
        state.last_balances = balances

        prices = await self._fetch_prices(self._symbols_to_price(config.target_allocation, balances))
        state.warnings.extend(prices.errors)
        self._log_portfolio_snapshot("INITIAL", balances, prices)

        chain_analysis = self.chain_analyzer.analyze(
            balances=balances,
            prices=prices,
            target_allocation=config.target_allocation,
            consolidate_to_chain=config.consolidate_to_chain,
            skip_consolidation=config.skip_consolidation,
            min_trade_value_usd=config.min_trade_value_usd
        )
        self._log_chain_analysis(chain_analysis)

        # Planning from here on prefers the selected consolidation chain
        if chain_analysis.consolidation_chain and not config.consolidate_to_chain:
            config = config.model_copy(update={'consolidate_to_chain': chain_analysis.consolidation_chain})

        if chain_analysis.consolidation_plan:
            await self._execute_consolidation(chain_analysis, prices, config, state)
            balances = await self._refresh_balances(balances, state)

        analysis = self.calculator.analyze_allocation(
            balances=balances,
            prices=prices,
            target_allocation=config.target_allocation,
            min_trade_value_usd=config.min_trade_value_usd,
            rebalance_threshold=config.rebalance_threshold,
            force_rebalance=config.force_rebalance,
            consolidate_to_chain=config.consolidate_to_chain
        )
        self._log_planned_trades(analysis.rebalancing_plan)

        if analysis.needs_rebalancing:
            await self._rebalance_loop(config, prices, state)

        final_balances = await self._refresh_balances(state.last_balances, state)
        self._log_portfolio_snapshot("FINAL", final_balances, prices)

        return self.report_generator.generate(
            analysis=analysis,
            chain_analysis=chain_analysis,
            consolidation_results=state.consolidation_results,
            rebalancing_results=state.rebalancing_results,
            final_allocation=self._final_allocation(final_balances, prices, config.target_allocation),
            iterations=state.iterations,
            stop_reason=state.stop_reason,
            warnings=state.warnings
        )

    async def calculate_rebalance(self, config: RebalanceConfig) -> RebalancePreview:
        """Calculate rebalance without executing (preview mode)"""
        config = self._prepare_config(config)
        self.logger.info("Calculating rebalance preview")
        self._log_target_allocations(config.target_allocation)

        balances = await self._fetch_balances()
        prices = await self._fetch_prices(self._symbols_to_price(config.target_allocation, balances))
        self._log_portfolio_snapshot("CURRENT", balances, prices)

        chain_analysis = self.chain_analyzer.analyze(
            balances=balances,
            prices=prices,
            target_allocation=config.target_allocation,
            consolidate_to_chain=config.consolidate_to_chain,
            skip_consolidation=config.skip_consolidation,
            min_trade_value_usd=config.min_trade_value_usd
        )
        self._log_chain_analysis(chain_analysis)

        analysis = self.calculator.analyze_allocation(
            balances=balances,
            prices=prices,
            target_allocation=config.target_allocation,
            min_trade_value_usd=config.min_trade_value_usd,
            rebalance_threshold=config.rebalance_threshold,
            force_rebalance=config.force_rebalance,
            consolidate_to_chain=config.consolidate_to_chain or chain_analysis.consolidation_chain
        )
        self._log_planned_trades(analysis.rebalancing_plan, is_preview=True)

        return RebalancePreview(
            analysis=analysis,
            chain_analysis=chain_analysis,
            prices=prices,
            success=True,
            warnings=list(prices.errors)
        )

    def _prepare_config(self, config: RebalanceConfig) -> RebalanceConfig:
        """Validate the run config and fold the target allocation into normalized canonical weights"""
        normalized = normalize_allocation(config.target_allocation)

        target: Dict[str, float] = {}
        for symbol, weight in normalized.items():
            canonical = normalize_symbol(symbol)
            target[canonical] = target.get(canonical, 0.0) + weight

        if config.consolidate_to_chain and config.consolidate_to_chain not in SUPPORTED_CHAINS:
            raise InvalidAllocationError(
                f"Unknown consolidation chain '{config.consolidate_to_chain}'. "
                f"Supported chains: {', '.join(SUPPORTED_CHAINS)}"
            )

        return config.model_copy(update={'target_allocation': target})

    def _symbols_to_price(self, target_allocation: Dict[str, float], balances: List[Balance]) -> List[str]:
        symbols = list(target_allocation) + list(SUPPORTED_TOKENS)
        symbols += [normalize_symbol(balance.symbol) for balance in balances]
        return list(dict.fromkeys(symbols))

    async def _fetch_balances(self) -> List[Balance]:
        """Fetch live balances, raising ProviderAPIError on any failure"""
        try:
            snapshot = await self.client.fetch_portfolio()
        except ProviderAPIError:
            raise
        except Exception as e:
            raise ProviderAPIError(f"Portfolio fetch failed: {e}") from e

        if not snapshot.success:
            raise ProviderAPIError(f"Portfolio fetch failed: {snapshot.error or 'unknown error'}")
        return snapshot.balances

    async def _refresh_balances(self, fallback: List[Balance], state: RunState) -> List[Balance]:
        """Re-fetch balances, keeping the last observed ones when the fetch fails"""
        try:
            balances = await self._fetch_balances()
        except ProviderAPIError as e:
            self._warn(state, f"Balance refresh failed, using last observed balances: {e}")
            return fallback
        state.last_balances = balances
        return balances

    async def _fetch_prices(self, symbols: List[str]) -> PriceSnapshot:
        try:
            return await self.client.fetch_prices(symbols)
        except Exception as e:
            self.logger.error(f"Price fetch failed: {e}")
            return PriceSnapshot(success=False, prices={}, errors=[f"Price fetch failed: {e}"])

    # Consolidation

    async def _execute_consolidation(self, chain_analysis: ChainAnalysis, prices: PriceSnapshot,
                                     config: RebalanceConfig, state: RunState):
        """Move every off-chain holding toward the consolidation chain, one move at a time"""
        trading = self.config.trading
        bridge_asset = trading.bridge_asset
        total_value = chain_analysis.total_value_usd
        moves = chain_analysis.consolidation_plan

        self.logger.info(f"====== CONSOLIDATION TO {chain_analysis.consolidation_chain.upper()} ({len(moves)} moves) ======")

        for index, move in enumerate(moves):
            if index > 0:
                await asyncio.sleep(trading.consolidation_move_delay_seconds)

            self.logger.info(f"Move {index + 1}/{len(moves)}: {move.amount:.6f} {move.token} "
                             f"from {move.from_chain} to {move.to_chain} (${move.value_usd:,.2f})")

            if move.token == bridge_asset:
                # Same-asset relocation, modeled without a bridge protocol
                result = TradeExecutionResult(
                    success=True,
                    status=ExecutionStatus.SIMULATED_BRIDGE_TRANSFER,
                    message=f"Simulated bridge of {move.amount:.6f} {move.token} "
                            f"from {move.from_chain} to {move.to_chain}",
                    tx_reference=f"bridge_{int(time.time() * 1000)}",
                    from_symbol=move.token,
                    to_symbol=move.token,
                    amount=move.amount,
                    value_usd=move.value_usd
                )
                self.logger.info(result.message)
                state.consolidation_results.append(result)
                continue

            try:
                from_token = resolve_token(move.token, move.from_chain)
                to_token = resolve_token(bridge_asset, move.from_chain)
            except TokenResolutionError as e:
                self._warn(state, f"Dropping consolidation of {move.token} on {move.from_chain}: {e}")
                continue

            amounts = split_consolidation_move(
                move,
                total_value,
                position_fraction=trading.consolidation_position_fraction,
                portfolio_fraction=trading.consolidation_portfolio_fraction
            )
            price = prices.price_for(move.token)

            for part, amount in enumerate(amounts, start=1):
                label = f" [Sub-trade {part}/{len(amounts)}]" if len(amounts) > 1 else ""
                result = await self._execute_trade(
                    from_token=from_token,
                    to_token=to_token,
                    amount=amount,
                    value_usd=amount * price,
                    reason=f"Consolidating {move.token} from {move.from_chain} toward {move.to_chain}{label}",
                    config=config,
                    state=state
                )
                if result is None:
                    continue
                state.consolidation_results.append(result)
                if result.success:
                    await asyncio.sleep(trading.consolidation_trade_delay_seconds)

        successful = sum(1 for r in state.consolidation_results if r.success)
        self.logger.info(f"Consolidation finished: {successful}/{len(state.consolidation_results)} successful")

    # Rebalancing loop

    async def _rebalance_loop(self, config: RebalanceConfig, prices: PriceSnapshot, state: RunState):
        """Evaluate, plan and execute until converged, exhausted or out of iterations.

        Prices come from the single snapshot taken at the start of the run;
        balances are re-read every iteration.
        """
        trading = self.config.trading
        target = config.target_allocation
        force_rebalance = config.force_rebalance

        for iteration in range(1, config.max_iterations + 1):
            self.logger.info(f"====== REBALANCING ITERATION {iteration}/{config.max_iterations} ======")

            try:
                balances = await self._fetch_balances()
            except ProviderAPIError as e:
                self._warn(state, f"Iteration {iteration} aborted: {e}")
                state.iterations.append(IterationRecord(
                    iteration=iteration, state=LoopState.EVALUATING, error=str(e)
                ))
                await asyncio.sleep(trading.iteration_delay_seconds)
                continue
            state.last_balances = balances

            valuation = self.calculator.value_portfolio(balances, prices)
            _, drift = self.calculator.calculate_drift(valuation, target)
            max_drift = max(drift.values(), default=0.0)
            self.logger.info(f"Max drift: {max_drift * 100:.2f}% "
                             f"(convergence threshold {config.convergence_threshold * 100:.2f}%)")

            if not force_rebalance and max_drift <= config.convergence_threshold:
                self.logger.info("Portfolio converged to target allocation")
                state.iterations.append(IterationRecord(
                    iteration=iteration, max_drift=max_drift, state=LoopState.CONVERGED
                ))
                state.stop_reason = LoopState.CONVERGED
                return

            plan = self.calculator.plan_trades(
                valuation=valuation,
                target_allocation=target,
                allocation_drift=drift,
                min_trade_value_usd=config.min_trade_value_usd,
                consolidate_to_chain=config.consolidate_to_chain
            )
            if not plan:
                self.logger.info("No executable trades remain")
                state.iterations.append(IterationRecord(
                    iteration=iteration, max_drift=max_drift, state=LoopState.EXHAUSTED
                ))
                state.stop_reason = LoopState.EXHAUSTED
                return

            if self._needs_bootstrap(plan, balances):
                result = await self._bootstrap_funding(balances, prices, config, state)
                if result is None:
                    self._warn(state, "Only buys remain and no holding can be sold to fund them")
                    state.iterations.append(IterationRecord(
                        iteration=iteration, max_drift=max_drift, state=LoopState.EXHAUSTED, bootstrap=True
                    ))
                    state.stop_reason = LoopState.EXHAUSTED
                    return
                state.iterations.append(IterationRecord(
                    iteration=iteration, max_drift=max_drift, state=LoopState.EXECUTING,
                    trades_attempted=1, bootstrap=True
                ))
                await asyncio.sleep(trading.bootstrap_delay_seconds)
                continue

            selected = plan[:config.max_trades_per_iteration]
            self._log_planned_trades(selected)
            attempted = await self._execute_trades(
                trades=selected,
                total_value_usd=valuation.total_value_usd,
                balances=balances,
                prices=prices,
                config=config,
                state=state
            )
            # Planned trades that were all skipped never reach execution
            state.iterations.append(IterationRecord(
                iteration=iteration, max_drift=max_drift,
                state=LoopState.EXECUTING if attempted else LoopState.PLANNING_TRADES,
                trades_attempted=attempted
            ))

            # Force only applies to the first pass
            force_rebalance = False

            if iteration < config.max_iterations:
                await asyncio.sleep(trading.iteration_delay_seconds)

        self.logger.warning(f"Iteration cap of {config.max_iterations} reached before convergence")
        state.stop_reason = LoopState.ITERATION_CAP_REACHED

    def _needs_bootstrap(self, plan: List[PlannedTrade], balances: List[Balance]) -> bool:
        """True when only buys remain and nothing stable is held to pay for them"""
        only_buys = all(trade.action == 'buy' for trade in plan)
        holds_stable = any(is_stablecoin(b.symbol) and b.amount > 0 for b in balances)
        return only_buys and not holds_stable

    async def _bootstrap_funding(self, balances: List[Balance], prices: PriceSnapshot,
                                 config: RebalanceConfig, state: RunState) -> Optional[TradeExecutionResult]:
        """Sell the largest holding with no target weight into the bridge asset"""
        candidates: List[Tuple[float, Balance]] = []
        for balance in balances:
            symbol = normalize_symbol(balance.symbol)
            if balance.amount <= 0 or config.target_allocation.get(symbol, 0.0) > 0:
                continue
            value = balance.amount * prices.price_for(symbol)
            if value > 0:
                candidates.append((value, balance))

        if not candidates:
            return None

        value, source = max(candidates, key=lambda candidate: candidate[0])
        bridge_asset = self.config.trading.bridge_asset
        try:
            to_token = resolve_token(bridge_asset, source.specific_chain)
        except TokenResolutionError as e:
            self._warn(state, f"Cannot fund buys from {source.symbol} on {source.specific_chain}: {e}")
            return None

        self.logger.info(f"Bootstrapping liquidity: selling {source.amount:.6f} {source.symbol} "
                         f"(${value:,.2f}) into {bridge_asset}")
        result = await self._execute_trade(
            from_token=source.to_descriptor(),
            to_token=to_token,
            amount=source.amount,
            value_usd=value,
            reason=f"Selling non-target {source.symbol} to fund target allocation buys",
            config=config,
            state=state
        )
        if result is not None:
            state.rebalancing_results.append(result)
        return result

    async def _execute_trades(self, trades: List[PlannedTrade], total_value_usd: float, balances: List[Balance],
                              prices: PriceSnapshot, config: RebalanceConfig, state: RunState) -> int:
        """Split the selected trades and run all sells before any buy. Returns trades attempted."""
        sub_trades: List[SubTrade] = []
        for trade in trades:
            sub_trades.extend(split_trade(trade, total_value_usd, config.max_trade_fraction))

        ordered = [t for t in sub_trades if t.action == 'sell'] + [t for t in sub_trades if t.action == 'buy']
        attempted = 0

        for index, sub_trade in enumerate(ordered):
            if index > 0:
                await asyncio.sleep(self.config.trading.sub_trade_delay_seconds)
                # Preceding trades changed the balances
                balances = await self._refresh_balances(balances, state)

            if sub_trade.action == 'sell':
                result = await self._execute_sell(sub_trade, balances, prices, config, state)
            else:
                result = await self._execute_buy(sub_trade, balances, prices, config, state)

            if result is not None:
                attempted += 1
                state.rebalancing_results.append(result)

        return attempted

    async def _execute_sell(self, trade: SubTrade, balances: List[Balance], prices: PriceSnapshot,
                            config: RebalanceConfig, state: RunState) -> Optional[TradeExecutionResult]:
        holdings = [b for b in balances if normalize_symbol(b.symbol) == trade.symbol and b.amount > 0]
        if not holdings:
            self._warn(state, f"No {trade.symbol} balance available to sell{trade.label}")
            return None

        source = self._select_sell_balance(holdings, config.consolidate_to_chain)
        amount = min(trade.difference_amount, source.amount)

        target = config.target_allocation
        if target.get(trade.symbol, 0.0) <= 0:
            # Skip the bridge hop for holdings being divested
            destination = max(target, key=target.get)
            destination_chain = preferred_chain(destination, config.consolidate_to_chain)
        else:
            destination = self.config.trading.bridge_asset
            destination_chain = trade.preferred_chain
            if trade.symbol == normalize_symbol(destination):
                # Never sold into itself, on any chain
                self._warn(state, f"Skipping sell of bridge asset {trade.symbol} into itself{trade.label}")
                return None

        try:
            to_token = resolve_token(destination, destination_chain)
        except TokenResolutionError as e:
            self._warn(state, f"Dropping sell of {trade.symbol}{trade.label}: {e}")
            return None

        return await self._execute_trade(
            from_token=source.to_descriptor(),
            to_token=to_token,
            amount=amount,
            value_usd=amount * prices.price_for(trade.symbol),
            reason=f"Rebalancing: selling {trade.symbol} toward "
                   f"{target.get(trade.symbol, 0.0) * 100:.2f}% target allocation{trade.label}",
            config=config,
            state=state
        )

    def _select_sell_balance(self, holdings: List[Balance], consolidate_to_chain: Optional[str]) -> Balance:
        if consolidate_to_chain:
            on_chain = [b for b in holdings if b.specific_chain == consolidate_to_chain]
            if on_chain:
                return max(on_chain, key=lambda b: b.amount)
        return max(holdings, key=lambda b: b.amount)

    async def _execute_buy(self, trade: SubTrade, balances: List[Balance], prices: PriceSnapshot,
                           config: RebalanceConfig, state: RunState) -> Optional[TradeExecutionResult]:
        funding: List[Tuple[float, float, Balance]] = []
        for balance in balances:
            symbol = normalize_symbol(balance.symbol)
            if balance.amount <= 0 or symbol == trade.symbol or not is_stablecoin(balance.symbol):
                continue
            price = prices.price_for(symbol)
            if price > 0:
                funding.append((balance.amount * price, price, balance))

        if not funding:
            self._warn(state, f"No stablecoin balance available to fund buy of {trade.symbol}{trade.label}")
            return None

        funding.sort(key=lambda entry: entry[0], reverse=True)
        value, price, source = next(
            (entry for entry in funding if entry[0] >= trade.difference_value_usd),
            funding[0]
        )

        spend_usd = min(trade.difference_value_usd, value)
        if spend_usd < trade.difference_value_usd:
            self.logger.info(f"Funding for {trade.symbol}{trade.label} capped at ${spend_usd:,.2f} "
                             f"of ${trade.difference_value_usd:,.2f} planned")
        amount = min(spend_usd / price, source.amount)

        try:
            to_token = resolve_token(trade.symbol, trade.preferred_chain)
        except TokenResolutionError as e:
            self._warn(state, f"Dropping buy of {trade.symbol}{trade.label}: {e}")
            return None

        return await self._execute_trade(
            from_token=source.to_descriptor(),
            to_token=to_token,
            amount=amount,
            value_usd=spend_usd,
            reason=f"Rebalancing: buying {trade.symbol} toward "
                   f"{config.target_allocation.get(trade.symbol, 0.0) * 100:.2f}% target allocation{trade.label}",
            config=config,
            state=state
        )

    async def _execute_trade(self, from_token: TokenDescriptor, to_token: TokenDescriptor, amount: float,
                             value_usd: float, reason: str, config: RebalanceConfig,
                             state: RunState) -> Optional[TradeExecutionResult]:
        """Single path to the executor. Returns None when the trade is skipped before execution."""
        if from_token.same_token(to_token):
            self._warn(state, f"Skipping self-trade of {from_token.symbol} on {from_token.specific_chain}")
            return None

        self.logger.info(f"Executing: {amount:.6f} {from_token.symbol} ({from_token.specific_chain}) -> "
                         f"{to_token.symbol} ({to_token.specific_chain}) ~${value_usd:,.2f}")
        try:
            result = await self.client.execute_exchange(
                from_token=from_token,
                to_token=to_token,
                amount=amount,
                slippage_tolerance_percent=config.max_slippage_percent,
                reason=reason
            )
        except Exception as e:
            result = TradeExecutionResult(
                success=False,
                status=ExecutionStatus.EXECUTION_ERROR,
                message=f"Failed to execute trade: {e}"
            )

        result = result.model_copy(update={
            'value_usd': value_usd,
            'from_symbol': result.from_symbol or from_token.symbol,
            'to_symbol': result.to_symbol or to_token.symbol,
            'amount': result.amount if result.amount is not None else amount,
        })

        if result.success:
            self.logger.info(f"Trade {result.status}: {result.message} (tx {result.tx_reference})")
        else:
            self.logger.error(f"Trade failed ({result.status}): {result.message}")
        return result

    def _final_allocation(self, balances: List[Balance], prices: PriceSnapshot,
                          target_allocation: Dict[str, float]) -> Dict[str, float]:
        """Allocation over every held symbol, with zeros for absent targets"""
        valuation = self.calculator.value_portfolio(balances, prices)
        allocation = {symbol: 0.0 for symbol in target_allocation}
        if valuation.total_value_usd > 0:
            for symbol, value in valuation.symbol_values.items():
                allocation[symbol] = value / valuation.total_value_usd
        return allocation

    def _warn(self, state: RunState, message: str):
        self.logger.warning(message)
        state.warnings.append(message)

    def _log_portfolio_snapshot(self, stage: str, balances: List[Balance], prices: PriceSnapshot):
        """Log balances per chain with USD values"""
        values = [(b, b.amount * prices.price_for(normalize_symbol(b.symbol))) for b in balances]
        total_value = sum(value for _, value in values)

        self.logger.info(f"====== {stage} PORTFOLIO SNAPSHOT ======")
        self.logger.info(f"Total Portfolio Value: ${total_value:,.2f}")

        if values:
            self.logger.info(f"Balances ({len(values)}):")
            for balance, value in sorted(values, key=lambda item: (item[0].specific_chain, item[0].symbol)):
                percent = (value / total_value * 100) if total_value > 0 else 0
                self.logger.info(f"  {balance.symbol} on {balance.specific_chain}: {balance.amount:,.6f} "
                                 f"= ${value:,.2f} ({percent:.2f}%)")
        else:
            self.logger.info("No balances held")
        self.logger.info("=" * 40)

    def _log_target_allocations(self, target_allocation: Dict[str, float]):
        """Log target allocation percentages"""
        self.logger.info(f"====== TARGET ALLOCATIONS ({len(target_allocation)}) ======")
        for symbol in sorted(target_allocation):
            self.logger.info(f"  {symbol}: {target_allocation[symbol] * 100:.2f}%")
        self.logger.info(f"Total Allocation: {sum(target_allocation.values()) * 100:.2f}%")
        self.logger.info("=" * 35)

    def _log_chain_analysis(self, chain_analysis: ChainAnalysis):
        self.logger.info("====== CHAIN DISTRIBUTION ======")
        for chain, value in sorted(chain_analysis.chain_values.items(), key=lambda item: item[1], reverse=True):
            if value > 0:
                self.logger.info(f"  {chain}: ${value:,.2f} ({', '.join(chain_analysis.available_tokens.get(chain, []))})")
        self.logger.info(f"Consolidation chain: {chain_analysis.consolidation_chain or 'none'}, "
                         f"{len(chain_analysis.consolidation_plan)} moves planned")
        self.logger.info("=" * 32)

    def _log_planned_trades(self, trades: List[PlannedTrade], is_preview: bool = False):
        """Log planned trades"""
        stage = "PROPOSED TRADES (PREVIEW)" if is_preview else "PLANNED TRADES"
        self.logger.info(f"====== {stage} ======")

        if not trades:
            self.logger.info("No trades required - portfolio is already balanced")
            self.logger.info("=" * (len(stage) + 14))
            return

        sells = [t for t in trades if t.action == 'sell']
        buys = [t for t in trades if t.action == 'buy']
        self.logger.info(f"Total Trades: {len(trades)} ({len(sells)} sells, {len(buys)} buys)")
        self.logger.info(f"Total Sell Value: ${sum(t.difference_value_usd for t in sells):,.2f}")
        self.logger.info(f"Total Buy Value: ${sum(t.difference_value_usd for t in buys):,.2f}")

        for trade in trades:
            self.logger.info(f"  {trade.action.upper()} {trade.difference_amount:,.6f} {trade.symbol} "
                             f"= ${trade.difference_value_usd:,.2f} on {trade.preferred_chain} "
                             f"(priority {trade.priority:.2f})")

        self.logger.info("=" * (len(stage) + 14))
