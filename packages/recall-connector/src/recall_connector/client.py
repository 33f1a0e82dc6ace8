"""Recall Network client for prices, balances and trade execution"""

import asyncio
import os
import logging
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import aiohttp

try:
    import chain_connector_base
    from chain_connector_base import (
        Balance,
        ChainClient,
        ChainFamily,
        ExecutionStatus,
        PortfolioSnapshot,
        PriceSnapshot,
        ProviderAPIError,
        ProviderConnectionError,
        TokenDescriptor,
        TokenResolutionError,
        TradeExecutionResult,
    )
    from chain_connector_base.registry import (
        CHAIN_FAMILIES,
        find_balance_for_token,
        format_token_amount,
        normalize_symbol,
        resolve_token,
    )
    from engine_config import get_config
    from .models import CachedPrice, TokenInfo
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure chain-connector-base and engine-config packages are installed."
    )

BALANCES_PATH = "/api/agent/balances"
TOKEN_INFO_PATH = "/api/price/token-info"
TRADE_EXECUTE_PATH = "/api/trade/execute"

MIN_REASON_LENGTH = 10

_STATUS_BY_HTTP_CODE = {
    400: ExecutionStatus.BAD_REQUEST,
    401: ExecutionStatus.UNAUTHORIZED,
    429: ExecutionStatus.RATE_LIMITED,
}


class RecallClient(ChainClient):
    """Recall Network competition API client"""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = get_config()
        self.logger = logger or logging.getLogger(__name__)

        base_url = base_url or os.getenv('RECALL_API_URL') or self.config.recall.base_url
        if not base_url:
            raise ProviderConnectionError(
                "Recall API base URL not configured. Set RECALL_API_URL or recall.base_url."
            )
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key or os.getenv('RECALL_API_KEY')
        if not self.api_key:
            self.logger.warning("RECALL_API_KEY is not set; requests will be sent without authorization")

        # Price cache: (symbol, specific_chain) -> CachedPrice
        self._price_cache: Dict[Tuple[str, str], CachedPrice] = {}
        self._cache_ttl_seconds = self.config.recall.price_cache_ttl_seconds

        self.logger.info(
            f"Initializing RecallClient for {self.base_url} "
            f"with chain-connector-base v{chain_connector_base.__version__}"
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _backoff_delay(self, attempt: int) -> float:
        delay = self.config.recall.retry_backoff_base_seconds * (2 ** attempt)
        return min(delay, self.config.recall.retry_max_delay_seconds)

    async def _request(self, method: str, path: str, params: Optional[Dict[str, str]] = None,
                       payload: Optional[Dict[str, Any]] = None, idempotent: bool = True) -> Dict[str, Any]:
        """Send one API request with exponential backoff.

        Idempotent requests retry on network errors, HTTP 429 and 5xx.
        Non-idempotent requests retry on HTTP 429 only, so a trade is never submitted twice.
        Raises ProviderConnectionError or ProviderAPIError once retries are exhausted.
        """
        url = f"{self.base_url}{path}"
        max_retries = self.config.recall.max_retries
        timeout = aiohttp.ClientTimeout(total=self.config.recall.request_timeout_seconds)

        for attempt in range(max_retries + 1):
            retries_left = attempt < max_retries
            try:
                async with aiohttp.ClientSession(headers=self._headers(), timeout=timeout) as session:
                    async with session.request(method, url, params=params, json=payload) as response:
                        retryable = response.status == 429 or (idempotent and response.status >= 500)
                        if retryable and retries_left:
                            delay = self._backoff_delay(attempt)
                            self.logger.warning(
                                f"{method} {path} returned {response.status}, "
                                f"retrying in {delay:.2f}s ({attempt + 1}/{max_retries})"
                            )
                            await asyncio.sleep(delay)
                            continue

                        if response.status >= 400:
                            message = await self._error_message(response)
                            raise ProviderAPIError(
                                f"{method} {path} failed with status {response.status}: {message}",
                                status_code=response.status
                            )

                        data = await response.json(content_type=None)
                        if not isinstance(data, dict):
                            raise ProviderAPIError(f"{method} {path} returned a non-object response")
                        return data

            except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
                if idempotent and retries_left:
                    delay = self._backoff_delay(attempt)
                    self.logger.warning(f"{method} {path} network error: {e!r}, retrying in {delay:.2f}s")
                    await asyncio.sleep(delay)
                    continue
                raise ProviderConnectionError(f"{method} {path} failed: {e!r}") from e
            except ValueError as e:
                raise ProviderAPIError(f"{method} {path} returned invalid JSON: {e}") from e

        raise ProviderConnectionError(f"{method} {path} failed after {max_retries} retries")

    async def _error_message(self, response: aiohttp.ClientResponse) -> str:
        text = await response.text()
        try:
            body = await response.json(content_type=None)
        except ValueError:
            return text
        if isinstance(body, dict):
            return str(body.get('message') or body.get('error') or text)
        return text

    async def fetch_portfolio(self, filter_by_chain: Optional[str] = None,
                              include_zero_balances: bool = False) -> PortfolioSnapshot:
        """Get agent balances, optionally filtered to one chain"""
        try:
            data = await self._request("GET", BALANCES_PATH)
        except (ProviderAPIError, ProviderConnectionError) as e:
            self.logger.error(f"Failed to fetch portfolio: {e}")
            return PortfolioSnapshot(success=False, error=str(e))

        balances = []
        for entry in data.get('balances') or []:
            balance = self._parse_balance(entry)
            if balance is None:
                continue
            if filter_by_chain and balance.specific_chain != filter_by_chain:
                continue
            if not include_zero_balances and balance.amount <= 0:
                continue
            balances.append(balance)

        self.logger.info(f"Found {len(balances)} balances for agent {data.get('agentId', 'unknown')}")
        return PortfolioSnapshot(success=True, balances=balances)

    def _parse_balance(self, entry: Dict[str, Any]) -> Optional[Balance]:
        try:
            specific_chain = entry['specificChain']
            family = entry.get('chain') or CHAIN_FAMILIES.get(specific_chain, ChainFamily.EVM).value
            return Balance(
                token_address=entry['tokenAddress'],
                specific_chain=specific_chain,
                chain_family=ChainFamily(family),
                symbol=entry['symbol'],
                amount=float(entry['amount']),
                last_updated=entry.get('updatedAt')
            )
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Skipping malformed balance entry {entry}: {e}")
            return None

    async def fetch_prices(self, symbols: List[str], chain_hint: Optional[str] = None,
                           use_cache: bool = False) -> PriceSnapshot:
        """Get USD prices by symbol

        Args:
            symbols: Symbols to price; chain variants are folded to the canonical symbol
            chain_hint: Chain to price on; symbols not deployed there use their default chain
            use_cache: If True, returns cached prices (within TTL) when available
        """
        prices: Dict[str, float] = {}
        errors: List[str] = []
        now = datetime.now()
        price_results = []

        for symbol in dict.fromkeys(normalize_symbol(s) for s in symbols):
            try:
                token = self._pricing_token(symbol, chain_hint)
            except TokenResolutionError as e:
                errors.append(f"Failed to fetch price for {symbol}: {e}")
                continue

            cache_key = (symbol, token.specific_chain)
            if use_cache:
                cached_entry = self._price_cache.get(cache_key)
                if cached_entry:
                    age_seconds = (now - cached_entry.cached_at).total_seconds()
                    if age_seconds <= self._cache_ttl_seconds:
                        prices[symbol] = cached_entry.price
                        self.logger.debug(f"Using cached price for {symbol} (age: {age_seconds:.1f}s)")
                        continue

            info = await self.get_token_info(
                token.contract_address,
                chain=token.chain_family.value,
                specific_chain=token.specific_chain
            )
            if not info.success or info.price <= 0:
                errors.append(f"Invalid price data for {symbol}: {info.error or info.price}")
                continue

            prices[symbol] = info.price
            self._price_cache[cache_key] = CachedPrice(price=info.price, cached_at=now)
            price_results.append(f"{symbol} -> ${info.price:,.4f}")

        if price_results:
            self.logger.info(f"Retrieved prices: {', '.join(price_results)}")
        for error in errors:
            self.logger.warning(error)

        return PriceSnapshot(success=not errors, prices=prices, errors=errors)

    def _pricing_token(self, symbol: str, chain_hint: Optional[str]) -> TokenDescriptor:
        chain = chain_hint or self.config.recall.default_price_chain
        try:
            return resolve_token(symbol, chain)
        except TokenResolutionError:
            return resolve_token(symbol)

    async def get_token_info(self, token_address: str, chain: Optional[str] = None,
                             specific_chain: Optional[str] = None) -> TokenInfo:
        """Get token details and price for a contract address"""
        params = {"token": token_address}
        if chain:
            params["chain"] = chain
        if specific_chain:
            params["specificChain"] = specific_chain

        try:
            data = await self._request("GET", TOKEN_INFO_PATH, params=params)
        except (ProviderAPIError, ProviderConnectionError) as e:
            return TokenInfo(success=False, token=token_address, specific_chain=specific_chain,
                             error=f"Failed to fetch token info: {e}")

        price = data.get('price')
        if not data.get('success') or not isinstance(price, (int, float)):
            return TokenInfo(success=False, token=token_address, specific_chain=specific_chain,
                             error="Failed to fetch token information")

        return TokenInfo(
            success=True,
            price=float(price),
            token=data.get('token', token_address),
            chain=data.get('chain'),
            specific_chain=data.get('specificChain', specific_chain),
            symbol=data.get('symbol') or "UNKNOWN"
        )

    async def execute_exchange(self, from_token: TokenDescriptor, to_token: TokenDescriptor, amount: float,
                               slippage_tolerance_percent: float, reason: str) -> TradeExecutionResult:
        """Execute one trade after validating it against the live balance"""
        def failed(status: str, message: str) -> TradeExecutionResult:
            self.logger.warning(f"Trade rejected ({status}): {message}")
            return TradeExecutionResult(
                success=False,
                status=status,
                message=message,
                from_symbol=from_token.symbol,
                to_symbol=to_token.symbol,
                amount=amount
            )

        if from_token.same_token(to_token):
            return failed(ExecutionStatus.INVALID_TRADE, "Cannot trade the same token on the same chain")
        if amount <= 0:
            return failed(ExecutionStatus.INVALID_TRADE, f"Trade amount must be positive, got {amount}")
        if len((reason or "").strip()) < MIN_REASON_LENGTH:
            return failed(ExecutionStatus.INVALID_TRADE,
                          f"Trade reason must be at least {MIN_REASON_LENGTH} characters")

        portfolio = await self.fetch_portfolio(include_zero_balances=True)
        if not portfolio.success:
            return failed(ExecutionStatus.EXECUTION_ERROR, f"Balance check failed: {portfolio.error}")

        balance = find_balance_for_token(portfolio.balances, from_token)
        available = balance.amount if balance else 0.0
        if available < amount:
            return failed(
                ExecutionStatus.INSUFFICIENT_BALANCE,
                f"Insufficient balance on {from_token.specific_chain}. "
                f"Available: {available}, Requested: {amount}"
            )

        trade_payload = {
            "fromToken": from_token.contract_address,
            "toToken": to_token.contract_address,
            "amount": format_token_amount(amount, from_token.symbol),
            "reason": reason,
            "slippageTolerance": str(slippage_tolerance_percent),
            "fromChain": from_token.chain_family.value,
            "fromSpecificChain": from_token.specific_chain,
            "toChain": to_token.chain_family.value,
            "toSpecificChain": to_token.specific_chain,
        }
        self.logger.debug(f"Executing trade with payload: {trade_payload}")

        try:
            data = await self._request("POST", TRADE_EXECUTE_PATH, payload=trade_payload, idempotent=False)
        except ProviderAPIError as e:
            status = _STATUS_BY_HTTP_CODE.get(e.status_code, ExecutionStatus.EXECUTION_ERROR)
            if status == ExecutionStatus.RATE_LIMITED:
                return failed(status, "Rate limit exceeded. Please try again later.")
            if status == ExecutionStatus.UNAUTHORIZED:
                return failed(status, "Invalid API key or authorization failed")
            return failed(status, f"Trade execution failed: {e}")
        except ProviderConnectionError as e:
            return failed(ExecutionStatus.EXECUTION_ERROR, f"Failed to execute trade: {e}")

        if data.get('success') is False:
            return failed(ExecutionStatus.EXECUTION_ERROR,
                          f"Trade execution failed: {data.get('error') or data.get('message') or 'unknown error'}")

        transaction = data.get('transaction') or {}
        tx_reference = data.get('txHash') or transaction.get('id')

        self.logger.info(
            f"Executed trade: {amount} {from_token.symbol} ({from_token.specific_chain}) -> "
            f"{to_token.symbol} ({to_token.specific_chain}), tx {tx_reference}"
        )
        return TradeExecutionResult(
            success=True,
            status=ExecutionStatus.EXECUTED,
            message=f"Successfully executed trade: {amount} {from_token.symbol} -> {to_token.symbol}",
            tx_reference=str(tx_reference) if tx_reference is not None else None,
            from_symbol=from_token.symbol,
            to_symbol=to_token.symbol,
            amount=amount
        )
