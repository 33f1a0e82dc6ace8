"""
Tests for the Recall API client against a local aiohttp server.
"""

from typing import Dict, List

import pytest
import pytest_asyncio
import yaml
from aiohttp import web
from aiohttp import test_utils

from chain_connector_base import ExecutionStatus, ProviderConnectionError
from chain_connector_base.registry import TOKEN_ADDRESSES, resolve_token
from engine_config import load_config
from recall_connector import RecallClient

USDC_ETH = TOKEN_ADDRESSES["eth"]["USDC"]
WETH_ETH = TOKEN_ADDRESSES["eth"]["WETH"]
SOL_SVM = TOKEN_ADDRESSES["svm"]["SOL"]


def balance_entry(symbol, amount, chain="eth", address=None):
    return {
        "tokenAddress": address or TOKEN_ADDRESSES[chain][symbol],
        "specificChain": chain,
        "chain": "svm" if chain == "svm" else "evm",
        "symbol": symbol,
        "amount": amount,
    }


class FakeRecallAPI:
    """Scripted Recall endpoints; queued status codes are served before normal responses"""

    def __init__(self):
        self.balances: List[dict] = [balance_entry("USDC", 100.0)]
        self.prices: Dict[str, float] = {USDC_ETH.lower(): 1.0, WETH_ETH.lower(): 2000.0, SOL_SVM.lower(): 150.0}
        self.balance_failures: List[int] = []
        self.price_failures: List[int] = []
        self.trade_failures: List[int] = []
        self.trade_response: dict = {"success": True, "transaction": {"id": "tx-1"}}
        self.balance_calls = 0
        self.price_calls: List[dict] = []
        self.trade_payloads: List[dict] = []
        self.auth_headers: List[str] = []
        self.base_url = ""

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/agent/balances", self.handle_balances)
        app.router.add_get("/api/price/token-info", self.handle_token_info)
        app.router.add_post("/api/trade/execute", self.handle_trade)
        return app

    @staticmethod
    def _error(status: int) -> web.Response:
        return web.json_response({"success": False, "error": f"scripted {status}"}, status=status)

    async def handle_balances(self, request: web.Request) -> web.Response:
        self.balance_calls += 1
        self.auth_headers.append(request.headers.get("Authorization", ""))
        if self.balance_failures:
            return self._error(self.balance_failures.pop(0))
        return web.json_response({"success": True, "agentId": "agent-1", "balances": self.balances})

    async def handle_token_info(self, request: web.Request) -> web.Response:
        params = dict(request.query)
        self.price_calls.append(params)
        if self.price_failures:
            return self._error(self.price_failures.pop(0))
        price = self.prices.get(params["token"].lower())
        if price is None:
            return web.json_response({"success": False, "error": "Token not found"}, status=404)
        return web.json_response({
            "success": True,
            "price": price,
            "token": params["token"],
            "chain": params.get("chain"),
            "specificChain": params.get("specificChain"),
            "symbol": "TKN",
        })

    async def handle_trade(self, request: web.Request) -> web.Response:
        self.trade_payloads.append(await request.json())
        if self.trade_failures:
            return self._error(self.trade_failures.pop(0))
        return web.json_response(self.trade_response)


@pytest_asyncio.fixture
async def recall_api():
    api = FakeRecallAPI()
    server = test_utils.TestServer(api.app())
    await server.start_server()
    api.base_url = str(server.make_url("/"))
    yield api
    await server.close()


@pytest.fixture
def client(recall_api):
    return RecallClient(base_url=recall_api.base_url, api_key="test-key")


def usdc():
    return resolve_token("USDC", "eth")


def weth():
    return resolve_token("WETH", "eth")


class TestClientSetup:
    """Base URL and API key resolution."""

    def test_missing_base_url_raises(self, tmp_path, monkeypatch):
        monkeypatch.delenv("RECALL_API_URL", raising=False)
        config_path = tmp_path / "no_url.yaml"
        config_path.write_text(yaml.safe_dump({"recall": {"max_retries": 0}}))
        load_config(config_path)

        with pytest.raises(ProviderConnectionError):
            RecallClient(base_url=None, api_key="test-key")

    def test_env_base_url_overrides_config(self, monkeypatch):
        monkeypatch.setenv("RECALL_API_URL", "http://env.recall.test/")
        monkeypatch.setenv("RECALL_API_KEY", "env-key")
        client = RecallClient()

        assert client.base_url == "http://env.recall.test"
        assert client.api_key == "env-key"

    @pytest.mark.asyncio
    async def test_bearer_token_is_sent(self, client, recall_api):
        await client.fetch_portfolio()

        assert recall_api.auth_headers == ["Bearer test-key"]


class TestFetchPortfolio:
    """Balance parsing and filtering."""

    @pytest.mark.asyncio
    async def test_parses_balances(self, client, recall_api):
        recall_api.balances = [balance_entry("USDC", "250.5"), balance_entry("SOL", 3, "svm")]
        snapshot = await client.fetch_portfolio()

        assert snapshot.success is True
        assert [(b.symbol, b.specific_chain, b.amount) for b in snapshot.balances] == [
            ("USDC", "eth", 250.5),
            ("SOL", "svm", 3.0),
        ]
        assert snapshot.balances[1].chain_family.value == "svm"

    @pytest.mark.asyncio
    async def test_filters_chain_and_zero_balances(self, client, recall_api):
        recall_api.balances = [
            balance_entry("USDC", 100),
            balance_entry("WETH", 0),
            balance_entry("USDC", 50, "polygon"),
        ]

        eth_only = await client.fetch_portfolio(filter_by_chain="eth")
        with_zero = await client.fetch_portfolio(filter_by_chain="eth", include_zero_balances=True)

        assert [b.symbol for b in eth_only.balances] == ["USDC"]
        assert [b.symbol for b in with_zero.balances] == ["USDC", "WETH"]

    @pytest.mark.asyncio
    async def test_malformed_entry_is_skipped(self, client, recall_api):
        recall_api.balances = [{"symbol": "USDC", "amount": 5}, balance_entry("USDC", 100)]
        snapshot = await client.fetch_portfolio()

        assert snapshot.success is True
        assert len(snapshot.balances) == 1

    @pytest.mark.asyncio
    async def test_retries_server_errors_and_rate_limits(self, client, recall_api):
        recall_api.balance_failures = [500, 429]
        snapshot = await client.fetch_portfolio()

        assert snapshot.success is True
        assert recall_api.balance_calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_failed_snapshot(self, client, recall_api):
        recall_api.balance_failures = [503, 503, 503]
        snapshot = await client.fetch_portfolio()

        assert snapshot.success is False
        assert "503" in snapshot.error
        assert recall_api.balance_calls == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, client, recall_api):
        recall_api.balance_failures = [401]
        snapshot = await client.fetch_portfolio()

        assert snapshot.success is False
        assert recall_api.balance_calls == 1

    @pytest.mark.asyncio
    async def test_unreachable_server_returns_failed_snapshot(self):
        client = RecallClient(base_url="http://127.0.0.1:1", api_key="test-key")
        snapshot = await client.fetch_portfolio()

        assert snapshot.success is False


class TestFetchPrices:
    """Price resolution, caching and failures."""

    @pytest.mark.asyncio
    async def test_prices_by_canonical_symbol(self, client, recall_api):
        snapshot = await client.fetch_prices(["USDbC", "WETH", "SOL"])

        assert snapshot.success is True
        assert snapshot.prices == {"USDC": 1.0, "WETH": 2000.0, "SOL": 150.0}
        sol_call = next(call for call in recall_api.price_calls if call["token"] == SOL_SVM)
        assert sol_call["specificChain"] == "svm"
        assert sol_call["chain"] == "svm"

    @pytest.mark.asyncio
    async def test_cache_avoids_repeat_requests(self, client, recall_api):
        await client.fetch_prices(["USDC", "WETH"], use_cache=True)
        cached = await client.fetch_prices(["USDC", "WETH"], use_cache=True)

        assert cached.prices == {"USDC": 1.0, "WETH": 2000.0}
        assert len(recall_api.price_calls) == 2

    @pytest.mark.asyncio
    async def test_without_cache_every_call_hits_api(self, client, recall_api):
        await client.fetch_prices(["USDC"])
        await client.fetch_prices(["USDC"])

        assert len(recall_api.price_calls) == 2

    @pytest.mark.asyncio
    async def test_unknown_symbol_is_reported_without_request(self, client, recall_api):
        snapshot = await client.fetch_prices(["DOGE", "USDC"])

        assert snapshot.success is False
        assert snapshot.prices == {"USDC": 1.0}
        assert any("DOGE" in error for error in snapshot.errors)
        assert len(recall_api.price_calls) == 1

    @pytest.mark.asyncio
    async def test_zero_price_is_an_error(self, client, recall_api):
        recall_api.prices[WETH_ETH.lower()] = 0.0
        snapshot = await client.fetch_prices(["WETH"])

        assert "WETH" not in snapshot.prices
        assert snapshot.errors

    @pytest.mark.asyncio
    async def test_token_info_failure(self, client, recall_api):
        info = await client.get_token_info("0xunknown", chain="evm", specific_chain="eth")

        assert info.success is False
        assert info.error.startswith("Failed to fetch token info")

    @pytest.mark.asyncio
    async def test_token_info_success(self, client, recall_api):
        info = await client.get_token_info(WETH_ETH, chain="evm", specific_chain="eth")

        assert info.success is True
        assert info.price == 2000.0
        assert info.specific_chain == "eth"


class TestExecuteExchange:
    """Validation, payload and error mapping."""

    @pytest.mark.asyncio
    async def test_successful_trade_payload(self, client, recall_api):
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "Rebalancing: buying WETH")

        assert result.success is True
        assert result.status == ExecutionStatus.EXECUTED
        assert result.tx_reference == "tx-1"
        assert recall_api.trade_payloads == [{
            "fromToken": USDC_ETH,
            "toToken": WETH_ETH,
            "amount": "10",
            "reason": "Rebalancing: buying WETH",
            "slippageTolerance": "0.5",
            "fromChain": "evm",
            "fromSpecificChain": "eth",
            "toChain": "evm",
            "toSpecificChain": "eth",
        }]

    @pytest.mark.asyncio
    async def test_amount_is_truncated_to_token_decimals(self, client, recall_api):
        await client.execute_exchange(usdc(), weth(), 0.09999999999999998, 0.5, "Rebalancing: buying WETH")

        assert recall_api.trade_payloads[0]["amount"] == "0.099999"

    @pytest.mark.asyncio
    async def test_tx_hash_is_preferred(self, client, recall_api):
        recall_api.trade_response = {"success": True, "txHash": "0xabc", "transaction": {"id": "tx-9"}}
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "Rebalancing: buying WETH")

        assert result.tx_reference == "0xabc"

    @pytest.mark.asyncio
    async def test_insufficient_balance_is_checked_first(self, client, recall_api):
        result = await client.execute_exchange(usdc(), weth(), 500.0, 0.5, "Rebalancing: buying WETH")

        assert result.success is False
        assert result.status == ExecutionStatus.INSUFFICIENT_BALANCE
        assert "Available: 100.0" in result.message
        assert recall_api.trade_payloads == []

    @pytest.mark.asyncio
    async def test_short_reason_is_invalid(self, client, recall_api):
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "rebal")

        assert result.status == ExecutionStatus.INVALID_TRADE
        assert recall_api.balance_calls == 0

    @pytest.mark.asyncio
    async def test_same_token_is_invalid(self, client, recall_api):
        result = await client.execute_exchange(usdc(), usdc(), 10.0, 0.5, "Rebalancing: nothing")

        assert result.status == ExecutionStatus.INVALID_TRADE
        assert recall_api.trade_payloads == []

    @pytest.mark.asyncio
    async def test_non_positive_amount_is_invalid(self, client, recall_api):
        result = await client.execute_exchange(usdc(), weth(), 0.0, 0.5, "Rebalancing: buying WETH")

        assert result.status == ExecutionStatus.INVALID_TRADE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("http_status, expected", [
        (400, ExecutionStatus.BAD_REQUEST),
        (401, ExecutionStatus.UNAUTHORIZED),
        (500, ExecutionStatus.EXECUTION_ERROR),
    ])
    async def test_http_errors_are_mapped(self, client, recall_api, http_status, expected):
        recall_api.trade_failures = [http_status]
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "Rebalancing: buying WETH")

        assert result.success is False
        assert result.status == expected
        # trades are submitted once unless rate limited
        assert len(recall_api.trade_payloads) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, client, recall_api):
        recall_api.trade_failures = [429]
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "Rebalancing: buying WETH")

        assert result.success is True
        assert len(recall_api.trade_payloads) == 2

    @pytest.mark.asyncio
    async def test_persistent_rate_limit(self, client, recall_api):
        recall_api.trade_failures = [429, 429, 429]
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "Rebalancing: buying WETH")

        assert result.status == ExecutionStatus.RATE_LIMITED
        assert result.message == "Rate limit exceeded. Please try again later."

    @pytest.mark.asyncio
    async def test_unsuccessful_body_is_execution_error(self, client, recall_api):
        recall_api.trade_response = {"success": False, "error": "Slippage exceeded"}
        result = await client.execute_exchange(usdc(), weth(), 10.0, 0.5, "Rebalancing: buying WETH")

        assert result.status == ExecutionStatus.EXECUTION_ERROR
        assert "Slippage exceeded" in result.message
