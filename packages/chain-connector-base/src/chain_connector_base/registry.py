"""Static registry of supported tokens and chains"""

from decimal import Decimal, ROUND_DOWN
from typing import Dict, List, Optional, Sequence, Tuple
from .exceptions import TokenResolutionError
from .models import Balance, ChainFamily, TokenDescriptor

SUPPORTED_TOKENS: Tuple[str, ...] = ("USDC", "WETH", "USDT", "SOL")

CHAIN_FAMILIES: Dict[str, ChainFamily] = {
    "eth": ChainFamily.EVM,
    "polygon": ChainFamily.EVM,
    "base": ChainFamily.EVM,
    "arbitrum": ChainFamily.EVM,
    "optimism": ChainFamily.EVM,
    "svm": ChainFamily.SVM,
}

SUPPORTED_CHAINS: Tuple[str, ...] = tuple(CHAIN_FAMILIES)

# chain -> symbol -> contract address
TOKEN_ADDRESSES: Dict[str, Dict[str, str]] = {
    "eth": {
        "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    },
    "polygon": {
        "WETH": "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619",
        "USDC": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        "USDT": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    },
    "base": {
        "WETH": "0x4200000000000000000000000000000000000006",
        "USDC": "0xd9aAEc86B65D86f6A7B5B1b0c42FFA531710b6CA",  # USDbC
        "USDT": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
    },
    "arbitrum": {
        "WETH": "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
        "USDC": "0xaf88d065e77c8cc2239327c5edb3a432268e5831",
        "USDT": "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",
    },
    "optimism": {
        "WETH": "0x4200000000000000000000000000000000000006",
        "USDC": "0x7f5c764cbc14f9669b88837ca1490cca17c31607",
        "USDT": "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58",
    },
    "svm": {
        "SOL": "So11111111111111111111111111111111111111112",
        "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    },
}

DEFAULT_CHAIN_FOR_SYMBOL: Dict[str, str] = {
    "WETH": "eth",
    "USDC": "eth",
    "USDT": "eth",
    "SOL": "svm",
}

DEFAULT_CHAIN = "eth"

# Preferred chains for holding each token, most preferred first
CHAIN_PREFERENCES: Dict[str, Tuple[str, ...]] = {
    "USDC": ("eth", "arbitrum", "polygon", "base", "optimism", "svm"),
    "WETH": ("eth", "arbitrum", "optimism", "polygon", "base"),
    "USDT": ("eth", "arbitrum", "polygon", "optimism", "base", "svm"),
    "SOL": ("svm",),
}

TOKEN_DECIMALS: Dict[str, int] = {
    "USDC": 6,
    "WETH": 18,
    "USDT": 6,
    "SOL": 9,
}

DEFAULT_TOKEN_DECIMALS = 18

SYMBOL_VARIANTS: Dict[str, str] = {
    "USDbC": "USDC",
    "ETH": "WETH",
}

STABLECOIN_SYMBOLS: Tuple[str, ...] = ("USDC", "USDbC", "DAI", "USDT")


def normalize_symbol(symbol: str) -> str:
    """Fold chain-specific spellings into the canonical symbol"""
    return SYMBOL_VARIANTS.get(symbol, symbol)


def is_stablecoin(symbol: str) -> bool:
    return symbol in STABLECOIN_SYMBOLS or normalize_symbol(symbol) in STABLECOIN_SYMBOLS


def chain_family(specific_chain: str) -> ChainFamily:
    try:
        return CHAIN_FAMILIES[specific_chain]
    except KeyError:
        raise TokenResolutionError(f"Chain {specific_chain} not supported") from None


def resolve_token(symbol: str, specific_chain: Optional[str] = None) -> TokenDescriptor:
    """Resolve a (symbol, chain) pair to exactly one token descriptor.

    Uses the symbol's default chain when none is given. Raises
    TokenResolutionError when the symbol or chain is unknown, or when the
    token is not deployed on that chain.
    """
    canonical = normalize_symbol(symbol)
    if canonical not in DEFAULT_CHAIN_FOR_SYMBOL:
        raise TokenResolutionError(f"Token {symbol} not supported")

    target_chain = specific_chain or DEFAULT_CHAIN_FOR_SYMBOL[canonical]
    family = chain_family(target_chain)

    if family is ChainFamily.SVM:
        # SVM holds SOL plus the bridged stablecoins only
        if canonical not in ("SOL", "USDC", "USDT"):
            raise TokenResolutionError(f"Token {symbol} not supported on SVM chain")
    elif family is ChainFamily.EVM:
        if canonical not in ("WETH", "USDC", "USDT"):
            raise TokenResolutionError(f"Token {symbol} not supported on chain {target_chain}")
    else:
        raise TokenResolutionError(f"Unknown chain family {family} for {target_chain}")

    address = TOKEN_ADDRESSES[target_chain].get(canonical)
    if not address:
        raise TokenResolutionError(f"Token {symbol} address not found for chain {target_chain}")

    return TokenDescriptor(
        symbol=canonical,
        chain_family=family,
        specific_chain=target_chain,
        contract_address=address,
    )


def lookup_symbol(token_address: str, specific_chain: str) -> Optional[str]:
    """Reverse lookup of the canonical symbol for a contract on a chain"""
    for symbol, address in TOKEN_ADDRESSES.get(specific_chain, {}).items():
        if address.lower() == token_address.lower():
            return symbol
    return None


def chain_preferences(symbol: str) -> Sequence[str]:
    return CHAIN_PREFERENCES.get(normalize_symbol(symbol), ())


def preferred_chain(symbol: str, consolidate_to_chain: Optional[str] = None) -> str:
    """Chain a symbol should be held on: the consolidation chain when the token exists there, else its first preference"""
    if consolidate_to_chain and normalize_symbol(symbol) in TOKEN_ADDRESSES.get(consolidate_to_chain, {}):
        return consolidate_to_chain
    preferences = chain_preferences(symbol)
    return preferences[0] if preferences else DEFAULT_CHAIN


def find_balance_for_token(balances: List[Balance], token: TokenDescriptor) -> Optional[Balance]:
    """Find the balance matching a token, by address first, then by symbol variant"""
    for balance in balances:
        if (balance.token_address.lower() == token.contract_address.lower()
                and balance.specific_chain == token.specific_chain):
            return balance

    for balance in balances:
        if (normalize_symbol(balance.symbol) == token.symbol
                and balance.specific_chain == token.specific_chain):
            return balance

    return None


def format_token_amount(amount: float, symbol: str) -> str:
    """Render a whole-token amount truncated to the token's decimals"""
    decimals = TOKEN_DECIMALS.get(normalize_symbol(symbol), DEFAULT_TOKEN_DECIMALS)
    quantum = Decimal(1).scaleb(-decimals)
    truncated = Decimal(str(amount)).quantize(quantum, rounding=ROUND_DOWN)
    return format(truncated.normalize(), "f")
