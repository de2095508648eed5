"""
Identity - Known aliases.

============================================================
PURPOSE
============================================================
Curated table for entities whose display name, provider slug
and ticker disagree (e.g. "aave" lives at DefiLlama slug
"aave-v3", "curve" at "curve-dex", BNB at CoinGecko
"binancecoin").

Any query that the providers fail to resolve on their own
belongs here.

============================================================
"""

import logging
import re
from typing import List, Optional

from identity.types import AliasEntry, EntityType


logger = logging.getLogger(__name__)


def _alias(queries, entity_type, name, symbol=None, chain_id=None, market_id=None) -> AliasEntry:
    return AliasEntry(
        queries=frozenset(q.lower() for q in queries),
        entity_type=entity_type,
        display_name=name,
        symbol=symbol,
        canonical_chain_id=chain_id,
        canonical_market_id=market_id,
    )


CHAIN = EntityType.CHAIN
PROTOCOL = EntityType.PROTOCOL
TOKEN = EntityType.TOKEN


KNOWN_ALIASES: tuple = (
    # chains
    _alias(["stellar", "xlm", "stellar lumens", "stellar network"], CHAIN, "Stellar", "XLM", "stellar", "stellar"),
    _alias(["solana", "sol"], CHAIN, "Solana", "SOL", "solana", "solana"),
    _alias(["ethereum", "eth", "ether"], CHAIN, "Ethereum", "ETH", "ethereum", "ethereum"),
    _alias(["bsc", "binance smart chain", "bnb chain", "bnb"], CHAIN, "BNB Smart Chain", "BNB", "bsc", "binancecoin"),
    _alias(["polygon", "matic", "pol"], CHAIN, "Polygon", "MATIC", "polygon", "matic-network"),
    _alias(["arbitrum", "arb"], CHAIN, "Arbitrum", "ARB", "arbitrum", "arbitrum"),
    _alias(["optimism", "op"], CHAIN, "Optimism", "OP", "optimism", "optimism"),
    _alias(["base", "base chain", "coinbase base"], CHAIN, "Base", "BASE", "base", None),
    _alias(["avalanche", "avax", "avalanche c-chain"], CHAIN, "Avalanche", "AVAX", "avalanche", "avalanche-2"),
    _alias(["berachain", "bera", "bera chain"], CHAIN, "Berachain", "BERA", "berachain", "berachain-bera"),
    _alias(["blast", "blast chain"], CHAIN, "Blast", "BLAST", "blast", "blast"),
    _alias(["scroll", "scr"], CHAIN, "Scroll", "SCR", "scroll", "scroll"),
    _alias(["cardano", "ada"], CHAIN, "Cardano", "ADA", "cardano", "cardano"),
    _alias(["polkadot", "dot"], CHAIN, "Polkadot", "DOT", None, "polkadot"),
    # protocols
    _alias(["aave", "aave v3", "aave-v3"], PROTOCOL, "Aave", "AAVE", "aave-v3", "aave"),
    _alias(["uniswap", "uni", "uniswap v3"], PROTOCOL, "Uniswap", "UNI", "uniswap-v3", "uniswap"),
    _alias(["curve", "crv", "curve finance"], PROTOCOL, "Curve", "CRV", "curve-dex", "curve-dao-token"),
    _alias(["lido", "ldo", "lido finance"], PROTOCOL, "Lido", "LDO", "lido", "lido-dao"),
    _alias(["maker", "makerdao", "mkr", "sky"], PROTOCOL, "MakerDAO", "MKR", "makerdao", "maker"),
    _alias(["compound", "comp", "compound v3"], PROTOCOL, "Compound", "COMP", "compound-v3", "compound-governance-token"),
    _alias(["pancakeswap", "cake", "pcs"], PROTOCOL, "PancakeSwap", "CAKE", "pancakeswap-amm-v3", "pancakeswap-token"),
    _alias(["jupiter", "jup", "jupiter exchange"], PROTOCOL, "Jupiter", "JUP", "jupiter", "jupiter-exchange-solana"),
    _alias(["raydium", "ray"], PROTOCOL, "Raydium", "RAY", "raydium", "raydium"),
    _alias(["hyperliquid", "hype", "hyper liquid"], PROTOCOL, "Hyperliquid", "HYPE", "hyperliquid", "hyperliquid"),
    # tokens
    _alias(["bitcoin", "btc"], TOKEN, "Bitcoin", "BTC", None, "bitcoin"),
)

# shorter terms only match exactly
_MIN_CONTAINED_TERM = 3

_STRIPPABLE_SUFFIXES = re.compile(
    r"\s+(chain|network|finance|protocol|token|coin|exchange|swap|dao)$",
    re.IGNORECASE,
)


def normalize_query(query: Optional[str]) -> str:
    """Trim and lowercase a raw user query."""
    return (query or "").strip().lower()


def resolve_alias(query: Optional[str]) -> Optional[AliasEntry]:
    """
    Resolve a query against the alias table.

    Exact term match first; otherwise a term that appears as a
    whole word inside the query ("aave v2" -> aave).
    """
    normalized = normalize_query(query)
    if not normalized:
        return None

    for entry in KNOWN_ALIASES:
        if normalized in entry.queries:
            return entry

    for entry in KNOWN_ALIASES:
        for term in entry.queries:
            if len(term) < _MIN_CONTAINED_TERM:
                continue
            if re.search(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", normalized):
                logger.debug(f"[aliases] '{query}' contains alias term '{term}'")
                return entry

    return None


def generate_query_variations(query: Optional[str]) -> List[str]:
    """
    Spellings worth trying against provider search endpoints.

    Order is significant: the original spelling first.
    """
    lower = normalize_query(query)
    if not lower:
        return []

    variations: List[str] = []

    def add(value: str) -> None:
        if value and value not in variations:
            variations.append(value)

    add(lower)
    add(re.sub(r"\s+", "-", lower))
    add(re.sub(r"\s+", "", lower))

    first_word = re.split(r"[\s-]", lower)[0]
    if len(first_word) > 2:
        add(first_word)

    without_suffix = _STRIPPABLE_SUFFIXES.sub("", lower)
    if without_suffix != lower:
        add(without_suffix)
        add(re.sub(r"\s+", "-", without_suffix))

    return variations
