"""
Identity - Blockchain registry.

Definitive list of base networks. A hit here is the strongest
classification signal there is: the entity is a chain.

Also seeds the search index with entries the provider list
endpoints miss (chains without a market-data listing, new L1s).
"""

from typing import Optional

from identity.aliases import normalize_query
from identity.types import BlockchainEntry


def _chain(id, name, symbol, aliases, category="layer1", coingecko_id=None, defillama_name=None):
    return BlockchainEntry(
        id=id,
        name=name,
        symbol=symbol,
        aliases=frozenset(a.lower() for a in aliases),
        category=category,
        coingecko_id=coingecko_id,
        defillama_name=defillama_name,
    )


BLOCKCHAIN_REGISTRY: tuple = (
    # layer 1
    _chain("ethereum", "Ethereum", "ETH", ["ethereum", "eth", "ether"], "layer1", "ethereum", "Ethereum"),
    _chain("bitcoin", "Bitcoin", "BTC", ["bitcoin", "btc"], "layer1", "bitcoin", "Bitcoin"),
    _chain("solana", "Solana", "SOL", ["solana", "sol"], "layer1", "solana", "Solana"),
    _chain("bnb", "BNB Chain", "BNB", ["bnb", "binance", "bsc", "binance smart chain", "bnb chain"], "layer1", "binancecoin", "BSC"),
    _chain("cardano", "Cardano", "ADA", ["cardano", "ada"], "layer1", "cardano", "Cardano"),
    _chain("avalanche", "Avalanche", "AVAX", ["avalanche", "avax"], "layer1", "avalanche-2", "Avalanche"),
    _chain("polkadot", "Polkadot", "DOT", ["polkadot", "dot"], "layer1", "polkadot", "Polkadot"),
    _chain("tron", "TRON", "TRX", ["tron", "trx"], "layer1", "tron", "Tron"),
    _chain("near", "NEAR Protocol", "NEAR", ["near", "near protocol"], "layer1", "near", "Near"),
    _chain("cosmos", "Cosmos", "ATOM", ["cosmos", "atom", "cosmos hub"], "layer1", "cosmos", "CosmosHub"),
    _chain("algorand", "Algorand", "ALGO", ["algorand", "algo"], "layer1", "algorand", "Algorand"),
    _chain("stellar", "Stellar", "XLM", ["stellar", "xlm", "stellar lumens"], "layer1", "stellar", "Stellar"),
    _chain("aptos", "Aptos", "APT", ["aptos", "apt"], "layer1", "aptos", "Aptos"),
    _chain("sui", "Sui", "SUI", ["sui"], "layer1", "sui", "Sui"),
    _chain("fantom", "Fantom", "FTM", ["fantom", "ftm"], "layer1", "fantom", "Fantom"),
    _chain("hedera", "Hedera", "HBAR", ["hedera", "hbar", "hedera hashgraph"], "layer1", "hedera-hashgraph", "Hedera"),
    _chain("sei", "Sei", "SEI", ["sei", "sei network"], "layer1", "sei-network", "Sei"),
    _chain("injective", "Injective", "INJ", ["injective", "inj", "injective protocol"], "layer1", "injective-protocol", "Injective"),
    _chain("celestia", "Celestia", "TIA", ["celestia", "tia"], "layer1", "celestia", "Celestia"),
    _chain("ton", "TON", "TON", ["ton", "toncoin", "the open network"], "layer1", "the-open-network", "TON"),
    _chain("xrp", "XRP Ledger", "XRP", ["xrp", "ripple", "xrp ledger"], "layer1", "ripple", "XRPL"),
    _chain("litecoin", "Litecoin", "LTC", ["litecoin", "ltc"], "layer1", "litecoin"),
    _chain("dogecoin", "Dogecoin", "DOGE", ["dogecoin", "doge"], "layer1", "dogecoin"),
    _chain("bch", "Bitcoin Cash", "BCH", ["bitcoin cash", "bch"], "layer1", "bitcoin-cash"),
    _chain("tezos", "Tezos", "XTZ", ["tezos", "xtz"], "layer1", "tezos", "Tezos"),
    _chain("cronos", "Cronos", "CRO", ["cronos", "cro", "crypto.com chain"], "layer1", "crypto-com-chain", "Cronos"),
    _chain("kava", "Kava", "KAVA", ["kava"], "layer1", "kava", "Kava"),
    _chain("thorchain", "THORChain", "RUNE", ["thorchain", "rune", "thor"], "layer1", "thorchain", "THORChain"),
    _chain("berachain", "Berachain", "BERA", ["berachain", "bera"], "layer1", None, "Berachain"),
    _chain("hyperliquid", "Hyperliquid", "HYPE", ["hyperliquid", "hype", "hyper liquid"], "layer1", None, "Hyperliquid"),
    _chain("sonic", "Sonic", "S", ["sonic", "sonic labs"], "layer1"),
    _chain("monad", "Monad", "MONAD", ["monad"], "layer1"),
    # layer 2
    _chain("arbitrum", "Arbitrum", "ARB", ["arbitrum", "arb", "arbitrum one"], "layer2", "arbitrum", "Arbitrum"),
    _chain("optimism", "Optimism", "OP", ["optimism", "op"], "layer2", "optimism", "Optimism"),
    _chain("base", "Base", "BASE", ["base", "base chain", "coinbase base"], "layer2", None, "Base"),
    _chain("zksync", "zkSync Era", "ZK", ["zksync", "zk", "zksync era"], "layer2", None, "zkSync Era"),
    _chain("starknet", "Starknet", "STRK", ["starknet", "strk", "stark"], "layer2", "starknet", "Starknet"),
    _chain("linea", "Linea", "LINEA", ["linea", "consensys linea"], "layer2", None, "Linea"),
    _chain("scroll", "Scroll", "SCR", ["scroll", "scr"], "layer2", "scroll", "Scroll"),
    _chain("blast", "Blast", "BLAST", ["blast", "blast l2"], "layer2", None, "Blast"),
    _chain("mantle", "Mantle", "MNT", ["mantle", "mnt"], "layer2", "mantle", "Mantle"),
    _chain("metis", "Metis", "METIS", ["metis", "metis andromeda"], "layer2", "metis-token", "Metis"),
    _chain("stacks", "Stacks", "STX", ["stacks", "stx"], "layer2", "blockstack", "Stacks"),
    _chain("immutable", "Immutable X", "IMX", ["immutable", "imx", "immutable x"], "layer2", "immutable-x", "Immutable"),
    # side / app chains
    _chain("polygon", "Polygon", "MATIC", ["polygon", "matic", "polygon pos"], "sidechain", "matic-network", "Polygon"),
    _chain("ronin", "Ronin", "RON", ["ronin", "ron"], "sidechain", "ronin", "Ronin"),
    _chain("rootstock", "Rootstock", "RBTC", ["rootstock", "rsk", "rbtc"], "sidechain", None, "Rootstock"),
    _chain("osmosis", "Osmosis", "OSMO", ["osmosis", "osmo"], "appchain", "osmosis", "Osmosis"),
)


def find_blockchain(query: Optional[str]) -> Optional[BlockchainEntry]:
    """Exact match on id, symbol or alias. No substring matching."""
    normalized = normalize_query(query)
    if not normalized:
        return None
    for entry in BLOCKCHAIN_REGISTRY:
        if (
            entry.id == normalized
            or entry.symbol.lower() == normalized
            or normalized in entry.aliases
        ):
            return entry
    return None
