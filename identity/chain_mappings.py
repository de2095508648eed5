"""
Identity - Chain name mappings.

Maps every spelling of a chain to the name the chain API lists it
under and the id of its native asset on the market-data API.
Chain API names are case-sensitive ("OP Mainnet", "BSC").
"""

from typing import Optional

from identity.aliases import normalize_query
from identity.types import ChainMapping


def _mapping(key, names, symbols, chain_api_name, market_api_id, category) -> ChainMapping:
    return ChainMapping(
        key=key,
        names=frozenset(n.lower() for n in names),
        symbols=frozenset(s.lower() for s in symbols),
        chain_api_name=chain_api_name,
        market_api_id=market_api_id,
        category=category,
    )


CHAIN_MAPPINGS: tuple = (
    # major L1s
    _mapping("ethereum", ["ethereum", "eth"], ["ETH"], "Ethereum", "ethereum", "L1"),
    _mapping("solana", ["solana", "sol"], ["SOL"], "Solana", "solana", "L1"),
    _mapping("binance", ["binance", "bnb", "bsc", "binance smart chain", "bnb chain"], ["BNB"], "BSC", "binancecoin", "L1"),
    _mapping("bitcoin", ["bitcoin", "btc"], ["BTC"], "Bitcoin", "bitcoin", "L1"),
    _mapping("tron", ["tron", "trx"], ["TRX", "TRON"], "Tron", "tron", "L1"),
    _mapping("avalanche", ["avalanche", "avax"], ["AVAX"], "Avalanche", "avalanche-2", "L1"),
    _mapping("polygon", ["polygon", "matic", "pol"], ["MATIC", "POL"], "Polygon", "polygon-ecosystem-token", "L1"),
    _mapping("sui", ["sui"], ["SUI"], "Sui", "sui", "L1"),
    _mapping("hyperliquid", ["hyperliquid", "hype"], ["HYPE"], "Hyperliquid L1", "hyperliquid", "L1"),
    _mapping("cosmos", ["cosmos", "atom", "cosmos hub"], ["ATOM"], "CosmosHub", "cosmos", "L1"),
    _mapping("celestia", ["celestia", "tia"], ["TIA"], "Celestia", "celestia", "L1"),
    _mapping("osmosis", ["osmosis", "osmo"], ["OSMO"], "Osmosis", "osmosis", "L1"),
    _mapping("injective", ["injective", "inj"], ["INJ"], "Injective", "injective-protocol", "L1"),
    _mapping("sei", ["sei"], ["SEI"], "Sei", "sei-network", "L1"),
    _mapping("polkadot", ["polkadot", "dot"], ["DOT"], "Polkadot", "polkadot", "L1"),
    _mapping("aptos", ["aptos", "apt"], ["APT"], "Aptos", "aptos", "L1"),
    _mapping("near", ["near", "near protocol"], ["NEAR"], "Near", "near", "L1"),
    _mapping("cardano", ["cardano", "ada"], ["ADA"], "Cardano", "cardano", "L1"),
    _mapping("stellar", ["stellar", "xlm"], ["XLM"], "Stellar", "stellar", "L1"),
    _mapping("algorand", ["algorand", "algo"], ["ALGO"], "Algorand", "algorand", "L1"),
    _mapping("fantom", ["fantom", "ftm"], ["FTM"], "Fantom", "fantom", "L1"),
    _mapping("ton", ["ton", "the open network", "toncoin"], ["TON"], "TON", "the-open-network", "L1"),
    _mapping("hedera", ["hedera", "hbar"], ["HBAR"], "Hedera", "hedera-hashgraph", "L1"),
    _mapping("xrp", ["xrp", "ripple", "xrp ledger", "xrpl"], ["XRP"], "XRPL", "ripple", "L1"),
    _mapping("tezos", ["tezos", "xtz"], ["XTZ"], "Tezos", "tezos", "L1"),
    _mapping("cronos", ["cronos", "cro"], ["CRO"], "Cronos", "crypto-com-chain", "L1"),
    _mapping("gnosis", ["gnosis", "gno"], ["GNO"], "Gnosis", "gnosis", "L1"),
    _mapping("kava", ["kava"], ["KAVA"], "Kava", "kava", "L1"),
    _mapping("celo", ["celo"], ["CELO"], "Celo", "celo", "L1"),
    _mapping("stacks", ["stacks", "stx"], ["STX"], "Stacks", "blockstack", "L1"),
    _mapping("multiversx", ["elrond", "multiversx", "egld"], ["EGLD"], "MultiversX", "elrond-erd-2", "L1"),
    _mapping("kaia", ["kaia", "klaytn", "klay"], ["KLAY"], "Kaia", "klay-token", "L1"),
    _mapping("litecoin", ["litecoin", "ltc"], ["LTC"], "Litecoin", "litecoin", "L1"),
    _mapping("dogecoin", ["dogecoin", "doge"], ["DOGE"], "Doge", "dogecoin", "L1"),
    _mapping("berachain", ["berachain", "bera"], ["BERA"], "Berachain", "berachain-bera", "L1"),
    _mapping("sonic", ["sonic"], ["S"], "Sonic", "sonic-3", "L1"),
    # L2s
    _mapping("base", ["base"], ["BASE"], "Base", None, "L2"),
    _mapping("arbitrum", ["arbitrum", "arb"], ["ARB"], "Arbitrum", "arbitrum", "L2"),
    _mapping("optimism", ["optimism", "op"], ["OP"], "OP Mainnet", "optimism", "L2"),
    _mapping("blast", ["blast"], ["BLAST"], "Blast", "blast", "L2"),
    _mapping("scroll", ["scroll"], ["SCR"], "Scroll", "scroll", "L2"),
    _mapping("linea", ["linea"], ["LINEA"], "Linea", "linea", "L2"),
    _mapping("zksync", ["zksync", "zksync era", "zk"], ["ZK"], "ZKsync Era", "zksync", "L2"),
    _mapping("starknet", ["starknet", "stark"], ["STRK"], "Starknet", "starknet", "L2"),
    _mapping("mantle", ["mantle", "mnt"], ["MNT"], "Mantle", "mantle", "L2"),
    _mapping("manta", ["manta"], ["MANTA"], "Manta", "manta-network", "L2"),
    _mapping("mode", ["mode"], ["MODE"], "Mode", "mode", "L2"),
    _mapping("metis", ["metis"], ["METIS"], "Metis", "metis-token", "L2"),
    _mapping("apechain", ["apechain", "ape"], ["APE"], "ApeChain", "apecoin", "L2"),
    _mapping("xai", ["xai"], ["XAI"], "Xai", "xai-blockchain", "L2"),
    # side / app chains
    _mapping("rootstock", ["rootstock", "rsk", "rbtc"], ["RBTC"], "Rootstock", "rootstock", "Sidechain"),
    _mapping("ronin", ["ronin", "ron"], ["RON"], "Ronin", "ronin", "Sidechain"),
    _mapping("immutable", ["immutable", "imx"], ["IMX"], "Immutable zkEVM", "immutable-x", "Appchain"),
)


def find_chain_mapping(query: Optional[str]) -> Optional[ChainMapping]:
    """Exact match of the normalized query against names and symbols."""
    normalized = normalize_query(query)
    if not normalized:
        return None
    for mapping in CHAIN_MAPPINGS:
        if normalized in mapping.names or normalized in mapping.symbols:
            return mapping
    return None


def is_known_chain(query: Optional[str]) -> bool:
    return find_chain_mapping(query) is not None
