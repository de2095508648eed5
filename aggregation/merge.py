"""
Field Merge - Ordered resolvers per output field.

============================================================
HOW IT WORKS
============================================================
Each output field has an ordered list of (source, extractor)
pairs. Extractors read a SourceBundle and return a value or None.
The first non-null value wins and its source is recorded for
attribution. A source is either a fixed provider name or a
callable naming the provider from the bundle.

Priorities:
    name / symbol / logo   market data > chain/protocol > alias > query
    category               alias > provider category > inferred type
    price / caps / volume  market data only
    supply                 supply helper > market data
    price changes          market data only

TVL, its change windows and the chain breakdown are resolved by
the aggregator (TvlResolution) and copied in.

============================================================
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from aggregation.models import AggregatedRecord, PRICE_CHANGE_WINDOWS, SourceBundle
from aggregation.tvl_calculator import empty_changes
from data_sources.models import finite_or_none, positive_or_none
from identity.classifier import infer_category


Extractor = Callable[[SourceBundle], Any]
SourceName = Union[str, Callable[[SourceBundle], str]]

MARKET = "coingecko"
DEFI = "defillama"
SCRAPER = "defillama-scraper"
ALIAS = "alias"
QUERY = "query"
INFERRED = "inferred"


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


@dataclass(frozen=True)
class FieldResolver:
    """Ordered candidates for one output field."""

    field: str
    candidates: Tuple[Tuple[SourceName, Extractor], ...]

    def resolve(self, bundle: SourceBundle) -> Tuple[Any, Optional[str]]:
        for source, extractor in self.candidates:
            value = extractor(bundle)
            if _present(value):
                return value, source(bundle) if callable(source) else source
        return None, None


# ============================================================
# EXTRACTORS
# ============================================================

def _market(attr: str) -> Extractor:
    return lambda b: getattr(b.market, attr) if b.market else None


def _defi(attr: str) -> Extractor:
    return lambda b: getattr(b.defi, attr, None) if b.defi is not None else None


def _alias(attr: str) -> Extractor:
    return lambda b: getattr(b.alias, attr) if b.alias else None


def _supply(attr: str) -> Extractor:
    return lambda b: positive_or_none(getattr(b.supply, attr)) if b.supply else None


def _upper(extractor: Extractor) -> Extractor:
    def wrapped(bundle: SourceBundle) -> Optional[str]:
        value = extractor(bundle)
        return value.upper() if isinstance(value, str) and value else None
    return wrapped


def _provider_category(bundle: SourceBundle) -> Tuple[Optional[str], Optional[str]]:
    """(category, source) from the first provider that reports one."""
    if bundle.primary == "protocol" and bundle.protocol is not None and bundle.protocol.category:
        return bundle.protocol.category, DEFI
    if bundle.scrape is not None and bundle.scrape.category:
        return bundle.scrape.category, SCRAPER
    if bundle.market is not None and bundle.market.categories:
        return bundle.market.categories[0], MARKET
    return None, None


def _price_change(attr: str) -> Extractor:
    return lambda b: finite_or_none(getattr(b.market, attr)) if b.market else None


# ============================================================
# RESOLVERS
# ============================================================

RESOLVERS: Dict[str, FieldResolver] = {
    "name": FieldResolver("name", (
        (MARKET, _market("name")),
        (DEFI, _defi("name")),
        (SCRAPER, lambda b: b.scrape.name if b.scrape else None),
        (ALIAS, _alias("display_name")),
        (QUERY, lambda b: b.query.strip()),
    )),
    "symbol": FieldResolver("symbol", (
        (MARKET, _upper(_market("symbol"))),
        (DEFI, _upper(_defi("symbol"))),
        (ALIAS, _upper(_alias("symbol"))),
        (QUERY, lambda b: b.query.strip().upper()),
    )),
    "logo": FieldResolver("logo", (
        (MARKET, _market("logo")),
        (DEFI, _defi("logo")),
    )),
    "category": FieldResolver("category", (
        (ALIAS, lambda b: b.alias.category if b.alias and b.alias.entity_type == b.entity_type else None),
        (lambda b: _provider_category(b)[1], lambda b: _provider_category(b)[0]),
        (INFERRED, lambda b: infer_category(b.entity_type)),
    )),
    "price": FieldResolver("price", ((MARKET, _market("price")),)),
    "marketCap": FieldResolver("marketCap", ((MARKET, _market("market_cap")),)),
    "fdv": FieldResolver("fdv", ((MARKET, _market("fdv")),)),
    "volume24h": FieldResolver("volume24h", ((MARKET, _market("volume_24h")),)),
    "circulatingSupply": FieldResolver("circulatingSupply", (
        (lambda b: b.supply.source, _supply("circulating")),
        (MARKET, _market("circulating_supply")),
    )),
    "totalSupply": FieldResolver("totalSupply", (
        (lambda b: b.supply.source, _supply("total")),
        (MARKET, _market("total_supply")),
    )),
    "maxSupply": FieldResolver("maxSupply", (
        (lambda b: b.supply.source, _supply("max_supply")),
        (MARKET, _market("max_supply")),
    )),
}

PRICE_CHANGE_RESOLVERS: Dict[str, FieldResolver] = {
    window: FieldResolver(f"priceChange.{window}", ((MARKET, _price_change(attr)),))
    for window, attr in zip(
        PRICE_CHANGE_WINDOWS,
        ("price_change_24h", "price_change_7d", "price_change_30d", "price_change_1y"),
    )
}


def resolve_fields(
    bundle: SourceBundle,
    resolvers: Dict[str, FieldResolver] = RESOLVERS,
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Resolve every field; returns (values, field -> source)."""
    values: Dict[str, Any] = {}
    sources: Dict[str, str] = {}
    for key, resolver in resolvers.items():
        value, source = resolver.resolve(bundle)
        values[key] = value
        if source is not None:
            sources[key] = source
    return values, sources


# ============================================================
# RECORD
# ============================================================

def _urls(bundle: SourceBundle) -> Dict[str, str]:
    urls: Dict[str, str] = {}
    if bundle.market is not None and bundle.market.url:
        urls[MARKET] = bundle.market.url
    if bundle.protocol is not None and bundle.protocol.url:
        urls[DEFI] = bundle.protocol.url
    elif bundle.chain is not None and bundle.chain.url:
        urls[DEFI] = bundle.chain.url
    if bundle.scrape is not None and bundle.scrape.source_url:
        urls[SCRAPER] = bundle.scrape.source_url
    return urls


def _chains(bundle: SourceBundle) -> Tuple[str, ...]:
    if bundle.primary == "protocol" and bundle.protocol is not None and bundle.protocol.chains:
        return bundle.protocol.chains
    if bundle.tvl.chain_tvls:
        return tuple(bundle.tvl.chain_tvls)
    return ()


def build_record(bundle: SourceBundle) -> AggregatedRecord:
    """Merge a bundle into the final record."""
    values, sources = resolve_fields(bundle)

    price_change: Dict[str, Optional[float]] = {}
    for window, resolver in PRICE_CHANGE_RESOLVERS.items():
        value, source = resolver.resolve(bundle)
        price_change[window] = value
        if source is not None:
            sources.setdefault("priceChange", source)

    tvl = bundle.tvl
    if tvl.tvl is not None and tvl.source:
        sources["tvl"] = tvl.source
    if tvl.change_source and any(v is not None for v in tvl.changes.values()):
        sources["tvlChange"] = tvl.change_source
    if tvl.chain_tvls and tvl.chain_tvls_source:
        sources["chainTvls"] = tvl.chain_tvls_source
    if bundle.price_history is not None:
        sources["priceHistory"] = MARKET

    return AggregatedRecord(
        name=values["name"],
        symbol=values["symbol"],
        category=values["category"],
        entity_type=bundle.entity_type,
        logo=values["logo"],
        price=values["price"],
        market_cap=values["marketCap"],
        fdv=values["fdv"],
        volume_24h=values["volume24h"],
        circulating_supply=values["circulatingSupply"],
        total_supply=values["totalSupply"],
        max_supply=values["maxSupply"],
        tvl=tvl.tvl,
        tvl_change={**empty_changes(), **tvl.changes},
        price_change=price_change,
        price_history=bundle.price_history,
        chain_tvls=tvl.chain_tvls,
        chains=_chains(bundle),
        sources=sources,
        urls=_urls(bundle),
        scraped=tvl.scraped,
        classification=bundle.classification,
    )
