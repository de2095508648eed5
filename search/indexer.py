"""
Search Indexer.

============================================================
PURPOSE
============================================================
Builds a combined corpus of chains, protocols and tokens for
autocomplete and searches it with the fuzzy matcher.

============================================================
SOURCES
============================================================
1. Curated entries (blockchain registry, known aliases)
2. DefiLlama protocols
3. DefiLlama chains
4. CoinGecko market pages (top N x 250)
5. CoinGecko coin list (capped)

Entries are de-duplicated by lowercase id. On conflict the
entry with more populated fields wins and the other one fills
its gaps; aliases are unioned.

============================================================
LIFECYCLE
============================================================
The index is an immutable snapshot. A rebuild assembles a new
snapshot and swaps it in one assignment, so readers never see
a half-built index. Once the TTL passes, reads keep returning
the stale snapshot while a single background rebuild runs.

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from core.clock import ClockProtocol, SystemClock
from core.config import SearchConfig
from data_sources.models import MarketRecord, finite_or_none
from data_sources.registry import ProviderSet
from identity.aliases import KNOWN_ALIASES
from identity.blockchain_registry import BLOCKCHAIN_REGISTRY
from identity.classifier import classify, should_reclassify
from identity.types import Confidence, DataHints, EntityType
from search.fuzzy import ScoredMatch, fuzzy_search


logger = logging.getLogger(__name__)


SOURCE_DEFILLAMA = "defillama"
SOURCE_COINGECKO = "coingecko"

CHAIN_BOOST = 10
TVL_BOOSTS = ((1e9, 5), (1e8, 3))
RANK_BOOSTS = ((100, 5), (500, 3))
LOGO_BOOST = 2


# ============================================================
# INDEX ITEM
# ============================================================


@dataclass(frozen=True)
class SearchIndexItem:
    """One autocomplete candidate."""

    id: str
    name: str
    type: EntityType
    source: str
    symbol: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    logo: Optional[str] = None
    tvl: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    chains: Tuple[str, ...] = ()
    category: Optional[str] = None
    slug: Optional[str] = None

    @property
    def key(self) -> str:
        return self.id.lower()

    def populated_fields(self) -> int:
        count = 0
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and value != () and value != "":
                count += 1
        return count

    def hints(self) -> DataHints:
        return DataHints(
            name=self.name,
            symbol=self.symbol,
            item_id=self.id,
            chains=self.chains,
            category=self.category,
            tvl=self.tvl,
            prior_type=self.type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "type": self.type.value,
            "source": self.source,
            "logo": self.logo,
            "tvl": self.tvl,
            "marketCap": self.market_cap,
            "marketCapRank": self.market_cap_rank,
            "chains": list(self.chains),
            "category": self.category,
        }


def _aliases(*values: Optional[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for value in values:
        if value:
            lowered = value.lower()
            if lowered not in seen:
                seen.append(lowered)
    return tuple(seen)


def _slugify(name: str) -> str:
    return "-".join(name.lower().split())


# ============================================================
# SOURCE ADAPTERS
# ============================================================


def items_from_protocols(rows: Iterable[dict]) -> List[SearchIndexItem]:
    items = []
    for row in rows:
        name = row.get("name")
        if not isinstance(name, str) or not name:
            continue
        symbol = row.get("symbol") if isinstance(row.get("symbol"), str) and row.get("symbol") != "-" else None
        chains = tuple(c for c in (row.get("chains") or []) if isinstance(c, str))
        slug = row.get("slug") if isinstance(row.get("slug"), str) else None
        items.append(
            SearchIndexItem(
                id=slug or _slugify(name),
                name=name,
                symbol=symbol,
                type=EntityType.PROTOCOL,
                source=SOURCE_DEFILLAMA,
                aliases=_aliases(name, symbol, *(f"{name} {c}" for c in chains)),
                logo=row.get("logo") or None,
                tvl=finite_or_none(row.get("tvl")),
                chains=chains,
                category=row.get("category") or None,
                slug=slug,
            )
        )
    return items


def items_from_chains(rows: Iterable[dict]) -> List[SearchIndexItem]:
    items = []
    for row in rows:
        name = row.get("name")
        if not isinstance(name, str) or not name:
            continue
        symbol = row.get("tokenSymbol") or None
        gecko_id = row.get("gecko_id") or None
        items.append(
            SearchIndexItem(
                id=gecko_id or _slugify(name),
                name=name,
                symbol=symbol,
                type=EntityType.CHAIN,
                source=SOURCE_DEFILLAMA,
                aliases=_aliases(name, symbol, gecko_id),
                logo=row.get("chainLogo") or None,
                tvl=finite_or_none(row.get("tvl")),
                slug=_slugify(name),
            )
        )
    return items


def items_from_markets(records: Iterable[MarketRecord]) -> List[SearchIndexItem]:
    return [
        SearchIndexItem(
            id=record.coin_id,
            name=record.name,
            symbol=record.symbol,
            type=EntityType.TOKEN,
            source=SOURCE_COINGECKO,
            aliases=_aliases(record.name, record.symbol, record.coin_id),
            logo=record.logo,
            market_cap=record.market_cap,
            market_cap_rank=record.market_cap_rank,
        )
        for record in records
        if record.coin_id
    ]


def items_from_coin_list(rows: Iterable[dict], cap: int) -> List[SearchIndexItem]:
    items = []
    for row in rows:
        if len(items) >= cap:
            break
        coin_id, name = row.get("id"), row.get("name")
        if not coin_id or not name:
            continue
        symbol = row.get("symbol")
        items.append(
            SearchIndexItem(
                id=coin_id,
                name=name,
                symbol=symbol.upper() if symbol else None,
                type=EntityType.TOKEN,
                source=SOURCE_COINGECKO,
                aliases=_aliases(name, symbol, coin_id),
            )
        )
    return items


def curated_items() -> List[SearchIndexItem]:
    """Registry chains and alias entries the list endpoints may miss."""
    items = [
        SearchIndexItem(
            id=entry.id,
            name=entry.name,
            symbol=entry.symbol,
            type=EntityType.CHAIN,
            source=SOURCE_DEFILLAMA,
            aliases=_aliases(entry.name, entry.symbol, *sorted(entry.aliases)),
            logo=f"https://icons.llama.fi/{entry.id}.jpg",
            slug=(entry.defillama_name or entry.name).lower(),
        )
        for entry in BLOCKCHAIN_REGISTRY
    ]
    for alias in KNOWN_ALIASES:
        item_id = alias.canonical_market_id or alias.canonical_chain_id
        if not item_id:
            continue
        items.append(
            SearchIndexItem(
                id=item_id,
                name=alias.display_name,
                symbol=alias.symbol,
                type=alias.entity_type,
                source=SOURCE_DEFILLAMA if alias.entity_type == EntityType.PROTOCOL else SOURCE_COINGECKO,
                aliases=_aliases(alias.display_name, *sorted(alias.queries)),
                slug=alias.canonical_chain_id,
            )
        )
    return items


# ============================================================
# DE-DUPLICATION
# ============================================================


def merge_items(existing: SearchIndexItem, incoming: SearchIndexItem) -> SearchIndexItem:
    """
    Field-level merge of two entries sharing an id.

    The entry with more populated fields is the base (ties keep
    existing); the other only fills fields the base lacks.
    """
    if incoming.populated_fields() > existing.populated_fields():
        base, other = incoming, existing
    else:
        base, other = existing, incoming

    updates: Dict[str, Any] = {}
    for f in fields(base):
        if f.name in ("id", "type", "source", "aliases"):
            continue
        value = getattr(base, f.name)
        if value is None or value == () or value == "":
            filler = getattr(other, f.name)
            if filler is not None and filler != ():
                updates[f.name] = filler
    updates["aliases"] = _aliases(*base.aliases, *other.aliases)
    return replace(base, **updates)


def _classified(item: SearchIndexItem) -> SearchIndexItem:
    verdict = classify(item.name, item.hints())
    if verdict.confidence == Confidence.HIGH and verdict.entity_type != item.type:
        logger.debug(f"[indexer] {item.name}: {item.type.value} -> {verdict.entity_type.value} ({verdict.reason})")
        return replace(item, type=verdict.entity_type)
    return item


def _reclassified(item: SearchIndexItem) -> SearchIndexItem:
    new_type = should_reclassify(item.type, classify(item.name, item.hints()))
    if new_type is not None:
        logger.debug(f"[indexer] {item.name}: {item.type.value} -> {new_type.value} after merge")
        return replace(item, type=new_type)
    return item


def deduplicate(items: Iterable[SearchIndexItem]) -> List[SearchIndexItem]:
    """Collapse entries by lowercase id, keeping first-seen order."""
    unique: Dict[str, SearchIndexItem] = {}
    for item in items:
        if not item.id:
            continue
        existing = unique.get(item.key)
        if existing is None:
            unique[item.key] = _classified(item)
        else:
            unique[item.key] = _reclassified(merge_items(existing, item))
    return list(unique.values())


# ============================================================
# RANKING
# ============================================================


def ranking_boost(item: SearchIndexItem) -> int:
    boost = 0
    if item.type == EntityType.CHAIN:
        boost += CHAIN_BOOST
    for floor, value in TVL_BOOSTS:
        if item.tvl and item.tvl > floor:
            boost += value
            break
    for ceiling, value in RANK_BOOSTS:
        if item.market_cap_rank and item.market_cap_rank <= ceiling:
            boost += value
            break
    if item.logo:
        boost += LOGO_BOOST
    return boost


def rank_matches(matches: Iterable[ScoredMatch[SearchIndexItem]], limit: int) -> List[ScoredMatch[SearchIndexItem]]:
    boosted = [ScoredMatch(item=m.item, score=m.score + ranking_boost(m.item)) for m in matches]
    boosted.sort(key=lambda m: m.score, reverse=True)
    return boosted[:limit]


# ============================================================
# SNAPSHOT + INDEXER
# ============================================================


@dataclass(frozen=True)
class SearchIndex:
    items: Tuple[SearchIndexItem, ...] = ()
    built_at: float = 0.0

    def stats(self) -> Dict[str, int]:
        counts = {t.value: 0 for t in EntityType}
        for item in self.items:
            counts[item.type.value] += 1
        return {"total": len(self.items), **counts}


class SearchIndexer:
    """
    Owns the search index snapshot and its rebuilds.

    Usage:
        indexer = SearchIndexer(providers)
        matches = await indexer.search("eth", limit=10)
    """

    def __init__(
        self,
        providers: ProviderSet,
        config: Optional[SearchConfig] = None,
        clock: Optional[ClockProtocol] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._providers = providers
        self._config = config or SearchConfig()
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._snapshot: Optional[SearchIndex] = None
        self._rebuild_task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Optional[SearchIndex]:
        return self._snapshot

    def is_stale(self) -> bool:
        if self._snapshot is None:
            return True
        age = self._clock.timestamp() - self._snapshot.built_at
        return age >= self._config.index_ttl_seconds

    # ------------------------------------------------------------
    # build
    # ------------------------------------------------------------

    async def _market_items(self) -> List[SearchIndexItem]:
        c = self._config
        items: List[SearchIndexItem] = []
        for page in range(1, c.market_pages + 1):
            records = await self._providers.coingecko.fetch_markets_page(page, c.market_page_size)
            if records:
                items.extend(items_from_markets(records))
                logger.debug(f"[indexer] market page {page}/{c.market_pages}: {len(records)} coins")
            if page < c.market_pages:
                await self._sleep(c.market_page_delay_seconds)
        return items

    async def _protocol_items(self) -> List[SearchIndexItem]:
        return items_from_protocols(await self._providers.defillama.fetch_protocols() or [])

    async def _chain_items(self) -> List[SearchIndexItem]:
        return items_from_chains(await self._providers.defillama.fetch_chains() or [])

    async def _coin_list_items(self) -> List[SearchIndexItem]:
        rows = await self._providers.coingecko.fetch_coin_list() or []
        return items_from_coin_list(rows, self._config.coin_list_cap)

    async def build_index(self) -> SearchIndex:
        """Fetch every source concurrently and assemble a new snapshot."""
        started = self._clock.timestamp()
        results = await asyncio.gather(
            self._protocol_items(),
            self._chain_items(),
            self._market_items(),
            self._coin_list_items(),
            return_exceptions=True,
        )

        combined: List[SearchIndexItem] = list(curated_items())
        for label, result in zip(("protocols", "chains", "markets", "coin-list"), results):
            if isinstance(result, BaseException):
                logger.warning(f"[indexer] {label} source failed: {result}")
                continue
            combined.extend(result)

        index = SearchIndex(items=tuple(deduplicate(combined)), built_at=self._clock.timestamp())
        elapsed = index.built_at - started
        logger.info(f"[indexer] index built: {index.stats()} in {elapsed:.2f}s")
        return index

    async def _rebuild(self) -> SearchIndex:
        index = await self.build_index()
        self._snapshot = index
        return index

    def _ensure_rebuild(self) -> asyncio.Task:
        if self._rebuild_task is None or self._rebuild_task.done():
            self._rebuild_task = asyncio.ensure_future(self._rebuild())
        return self._rebuild_task

    # ------------------------------------------------------------
    # read
    # ------------------------------------------------------------

    async def get_index(self) -> SearchIndex:
        """Current snapshot; builds on first use, refreshes in the background once stale."""
        if self._snapshot is None:
            return await self._ensure_rebuild()
        if self.is_stale():
            self._ensure_rebuild()
        return self._snapshot

    async def rebuild(self) -> SearchIndex:
        """Force a rebuild and wait for it."""
        logger.info("[indexer] forced rebuild")
        return await self._ensure_rebuild()

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[ScoredMatch[SearchIndexItem]]:
        index = await self.get_index()
        limit = self._config.default_limit if limit is None else limit
        threshold = self._config.threshold if threshold is None else threshold
        matches = fuzzy_search(query, index.items, threshold)
        return rank_matches(matches, limit)

    async def close(self) -> None:
        if self._rebuild_task is not None and not self._rebuild_task.done():
            self._rebuild_task.cancel()
            try:
                await self._rebuild_task
            except asyncio.CancelledError:
                pass
