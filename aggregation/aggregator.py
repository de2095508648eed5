"""
Aggregator - Multi-source reconciliation.

============================================================
PURPOSE
============================================================
Turns a free-text query into one AggregatedRecord:

1. Resolve entity type (caller hint, registries, classifier)
2. Fan out to the providers for that type, under a global deadline
3. Scrape fallback when no provider returned anything
4. Pick the primary chain/protocol record
5. Enrich concurrently: TVL rule, price history, supply
6. Merge fields by fixed priority with source attribution

============================================================
FAILURE SEMANTICS
============================================================
Provider clients never raise; a failed provider is "no data".
The only request-level failure is NotFound, returned as None
when every provider and the scrape fallback came back empty.

============================================================
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from aggregation.config import AggregatorConfig
from aggregation.merge import DEFI, SCRAPER, build_record
from aggregation.models import AggregatedRecord, SourceBundle, TvlResolution
from aggregation.tvl_calculator import (
    calculate_changes,
    direct_deltas,
    empty_changes,
    extract_latest_tvl,
    has_any_change,
    merge_changes,
)
from core.clock import ClockProtocol, SystemClock
from data_sources.models import ChainRecord, MarketRecord, ProtocolRecord, ScrapedRecord
from data_sources.registry import ProviderSet
from identity.aliases import normalize_query, resolve_alias
from identity.blockchain_registry import find_blockchain
from identity.chain_mappings import find_chain_mapping
from identity.classifier import classify, should_reclassify
from identity.types import (
    AliasEntry,
    BlockchainEntry,
    ChainMapping,
    Classification,
    Confidence,
    DataHints,
    EntityType,
)


logger = logging.getLogger(__name__)

CallFactory = Callable[[], Awaitable[Any]]


def resolve_entity_type(
    query: str,
    explicit_type: Optional[EntityType] = None,
) -> Classification:
    """
    Final entity type for a query.

    A caller hint wins, except that an unset or ``token`` hint is
    overridden by a high-confidence chain/protocol verdict or a
    chain-mapping hit.
    """
    classification = classify(query)

    if explicit_type is not None and explicit_type != EntityType.TOKEN:
        if classification.entity_type == explicit_type:
            return classification
        return Classification(explicit_type, Confidence.HIGH, f"Caller requested {explicit_type.value}")

    if (
        classification.confidence == Confidence.HIGH
        and classification.entity_type in (EntityType.CHAIN, EntityType.PROTOCOL)
    ):
        return classification

    mapping = find_chain_mapping(query)
    if mapping is not None:
        return Classification(EntityType.CHAIN, Confidence.HIGH, f"Chain mapping hit '{mapping.key}'")

    if explicit_type == EntityType.TOKEN:
        return Classification(EntityType.TOKEN, Confidence.MEDIUM, "Caller requested token")

    return classification


def select_primary(
    entity_type: EntityType,
    registry_chain: bool,
    protocol: Optional[ProtocolRecord],
    chain: Optional[ChainRecord],
) -> str:
    """
    Which record feeds the metric-bearing fields.

    explicit type > registry-confirmed chain > protocol > chain > market
    """
    if entity_type == EntityType.CHAIN:
        return "chain" if chain is not None else "market"
    if entity_type == EntityType.PROTOCOL and protocol is not None:
        return "protocol"
    if registry_chain and chain is not None:
        return "chain"
    if protocol is not None:
        return "protocol"
    if chain is not None:
        return "chain"
    return "market"


class Aggregator:
    """
    Orchestrates providers for one query.

    Usage:
        aggregator = Aggregator(providers)
        record = await aggregator.aggregate("aave")
        if record is None:
            ...  # not found
    """

    def __init__(
        self,
        providers: ProviderSet,
        config: Optional[AggregatorConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._providers = providers
        self._config = config or AggregatorConfig()
        self._clock = clock or SystemClock()

    @property
    def config(self) -> AggregatorConfig:
        return self._config

    # ------------------------------------------------------------
    # entry point
    # ------------------------------------------------------------

    async def aggregate(
        self,
        query: str,
        explicit_type: Optional[EntityType] = None,
        force_refresh: bool = False,
    ) -> Optional[AggregatedRecord]:
        """
        Aggregate every source for a query.

        Returns:
            AggregatedRecord, or None when nothing was found anywhere
        """
        normalized = normalize_query(query)
        if not normalized:
            return None

        classification = resolve_entity_type(normalized, explicit_type)
        entity_type = classification.entity_type
        alias = resolve_alias(normalized)
        mapping = find_chain_mapping(normalized)
        registry = find_blockchain(normalized)

        logger.info(
            f"[aggregator] '{normalized}' -> {entity_type.value} "
            f"({classification.confidence.value}: {classification.reason})"
            f"{' [force refresh]' if force_refresh else ''}"
        )

        calls = self._plan_calls(normalized, entity_type, alias, mapping, registry, force_refresh)
        results = await self._gather_with_deadline(calls)
        protocol: Optional[ProtocolRecord] = results.get("protocol")
        chain: Optional[ChainRecord] = results.get("chain")
        market: Optional[MarketRecord] = results.get("market")

        logger.debug(
            f"[aggregator] providers: protocol={protocol is not None} "
            f"chain={chain is not None} market={market is not None}"
        )

        if protocol is None and chain is None and market is None:
            return await self._scrape_fallback(normalized, classification, alias, mapping, registry, force_refresh)

        if explicit_type is None and classification.confidence != Confidence.HIGH:
            classification = self._reclassify(normalized, classification, protocol, chain)
            entity_type = classification.entity_type

        registry_chain = mapping is not None or registry is not None
        primary = select_primary(entity_type, registry_chain, protocol, chain)

        if market is None:
            market = await self._follow_up_market(primary, protocol, chain, mapping, registry, force_refresh)

        tvl_task = self._resolve_tvl(normalized, primary, protocol, chain, force_refresh)
        history_task = self._fetch_price_history(market, force_refresh)
        supply_task = self._fetch_supply(market, protocol if primary == "protocol" else None, alias, force_refresh)
        (tvl, scrape), price_history, supply = await asyncio.gather(tvl_task, history_task, supply_task)

        bundle = SourceBundle(
            query=query,
            entity_type=entity_type,
            classification=classification,
            alias=alias,
            mapping=mapping,
            protocol=protocol,
            chain=chain,
            market=market,
            scrape=scrape,
            supply=supply,
            price_history=price_history,
            tvl=tvl,
            primary=primary,
        )
        record = build_record(bundle)
        logger.info(
            f"[aggregator] '{normalized}' merged: primary={primary} "
            f"price={record.price} tvl={record.tvl} sources={sorted(set(record.sources.values()))}"
        )
        return record

    # ------------------------------------------------------------
    # fan-out
    # ------------------------------------------------------------

    def _plan_calls(
        self,
        query: str,
        entity_type: EntityType,
        alias: Optional[AliasEntry],
        mapping: Optional[ChainMapping],
        registry: Optional[BlockchainEntry],
        force_refresh: bool,
    ) -> Dict[str, CallFactory]:
        """Provider calls for the resolved type. Chains never hit the protocol search and vice versa."""
        defillama = self._providers.defillama
        coingecko = self._providers.coingecko
        market_hint = alias.canonical_market_id if alias else None
        slug_hint = alias.canonical_chain_id if alias and alias.entity_type == EntityType.PROTOCOL else None

        if entity_type == EntityType.CHAIN:
            api_name, market_id = self._chain_target(alias, mapping, registry)

            async def find_chain() -> Optional[ChainRecord]:
                if api_name:
                    record = await defillama.search_chain_by_exact_name(api_name, force_refresh)
                    if record is not None:
                        return record
                return await defillama.search_chain(query, force_refresh)

            return {
                "chain": find_chain,
                "market": lambda: coingecko.search_coin(query, market_id or market_hint, force_refresh),
            }

        if entity_type == EntityType.PROTOCOL:
            return {
                "protocol": lambda: defillama.search_protocol(query, slug_hint, force_refresh),
                "market": lambda: coingecko.search_coin(query, market_hint, force_refresh),
            }

        return {
            "protocol": lambda: defillama.search_protocol(query, slug_hint, force_refresh),
            "chain": lambda: defillama.search_chain(query, force_refresh),
            "market": lambda: coingecko.search_coin(query, market_hint, force_refresh),
        }

    @staticmethod
    def _chain_target(
        alias: Optional[AliasEntry],
        mapping: Optional[ChainMapping],
        registry: Optional[BlockchainEntry],
    ) -> Tuple[Optional[str], Optional[str]]:
        """(chain API name, market id) from the curated tables."""
        if mapping is not None:
            return mapping.chain_api_name, mapping.market_api_id
        if registry is not None:
            return registry.defillama_name, registry.coingecko_id
        if alias is not None and alias.entity_type == EntityType.CHAIN:
            return None, alias.canonical_market_id
        return None, None

    async def _gather_with_deadline(self, calls: Dict[str, CallFactory]) -> Dict[str, Any]:
        """
        Run every call concurrently under the global deadline.

        On deadline the same calls are re-issued and all settled;
        whatever succeeds is kept. Exceptions become None.
        """
        names = list(calls)
        try:
            results = await asyncio.wait_for(
                asyncio.gather(*(calls[name]() for name in names), return_exceptions=True),
                timeout=self._config.deadline_seconds,
            )
        except asyncio.TimeoutError:
            logger.info(
                f"[aggregator] Deadline {self._config.deadline_seconds}s exceeded, "
                f"settling {names} individually"
            )
            results = await asyncio.gather(*(calls[name]() for name in names), return_exceptions=True)

        settled: Dict[str, Any] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.warning(f"[aggregator] {name} call failed: {result!r}")
                settled[name] = None
            else:
                settled[name] = result
        return settled

    # ------------------------------------------------------------
    # fallbacks and follow-ups
    # ------------------------------------------------------------

    async def _scrape_fallback(
        self,
        query: str,
        classification: Classification,
        alias: Optional[AliasEntry],
        mapping: Optional[ChainMapping],
        registry: Optional[BlockchainEntry],
        force_refresh: bool,
    ) -> Optional[AggregatedRecord]:
        logger.info(f"[aggregator] No provider data for '{query}', trying scrape fallback")
        scraper = self._providers.scraper

        scrape: Optional[ScrapedRecord] = None
        if classification.entity_type == EntityType.CHAIN:
            api_name, _ = self._chain_target(alias, mapping, registry)
            if api_name:
                scrape = await scraper.scrape_chain(api_name, force_refresh)
        if scrape is None or not scrape.tvl:
            scrape = await scraper.scrape_with_variations(query, force_refresh)

        if scrape is None or not scrape.tvl:
            logger.info(f"[aggregator] Nothing found for '{query}' (scrape included)")
            return None

        changes = calculate_changes(direct_deltas(scrape.change_1d, scrape.change_7d, scrape.change_1m))
        bundle = SourceBundle(
            query=query,
            entity_type=classification.entity_type,
            classification=classification,
            alias=alias,
            mapping=mapping,
            scrape=scrape,
            tvl=TvlResolution(
                tvl=scrape.tvl,
                source=SCRAPER,
                changes=changes,
                change_source=SCRAPER,
                chain_tvls=scrape.chain_tvls,
                chain_tvls_source=SCRAPER,
                scraped=True,
            ),
            primary="market",
        )
        return build_record(bundle)

    @staticmethod
    def _reclassify(
        query: str,
        classification: Classification,
        protocol: Optional[ProtocolRecord],
        chain: Optional[ChainRecord],
    ) -> Classification:
        """Let the shape of fetched data correct a weak verdict."""
        if protocol is not None:
            hints = DataHints(
                name=protocol.name,
                symbol=protocol.symbol,
                item_id=protocol.slug,
                chains=protocol.chains,
                category=protocol.category,
                tvl=protocol.tvl or (protocol.tvl_history[-1].value if protocol.tvl_history else None),
                prior_type=classification.entity_type,
            )
        elif chain is not None:
            hints = DataHints(
                name=chain.name,
                symbol=chain.symbol,
                category="chain",
                prior_type=classification.entity_type,
            )
        else:
            return classification

        fresh = classify(query, hints)
        corrected = should_reclassify(classification.entity_type, fresh)
        if corrected is None:
            return classification
        logger.info(f"[aggregator] '{query}' reclassified {classification.entity_type.value} -> {corrected.value}")
        return fresh

    async def _follow_up_market(
        self,
        primary: str,
        protocol: Optional[ProtocolRecord],
        chain: Optional[ChainRecord],
        mapping: Optional[ChainMapping],
        registry: Optional[BlockchainEntry],
        force_refresh: bool,
    ) -> Optional[MarketRecord]:
        """Market data by a known id when the search came back empty."""
        coin_id: Optional[str] = None
        if primary == "chain":
            coin_id = (
                (chain.gecko_id if chain else None)
                or (mapping.market_api_id if mapping else None)
                or (registry.coingecko_id if registry else None)
            )
        elif primary == "protocol" and protocol is not None:
            coin_id = protocol.gecko_id

        if not coin_id:
            return None
        logger.debug(f"[aggregator] Follow-up market fetch by id '{coin_id}'")
        return await self._providers.coingecko.fetch_coin(coin_id, force_refresh)

    async def _fetch_price_history(self, market: Optional[MarketRecord], force_refresh: bool):
        if market is None or not market.coin_id or not self._config.fetch_price_history:
            return None
        return await self._providers.coingecko.fetch_price_history(market.coin_id, force_refresh)

    async def _fetch_supply(
        self,
        market: Optional[MarketRecord],
        protocol: Optional[ProtocolRecord],
        alias: Optional[AliasEntry],
        force_refresh: bool,
    ):
        symbol = (
            (market.symbol if market else None)
            or (protocol.symbol if protocol else None)
            or (alias.symbol if alias else None)
        )
        if not symbol and market is None:
            return None
        return await self._providers.supply.fetch_supply(symbol, market, force_refresh)

    # ------------------------------------------------------------
    # TVL rule
    # ------------------------------------------------------------

    async def _resolve_tvl(
        self,
        query: str,
        primary: str,
        protocol: Optional[ProtocolRecord],
        chain: Optional[ChainRecord],
        force_refresh: bool,
    ) -> Tuple[TvlResolution, Optional[ScrapedRecord]]:
        if primary == "protocol" and protocol is not None:
            return await self._protocol_tvl(query, protocol, force_refresh)
        if primary == "chain" and chain is not None:
            return await self._chain_tvl(chain, force_refresh)
        return TvlResolution(changes=empty_changes()), None

    async def _protocol_tvl(
        self,
        query: str,
        protocol: ProtocolRecord,
        force_refresh: bool,
    ) -> Tuple[TvlResolution, Optional[ScrapedRecord]]:
        """
        Scrape first for allow-listed names, else the API value with a
        confirmatory scrape when it falls under the floor.
        """
        scraper = self._providers.scraper
        api_tvl = extract_latest_tvl(protocol.tvl_history, protocol.tvl, protocol.chain_tvls)
        api_changes = calculate_changes(
            direct_deltas(protocol.change_1d, protocol.change_7d, protocol.change_1m),
            protocol.tvl_history,
            now=self._clock.timestamp(),
        )
        scrape: Optional[ScrapedRecord] = None

        if self._config.prioritizes_scrape(query):
            scrape = await scraper.scrape_protocol(protocol.slug, force_refresh)
            if scrape is not None and scrape.tvl:
                logger.info(f"[aggregator] Priority scrape TVL for '{protocol.slug}': {scrape.tvl:,.0f}")
                scrape_changes = direct_deltas(scrape.change_1d, scrape.change_7d, scrape.change_1m)
                return TvlResolution(
                    tvl=scrape.tvl,
                    source=SCRAPER,
                    changes=merge_changes(scrape_changes, api_changes),
                    change_source=SCRAPER if has_any_change(scrape_changes) else DEFI,
                    chain_tvls=scrape.chain_tvls or protocol.chain_tvls,
                    chain_tvls_source=SCRAPER if scrape.chain_tvls else DEFI,
                    scraped=True,
                ), scrape

        resolution = TvlResolution(
            tvl=api_tvl,
            source=DEFI,
            changes=api_changes,
            change_source=DEFI,
            chain_tvls=protocol.chain_tvls,
            chain_tvls_source=DEFI,
        )

        if api_tvl is not None and api_tvl < self._config.low_tvl_floor:
            if scrape is None:
                logger.info(f"[aggregator] TVL {api_tvl:,.0f} below floor, confirming '{protocol.slug}' by scrape")
                scrape = await scraper.scrape_protocol(protocol.slug, force_refresh)
            if scrape is not None and scrape.tvl and scrape.tvl > api_tvl:
                resolution = TvlResolution(
                    tvl=scrape.tvl,
                    source=SCRAPER,
                    changes=api_changes,
                    change_source=DEFI,
                    chain_tvls=scrape.chain_tvls or protocol.chain_tvls,
                    chain_tvls_source=SCRAPER if scrape.chain_tvls else DEFI,
                    scraped=True,
                )

        return resolution, scrape

    async def _chain_tvl(
        self,
        chain: ChainRecord,
        force_refresh: bool,
    ) -> Tuple[TvlResolution, Optional[ScrapedRecord]]:
        """Chains prefer the rendered page; history fills the change windows."""
        defillama = self._providers.defillama
        scraper = self._providers.scraper

        if self._config.always_scrape_chains:
            scrape, series = await asyncio.gather(
                scraper.scrape_chain(chain.name, force_refresh),
                defillama.fetch_chain_tvl_history(chain.name, force_refresh),
            )
        else:
            scrape = None
            series = await defillama.fetch_chain_tvl_history(chain.name, force_refresh)
        series = series or ()

        direct = empty_changes()
        if scrape is not None and scrape.tvl:
            direct = direct_deltas(scrape.change_1d, scrape.change_7d, scrape.change_1m)
        changes = calculate_changes(direct, series, now=self._clock.timestamp())

        if scrape is not None and scrape.tvl:
            logger.info(f"[aggregator] Chain TVL for '{chain.name}' from scrape: {scrape.tvl:,.0f}")
            return TvlResolution(
                tvl=scrape.tvl,
                source=SCRAPER,
                changes=changes,
                change_source=SCRAPER if has_any_change(direct) else DEFI,
                chain_tvls=scrape.chain_tvls,
                chain_tvls_source=SCRAPER,
                scraped=True,
            ), scrape

        return TvlResolution(
            tvl=chain.tvl or extract_latest_tvl(series),
            source=DEFI,
            changes=changes,
            change_source=DEFI,
        ), None
