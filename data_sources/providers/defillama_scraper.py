"""
DefiLlama Scraper - HTML fallback for TVL.

============================================================
PURPOSE
============================================================
Last-resort source when the APIs return nothing, and a freshness
correction for TVL of major chains and venues.

============================================================
EXTRACTION ORDER
============================================================
1. Embedded page JSON:
       <script id="__NEXT_DATA__" type="application/json">...</script>
   -> props.pageProps (tvl series or number, change_1d/7d/1m,
      category, currentChainTvls, mcap)
2. Regex over raw HTML for formatted figures ("TVL $6.28B")

============================================================
"""

import json
import logging
import re
from typing import List, Optional
from urllib.parse import quote

from data_sources.base import BaseProviderClient
from data_sources.models import (
    ScrapedRecord,
    filter_chain_tvls,
    finite_or_none,
    positive_or_none,
)
from identity.aliases import normalize_query


logger = logging.getLogger(__name__)

NEXT_DATA_PATTERN = re.compile(
    r'<script id="__NEXT_DATA__" type="application/json">(.*?)</script>',
    re.DOTALL,
)

TVL_TEXT_PATTERNS = (
    re.compile(r"TVL[:\s]*\$?([\d.]+[KMBTkmbt]?)", re.IGNORECASE),
    re.compile(r"Total Value Locked[:\s]*\$?([\d.]+[KMBTkmbt]?)", re.IGNORECASE),
    re.compile(r'"tvl"[:\s]*([\d.]+)', re.IGNORECASE),
)

MULTIPLIERS = {
    "K": 1e3,
    "M": 1e6,
    "B": 1e9,
    "T": 1e12,
}


def parse_formatted_number(text: Optional[str]) -> Optional[float]:
    """'$6.28B' -> 6.28e9. None if unparseable."""
    if not text or not isinstance(text, str):
        return None
    cleaned = re.sub(r"[$,\s]", "", text)
    if not cleaned:
        return None
    multiplier = 1.0
    suffix = cleaned[-1].upper()
    if suffix in MULTIPLIERS:
        multiplier = MULTIPLIERS[suffix]
        cleaned = cleaned[:-1]
    try:
        return finite_or_none(float(cleaned) * multiplier)
    except ValueError:
        return None


def extract_page_props(html: str) -> Optional[dict]:
    match = NEXT_DATA_PATTERN.search(html or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(1))
    except ValueError as e:
        logger.debug(f"[defillama-scraper] Embedded JSON unparseable: {e}")
        return None
    props = data.get("props") if isinstance(data, dict) else None
    page_props = props.get("pageProps") if isinstance(props, dict) else None
    return page_props if isinstance(page_props, dict) else None


def _tvl_from_props(props: dict) -> Optional[float]:
    raw = props.get("tvl")
    if isinstance(raw, list) and raw:
        latest = raw[-1]
        if isinstance(latest, dict):
            return positive_or_none(latest.get("totalLiquidityUSD"))
        return None
    return positive_or_none(raw)


def parse_page(html: str, url: str) -> Optional[ScrapedRecord]:
    """Structured extraction first, regex fallback second."""
    props = extract_page_props(html)
    if props is not None:
        tvl = _tvl_from_props(props)
        record = ScrapedRecord(
            source_url=url,
            tvl=tvl,
            name=props.get("name") if isinstance(props.get("name"), str) else None,
            category=props.get("category") if isinstance(props.get("category"), str) else None,
            change_1d=finite_or_none(props.get("change_1d")),
            change_7d=finite_or_none(props.get("change_7d")),
            change_1m=finite_or_none(props.get("change_1m")),
            chain_tvls=filter_chain_tvls(props.get("currentChainTvls")),
            mcap=positive_or_none(props.get("mcap")),
            structured=True,
        )
        if record.tvl is not None:
            return record

    for pattern in TVL_TEXT_PATTERNS:
        match = pattern.search(html or "")
        if match:
            tvl = positive_or_none(parse_formatted_number(match.group(1)))
            if tvl is not None:
                return ScrapedRecord(source_url=url, tvl=tvl, structured=False)

    return None


def slug_variations(query: str) -> List[str]:
    normalized = normalize_query(query)
    if not normalized:
        return []
    variations: List[str] = []
    for candidate in (
        normalized,
        re.sub(r"\s+", "-", normalized),
        re.sub(r"\s+", "", normalized),
        re.sub(r"[^a-z0-9]", "-", normalized),
    ):
        if candidate and candidate not in variations:
            variations.append(candidate)
    return variations


class DefiLlamaScraper(BaseProviderClient):
    """Scrapes rendered DefiLlama pages."""

    BASE_URL = "https://defillama.com"

    @property
    def name(self) -> str:
        return "defillama-scraper"

    async def _scrape(self, path: str, force_refresh: bool) -> Optional[ScrapedRecord]:
        url = self._url(path)

        async def fetch_and_parse() -> Optional[dict]:
            html = await self.fetch_text(path)
            record = parse_page(html, url)
            return record.to_dict() if record else None

        data = await self._cache.get_or_fetch(
            f"{self.name}:{path}",
            fetch_and_parse,
            ttl=self._ttl.scrape_ttl,
            force_refresh=force_refresh,
        )
        return ScrapedRecord.from_dict(data) if data else None

    async def scrape_protocol(self, slug: str, force_refresh: bool = False) -> Optional[ScrapedRecord]:
        return await self._guard(
            lambda: self._scrape(f"/protocol/{quote(slug)}", force_refresh),
            f"scrape_protocol({slug})",
        )

    async def scrape_chain(self, name: str, force_refresh: bool = False) -> Optional[ScrapedRecord]:
        return await self._guard(
            lambda: self._scrape(f"/chain/{quote(name)}", force_refresh),
            f"scrape_chain({name})",
        )

    async def scrape_with_variations(self, query: str, force_refresh: bool = False) -> Optional[ScrapedRecord]:
        """Try protocol pages for each slug spelling until one yields TVL."""
        for variation in slug_variations(query):
            record = await self.scrape_protocol(variation, force_refresh)
            if record is not None and record.tvl:
                logger.info(f"[{self.name}] Scrape hit for '{query}' at /protocol/{variation}")
                return record
        return None
