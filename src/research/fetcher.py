"""Background research lookups via Wikipedia and DuckDuckGo."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from src.config import Settings, settings
from src.pipeline_config import ResearchProvider
from src.processing.filters import word_overlap_similarity
from src.research.models import ResearchResult

logger = logging.getLogger(__name__)

WIKIPEDIA_SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary/{title}"
DUCKDUCKGO_URL = "https://api.duckduckgo.com/"


class ResearchUnavailableError(Exception):
    """Every lookup request failed, so no provider could be reached."""


def _json_object(r: httpx.Response) -> dict[str, Any] | None:
    """Decode a JSON object body, or ``None`` when the payload is not an object.

    Raises ``ValueError`` when the body is not JSON at all.
    """
    data = r.json()
    return data if isinstance(data, dict) else None


def _nested(data: dict[str, Any], *keys: str) -> Any:
    """Follow *keys* through nested objects, ``None`` if any level is missing."""
    value: Any = data
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


async def fetch_wikipedia_summary(client: httpx.AsyncClient, topic: str) -> ResearchResult | None:
    """Look up the Wikipedia page summary for *topic*.

    Returns ``None`` when there is no page or it is a disambiguation page.
    Raises ``httpx.HTTPError`` for transport failures and non-404 errors, and
    ``ValueError`` when the body is not JSON.
    """
    title = quote(topic.strip().replace(" ", "_"), safe="")
    r = await client.get(WIKIPEDIA_SUMMARY_URL.format(title=title))
    if r.status_code == 404:
        return None
    r.raise_for_status()

    data = _json_object(r)
    if data is None or data.get("type") == "disambiguation":
        return None
    extract = _text(data.get("extract"))
    if not extract:
        return None

    url = _text(_nested(data, "content_urls", "desktop", "page")) or None
    return ResearchResult(
        topic=topic,
        summary=extract,
        source=ResearchProvider.WIKIPEDIA.value,
        url=url,
        title=_text(data.get("title")) or None,
    )


async def fetch_duckduckgo_answer(client: httpx.AsyncClient, topic: str) -> ResearchResult | None:
    """Look up the DuckDuckGo Instant Answer for *topic*.

    Falls back to the first related topic when there is no abstract.
    """
    r = await client.get(
        DUCKDUCKGO_URL,
        params={"q": topic, "format": "json", "no_html": "1", "skip_disambig": "1"},
    )
    r.raise_for_status()
    data = _json_object(r)
    if data is None:
        return None

    abstract = _text(data.get("AbstractText"))
    if abstract:
        return ResearchResult(
            topic=topic,
            summary=abstract,
            source=ResearchProvider.DUCKDUCKGO.value,
            url=_text(data.get("AbstractURL")) or None,
            title=_text(data.get("Heading")) or None,
        )

    related_topics = data.get("RelatedTopics")
    if not isinstance(related_topics, list):
        return None
    for related in related_topics:
        if not isinstance(related, dict):
            continue
        text = _text(related.get("Text"))
        if text:
            return ResearchResult(
                topic=topic,
                summary=text,
                source=ResearchProvider.DUCKDUCKGO.value,
                url=_text(related.get("FirstURL")) or None,
            )
    return None


_PROVIDERS = {
    ResearchProvider.WIKIPEDIA: fetch_wikipedia_summary,
    ResearchProvider.DUCKDUCKGO: fetch_duckduckgo_answer,
}


class WebResearchFetcher:
    """Fetch one short summary per topic from the configured providers.

    Providers are tried in order until one returns a summary.  Topics already
    covered by ``prior_results`` are skipped, and results are ordered by how
    well they overlap with the live conversation.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        providers: list[str] | None = None,
        max_results: int | None = None,
        config: Settings = settings,
    ) -> None:
        self.providers = [ResearchProvider(p) for p in (providers or config.research_providers)]
        self.max_results = max_results if max_results is not None else config.research_max_results
        self.client = client or httpx.AsyncClient(
            timeout=config.research_timeout_seconds,
            headers={"User-Agent": config.research_user_agent},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch_research_summaries(
        self,
        topics: list[str],
        live_context: str,
        prior_results: list[ResearchResult],
    ) -> list[ResearchResult]:
        """Research *topics* and return summaries ranked by relevance.

        Args:
            topics: Candidate topics, most important first.
            live_context: Text the speaker is saying right now.
            prior_results: Recent results; their topics are not looked up again.

        Returns:
            Up to ``max_results`` summaries.

        Raises:
            ResearchUnavailableError: If every request failed.
        """
        seen = {r.topic.casefold() for r in prior_results}
        pending: list[str] = []
        for topic in topics:
            key = topic.casefold()
            if key in seen:
                continue
            seen.add(key)
            pending.append(topic)
        pending = pending[: self.max_results]
        if not pending:
            return []

        results: list[ResearchResult] = []
        attempts = 0
        failures = 0
        for topic in pending:
            for provider in self.providers:
                attempts += 1
                try:
                    result = await _PROVIDERS[provider](self.client, topic)
                except (httpx.HTTPError, ValueError) as exc:
                    failures += 1
                    logger.warning("%s lookup failed for %r: %s", provider.value, topic, exc)
                    continue
                if result is not None:
                    results.append(result)
                    break

        if attempts and failures == attempts:
            raise ResearchUnavailableError(f"All {attempts} research request(s) failed")

        if live_context:
            # sorted() is stable, so equally relevant results keep topic order
            results = sorted(
                results,
                key=lambda r: word_overlap_similarity(live_context, f"{r.topic} {r.summary}"),
                reverse=True,
            )
        return results
