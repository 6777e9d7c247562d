"""Replay a transcript file through the conversation processor, printing events as JSON lines."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.models import serialize_event
from src.config import settings
from src.extraction.extractor import get_topic_extractor
from src.pipeline_config import ProcessorConfig
from src.processing.events import CallbackListener
from src.processing.filters import clean_transcript_line
from src.processing.processor import ConversationProcessor
from src.research.fetcher import WebResearchFetcher
from src.research.models import ResearchResult


class NoResearch:
    """Research fetcher that never looks anything up."""

    async def fetch_research_summaries(
        self,
        topics: list[str],
        live_context: str,
        prior_results: list[ResearchResult],
    ) -> list[ResearchResult]:
        return []


def _print_event(event: object) -> None:
    print(json.dumps(serialize_event(event)), flush=True)  # type: ignore[arg-type]


async def replay(
    lines: list[str],
    delay: float,
    provider: str | None,
    research: bool,
    config: ProcessorConfig,
    drain_timeout: float | None,
) -> bool:
    fetcher = WebResearchFetcher() if research else NoResearch()
    processor = ConversationProcessor(
        extractor=get_topic_extractor(provider),
        fetcher=fetcher,
        config=config,
    )
    processor.events.subscribe(
        CallbackListener(
            on_chunk=_print_event,
            on_topics=_print_event,
            on_research=_print_event,
            on_error=_print_event,
        )
    )

    processor.start_session()
    try:
        for raw in lines:
            line = clean_transcript_line(raw.rstrip("\n"))
            if line is None:
                continue
            processor.add_fragment(line)
            if delay:
                await asyncio.sleep(delay)
        return await processor.end_session(timeout=drain_timeout)
    finally:
        if isinstance(fetcher, WebResearchFetcher):
            await fetcher.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("transcript", help="Transcript text file, one fragment per line ('-' for stdin)")
    parser.add_argument("--delay", type=float, default=0.5, help="Seconds between fragments")
    parser.add_argument("--provider", choices=["anthropic", "openai"], default=None)
    parser.add_argument("--no-research", action="store_true", help="Skip research lookups")
    parser.add_argument("--min-words", type=int, default=settings.min_words_per_chunk)
    parser.add_argument("--idle-timeout-ms", type=int, default=settings.idle_timeout_ms)
    parser.add_argument("--cycle-timeout-ms", type=int, default=settings.cycle_timeout_ms)
    parser.add_argument("--drain-timeout", type=float, default=settings.session_drain_timeout_seconds)
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.transcript == "-":
        lines = sys.stdin.readlines()
    else:
        lines = Path(args.transcript).read_text(encoding="utf-8").splitlines()

    config = replace(
        ProcessorConfig.from_settings(settings),
        min_words_per_chunk=args.min_words,
        idle_timeout_ms=args.idle_timeout_ms,
        cycle_timeout_ms=args.cycle_timeout_ms,
    )

    drained = asyncio.run(
        replay(
            lines,
            delay=args.delay,
            provider=args.provider,
            research=not args.no_research,
            config=config,
            drain_timeout=args.drain_timeout,
        )
    )
    if not drained:
        print("Timed out waiting for enrichment; pending chunks were discarded.", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
