"""LLM-powered extraction of topics, questions, and terms from transcript chunks."""

from __future__ import annotations

import json
import logging
from typing import Any

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from src.config import Settings, settings
from src.extraction.models import TopicResult
from src.pipeline_config import LLMProvider

logger = logging.getLogger(__name__)

# Tool definition for Claude structured output
TOPICS_TOOL: dict[str, Any] = {
    "name": "store_topics",
    "description": (
        "Store the topics, questions, and terms found in a conversation excerpt. "
        "Call this once with everything worth researching."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "topics": {
                "type": "array",
                "description": "1-3 main topics or concepts discussed (short phrases).",
                "items": {"type": "string"},
            },
            "questions": {
                "type": "array",
                "description": "Questions asked or implied, if any.",
                "items": {"type": "string"},
            },
            "terms": {
                "type": "array",
                "description": "Technical terms or concepts that might need explanation.",
                "items": {"type": "string"},
            },
        },
        "required": ["topics", "questions", "terms"],
    },
}

SYSTEM_PROMPT = (
    "You are analyzing a live conversation transcript. Extract the main topics, "
    "questions, and unknown terms that would benefit from research.\n\n"
    "Be selective - only extract truly important topics worth researching. "
    "Return empty lists when the excerpt is small talk or filler."
)

JSON_INSTRUCTIONS = (
    "Respond with a JSON object containing:\n"
    '1. "topics": array of 1-3 main topics or concepts discussed (short phrases)\n'
    '2. "questions": array of any questions asked or implied (if any)\n'
    '3. "terms": array of technical terms or concepts that might need explanation\n\n'
    'Example response:\n{"topics": ["machine learning algorithms", "neural networks"], '
    '"questions": ["How does backpropagation work?"], '
    '"terms": ["gradient descent", "loss function"]}'
)


def build_user_prompt(text: str) -> str:
    return f'Conversation transcript:\n"{text}"'


def _clean_list(value: Any) -> list[str]:
    """Keep non-blank strings, stripped; anything that isn't a list becomes []."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def topics_from_dict(data: dict[str, Any]) -> TopicResult:
    return TopicResult(
        topics=_clean_list(data.get("topics")),
        questions=_clean_list(data.get("questions")),
        terms=_clean_list(data.get("terms")),
    )


def parse_topics_json(raw: str | None) -> TopicResult:
    """Parse a JSON completion into a TopicResult.

    Malformed or non-object JSON yields an empty result rather than an error,
    so one garbled completion costs a single chunk's topics and nothing more.
    """
    if not raw:
        return TopicResult()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Failed to parse topics response: %.100s", raw)
        return TopicResult()
    if not isinstance(data, dict):
        logger.warning("Topics response is not a JSON object: %.100s", raw)
        return TopicResult()
    return topics_from_dict(data)


def _parse_tool_response(response: Any) -> TopicResult:
    """Parse the Claude tool_use response into a TopicResult."""
    for block in response.content:
        if block.type != "tool_use":
            continue
        if block.name != "store_topics":
            continue

        data = block.input
        if isinstance(data, str):
            data = json.loads(data)
        return topics_from_dict(data)

    return TopicResult()


class AnthropicTopicExtractor:
    """Topic extraction with Claude tool use."""

    def __init__(self, client: AsyncAnthropic | None = None, config: Settings = settings) -> None:
        self.config = config
        self.client = client or AsyncAnthropic(api_key=config.anthropic_api_key)

    async def aclose(self) -> None:
        await self.client.close()

    async def extract_topics(self, text: str) -> TopicResult:
        """Extract topics, questions, and terms from a chunk using Claude.

        Args:
            text: The chunk text.

        Returns:
            The extracted TopicResult (possibly empty).
        """
        response = await self.client.messages.create(
            model=self.config.llm_model,
            max_tokens=self.config.llm_max_tokens,
            temperature=self.config.llm_temperature,
            system=SYSTEM_PROMPT,
            tools=[TOPICS_TOOL],
            tool_choice={"type": "tool", "name": "store_topics"},
            messages=[{"role": "user", "content": build_user_prompt(text)}],
        )
        return _parse_tool_response(response)


class OpenAITopicExtractor:
    """Topic extraction with an OpenAI chat model in JSON mode."""

    def __init__(self, client: AsyncOpenAI | None = None, config: Settings = settings) -> None:
        self.config = config
        self.client = client or AsyncOpenAI(api_key=config.openai_api_key or None)

    async def aclose(self) -> None:
        await self.client.close()

    async def extract_topics(self, text: str) -> TopicResult:
        response = await self.client.chat.completions.create(
            model=self.config.openai_model,
            max_tokens=self.config.llm_max_tokens,
            temperature=self.config.llm_temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": f"{SYSTEM_PROMPT}\n\n{JSON_INSTRUCTIONS}"},
                {"role": "user", "content": build_user_prompt(text)},
            ],
        )
        return parse_topics_json(response.choices[0].message.content)


def get_topic_extractor(
    provider: str | LLMProvider | None = None,
    config: Settings = settings,
) -> AnthropicTopicExtractor | OpenAITopicExtractor:
    """Return the extractor for *provider* (defaults to ``config.llm_provider``)."""
    # Normalise to enum
    provider = LLMProvider(provider or config.llm_provider)
    if provider is LLMProvider.OPENAI:
        return OpenAITopicExtractor(config=config)
    return AnthropicTopicExtractor(config=config)
