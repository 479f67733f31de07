from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

import httpx

from thrift_search.agents.llm import GenerativeModel, GenerativeModelError, InlineImage
from thrift_search.agents.prompts import IMAGE_ATTRIBUTES_PROMPT, TEXT_ATTRIBUTES_PROMPT
from thrift_search.models.products import SearchFilters
from thrift_search.models.search import AttributeSet
from thrift_search.services.parser import parse_attributes

logger = logging.getLogger("thrift_search.extractor")


@dataclass(frozen=True)
class TextQuery:
    query: str
    filters: SearchFilters | None = None


@dataclass(frozen=True)
class ImageQuery:
    data: bytes
    mime_type: str
    filename: str | None = None


Query = Union[TextQuery, ImageQuery]


@dataclass(frozen=True)
class RawExtraction:
    text: str


@dataclass(frozen=True)
class ExtractionFailed:
    reason: str


ExtractionOutcome = Union[RawExtraction, ExtractionFailed]


class AttributeExtractor:
    """Turns a text or image query into model output describing the sought item."""

    def __init__(self, model: GenerativeModel, *, timeout: float = 10.0) -> None:
        self._model = model
        self._timeout = timeout

    async def extract_raw(self, query: Query) -> ExtractionOutcome:
        if isinstance(query, ImageQuery):
            prompt = IMAGE_ATTRIBUTES_PROMPT
            rendered = prompt.render()
            image: InlineImage | None = InlineImage(mime_type=query.mime_type, data=query.data)
        else:
            prompt = TEXT_ATTRIBUTES_PROMPT
            filters = query.filters.describe() if query.filters else ""
            rendered = prompt.render({"query": query.query, "filters": filters or "none"})
            image = None

        try:
            text = await asyncio.wait_for(
                self._model.generate_async(rendered, image=image, prompt_id=prompt.prompt_id),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return self._failed(prompt.prompt_id, "model call timed out")
        except GenerativeModelError as exc:
            return self._failed(prompt.prompt_id, str(exc))
        except httpx.HTTPError as exc:
            return self._failed(prompt.prompt_id, f"model transport error: {exc}")

        if not text or not text.strip():
            return self._failed(prompt.prompt_id, "model returned an empty response")
        return RawExtraction(text=text)

    async def extract(self, query: Query) -> AttributeSet | ExtractionFailed:
        outcome = await self.extract_raw(query)
        if isinstance(outcome, ExtractionFailed):
            return outcome
        attrs = parse_attributes(outcome.text)
        if attrs is None:
            return ExtractionFailed(reason="model response contained no JSON")
        return attrs

    @staticmethod
    def _failed(prompt_id: str, reason: str) -> ExtractionFailed:
        logger.warning("extractor.failed", extra={"promptId": prompt_id, "reason": reason})
        return ExtractionFailed(reason=reason)


__all__ = [
    "AttributeExtractor",
    "ExtractionFailed",
    "ExtractionOutcome",
    "ImageQuery",
    "Query",
    "RawExtraction",
    "TextQuery",
]
