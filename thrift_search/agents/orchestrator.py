from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from langgraph.graph import END, START, StateGraph

from thrift_search.agents.llm import get_generative_model
from thrift_search.core.config import AppSettings, get_settings
from thrift_search.core.exceptions import CatalogError, SearchContractError
from thrift_search.models.products import SearchFilters
from thrift_search.models.search import SearchResponse
from thrift_search.services.catalog import CatalogStore, build_catalog_store
from thrift_search.services.extractor import (
    AttributeExtractor,
    ExtractionFailed,
    ImageQuery,
    Query,
    TextQuery,
)
from thrift_search.services.fallback import FallbackGenerator
from thrift_search.services.parser import parse_attributes
from thrift_search.services.ranker import rank

logger = logging.getLogger("thrift_search.orchestrator")


class Route(str, Enum):
    proceed = "proceed"
    fallback = "fallback"


@dataclass
class SearchContext:
    extractor: AttributeExtractor
    catalog: CatalogStore
    fallback: FallbackGenerator
    default_limit: int = 24
    max_limit: int = 100


class SearchOrchestrator:
    """Runs extract, parse and rank as a graph; any failed stage routes to the fallback node."""

    def __init__(self, context: SearchContext) -> None:
        self._context = context
        self._graph = self._build_graph()

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "SearchOrchestrator":
        settings = settings or get_settings()
        model_factory = get_generative_model(settings)
        context = SearchContext(
            extractor=AttributeExtractor(model_factory(), timeout=settings.genai_timeout_sec),
            catalog=build_catalog_store(settings),
            fallback=FallbackGenerator(),
            default_limit=settings.search_default_limit,
            max_limit=settings.search_max_limit,
        )
        return cls(context)

    def _build_graph(self):
        graph = StateGraph(dict)
        graph.add_node("extract", self._node_extract)
        graph.add_node("parse", self._node_parse)
        graph.add_node("rank", self._node_rank)
        graph.add_node("fallback", self._node_fallback)

        graph.add_edge(START, "extract")
        graph.add_conditional_edges(
            "extract",
            self._conditional_route,
            {Route.proceed.value: "parse", Route.fallback.value: "fallback"},
        )
        graph.add_conditional_edges(
            "parse",
            self._conditional_route,
            {Route.proceed.value: "rank", Route.fallback.value: "fallback"},
        )
        graph.add_conditional_edges(
            "rank",
            self._conditional_route,
            {Route.proceed.value: END, Route.fallback.value: "fallback"},
        )
        graph.add_edge("fallback", END)
        return graph.compile()

    async def match_by_text(
        self,
        query: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
    ) -> SearchResponse:
        filters = filters or SearchFilters()
        resolved_limit = self._resolve_limit(limit)
        text = (query or "").strip()
        return await self._run(TextQuery(query=text, filters=filters), filters, resolved_limit, text)

    async def match_by_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
        *,
        filename: str | None = None,
    ) -> SearchResponse:
        if not image_bytes:
            raise SearchContractError("Image upload is empty.", details={"field": "image"})
        normalized_mime = (mime_type or "").split(";", 1)[0].strip().lower()
        if not normalized_mime.startswith("image/"):
            raise SearchContractError(
                "Uploaded file is not an image.",
                details={"field": "image", "mimeType": mime_type},
            )
        filters = filters or SearchFilters()
        resolved_limit = self._resolve_limit(limit)
        image_query = ImageQuery(data=image_bytes, mime_type=normalized_mime, filename=filename)
        return await self._run(image_query, filters, resolved_limit, None)

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._context.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise SearchContractError("Limit must be a positive integer.", details={"field": "limit", "value": limit})
        return min(limit, self._context.max_limit)

    async def _run(
        self,
        query: Query,
        filters: SearchFilters,
        limit: int,
        text: str | None,
    ) -> SearchResponse:
        runtime_state: dict[str, Any] = {
            "query": query,
            "text": text,
            "filters": filters,
            "limit": limit,
            "route": Route.proceed,
            "raw": None,
            "attributes": None,
            "products": [],
            "source": "model",
            "reason": None,
        }
        result_state = await self._graph.ainvoke(runtime_state)
        return SearchResponse(
            query=result_state["text"],
            source=result_state["source"],
            fallbackReason=result_state["reason"],
            attributes=result_state["attributes"],
            products=result_state["products"],
        )

    # Node implementations -------------------------------------------------

    async def _node_extract(self, state: dict[str, Any]) -> dict[str, Any]:
        outcome = await self._context.extractor.extract_raw(state["query"])
        if isinstance(outcome, ExtractionFailed):
            return self._divert(state, f"extraction failed: {outcome.reason}")
        state["raw"] = outcome.text
        return state

    async def _node_parse(self, state: dict[str, Any]) -> dict[str, Any]:
        attrs = parse_attributes(state["raw"])
        if attrs is None:
            return self._divert(state, "model response contained no JSON")
        state["attributes"] = attrs
        return state

    async def _node_rank(self, state: dict[str, Any]) -> dict[str, Any]:
        try:
            records = await self._context.catalog.query(state["filters"])
        except CatalogError as exc:
            return self._divert(state, f"catalog unavailable: {exc.message}")
        state["products"] = rank(records, state["attributes"], limit=state["limit"])
        logger.info(
            "search.ranked",
            extra={"candidates": len(records), "returned": len(state["products"])},
        )
        return state

    async def _node_fallback(self, state: dict[str, Any]) -> dict[str, Any]:
        products = self._context.fallback.generate(state["filters"], query=state["text"])
        state["products"] = products[: state["limit"]]
        state["source"] = "fallback"
        return state

    # Routing helpers ------------------------------------------------------

    def _conditional_route(self, state: dict[str, Any]) -> str:
        return Route(state["route"]).value

    @staticmethod
    def _divert(state: dict[str, Any], reason: str) -> dict[str, Any]:
        logger.warning("search.fallback", extra={"reason": reason})
        state["route"] = Route.fallback
        state["reason"] = reason
        return state


__all__ = ["Route", "SearchContext", "SearchOrchestrator"]
