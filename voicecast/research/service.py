"""Topic analysis and web research for podcast projects.

Responsibilities:
- Break a topic into areas and research questions through a completion call.
- Run research queries sequentially, keeping query order even on failures.
- Extract JSON objects from completion text that may carry fences or prose.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Mapping, Sequence

from loguru import logger

from ..errors import InputValidationError, ProviderError
from ..jobs.cancellation import CancellationToken
from ..models.datatypes import ResearchData, ResearchResult, TopicAnalysis, TopicArea
from ..pipeline.calls import call_provider
from ..providers.base import CompletionOptions, CompletionProvider, SearchProvider
from ..providers.prompts import PromptLibrary
from ..telemetry.cost_tracker import CostTracker

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


def extract_json_object(text: str, *, what: str) -> dict[str, Any]:
    """Return the JSON object embedded in completion text.

    Tries a fenced block first, then the outermost brace span.

    Raises:
        ProviderError: With `malformed` kind if no JSON object can be decoded.
    """

    candidates: list[str] = []
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        candidates.append(text[first : last + 1])
    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload
    raise ProviderError(f"Invalid response format from {what}.", failure_kind="malformed")


def _string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip() for item in value if str(item).strip())


def parse_topic_analysis(payload: Mapping[str, Any]) -> TopicAnalysis:
    """Build a `TopicAnalysis` from a camelCase JSON payload."""

    areas_raw = payload.get("mainAreas")
    if not isinstance(areas_raw, list):
        raise ProviderError(
            "Topic analysis response is missing the `mainAreas` list.",
            failure_kind="malformed",
        )
    areas: list[TopicArea] = []
    for item in areas_raw:
        if not isinstance(item, Mapping):
            continue
        relevance = item.get("relevance")
        areas.append(
            TopicArea(
                title=str(item.get("title") or "Untitled area").strip(),
                description=str(item.get("description") or "").strip(),
                research_questions=_string_tuple(item.get("researchQuestions")),
                relevance=int(relevance) if isinstance(relevance, (int, float)) else 5,
            )
        )
    return TopicAnalysis(
        main_areas=tuple(areas),
        target_audience=str(payload.get("targetAudience") or "").strip(),
        key_questions=_string_tuple(payload.get("keyQuestions")),
        suggested_approach=str(payload.get("suggestedApproach") or "").strip(),
    )


def _parse_results(raw: Any, field_name: str) -> tuple[ResearchResult, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise InputValidationError(f"`{field_name}` must be a list of research results.")
    results: list[ResearchResult] = []
    for item in raw:
        if not isinstance(item, Mapping) or not str(item.get("query") or "").strip():
            raise InputValidationError(f"Every `{field_name}` entry needs a `query`.")
        results.append(
            ResearchResult(
                query=str(item["query"]).strip(),
                summary=str(item.get("summary") or "").strip(),
                citations=_string_tuple(item.get("citations")),
                failed=bool(item.get("failed", False)),
            )
        )
    return tuple(results)


def parse_research_data(payload: Mapping[str, Any]) -> ResearchData:
    """Rebuild `ResearchData` from the camelCase payload served by the research endpoint.

    Raises:
        InputValidationError: If the payload does not have the served shape.
    """

    analysis_raw = payload.get("topicAnalysis")
    if not isinstance(analysis_raw, Mapping):
        raise InputValidationError("`researchData.topicAnalysis` must be an object.")
    try:
        analysis = parse_topic_analysis(analysis_raw)
    except ProviderError as exc:
        raise InputValidationError(str(exc)) from exc
    segments_raw = payload.get("segmentResearch") or {}
    if not isinstance(segments_raw, Mapping):
        raise InputValidationError("`researchData.segmentResearch` must be an object.")
    return ResearchData(
        topic_analysis=analysis,
        main_research=_parse_results(payload.get("mainResearch"), "mainResearch"),
        segment_research={
            str(key): _parse_results(value, "segmentResearch")
            for key, value in segments_raw.items()
        },
    )


class ResearchService:
    """Run topic analysis and batched search queries."""

    def __init__(
        self,
        completion: CompletionProvider,
        search: SearchProvider,
        *,
        prompts: PromptLibrary | None = None,
        timeout_seconds: float = 120.0,
        search_retries: int = 1,
        max_main_queries: int = 12,
    ) -> None:
        self.completion = completion
        self.search = search
        self.prompts = prompts or PromptLibrary()
        self.timeout_seconds = timeout_seconds
        self.search_retries = search_retries
        self.max_main_queries = max_main_queries

    async def analyze_topic(
        self,
        topic: str,
        token: CancellationToken | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> TopicAnalysis:
        """Return the structured topic analysis for `topic`."""

        logger.info("Analyzing podcast topic ({} chars).", len(topic))
        prompt = self.prompts.topic_analysis_prompt(topic)
        text = await call_provider(
            self.completion.complete,
            prompt,
            self.prompts.json_system_prompt("an expert podcast topic researcher"),
            CompletionOptions(temperature=0.3),
            token=token,
            timeout_seconds=self.timeout_seconds,
            operation="topic analysis",
        )
        if cost_tracker is not None:
            cost_tracker.add_llm_usage(prompt, text)
        return parse_topic_analysis(extract_json_object(text, what="topic analysis"))

    async def research_batch(
        self,
        queries: Sequence[str],
        token: CancellationToken | None = None,
        cost_tracker: CostTracker | None = None,
        on_result: Callable[[int, int], None] | None = None,
    ) -> tuple[ResearchResult, ...]:
        """Run queries one after another.

        A query that still fails after its retry becomes a failed result in place,
        so result order always matches query order. Cancellation propagates.
        """

        results: list[ResearchResult] = []
        for query in queries:
            try:
                answer = await call_provider(
                    self.search.search,
                    query,
                    token=token,
                    timeout_seconds=self.timeout_seconds,
                    retries=self.search_retries,
                    operation="research query",
                )
            except ProviderError as exc:
                logger.warning("Research query failed ({}): {}", exc.failure_kind, exc)
                results.append(
                    ResearchResult(
                        query=query,
                        summary=f"Research failed for this query: {exc}",
                        failed=True,
                    )
                )
            else:
                results.append(
                    ResearchResult(
                        query=query,
                        summary=answer.answer or "No summary available.",
                        citations=answer.citations,
                    )
                )
            if cost_tracker is not None:
                cost_tracker.add_search_usage()
            if on_result is not None:
                on_result(len(results), len(queries))
        return tuple(results)

    async def research_topic(
        self,
        topic: str,
        token: CancellationToken | None = None,
        cost_tracker: CostTracker | None = None,
        on_analysis: Callable[[ResearchData], None] | None = None,
        on_result: Callable[[int, int], None] | None = None,
    ) -> ResearchData:
        """Analyze the topic, then research its questions in declaration order."""

        analysis = await self.analyze_topic(topic, token, cost_tracker)
        if on_analysis is not None:
            on_analysis(ResearchData(topic_analysis=analysis))
        queries = analysis.research_queries()[: self.max_main_queries]
        main_research = await self.research_batch(queries, token, cost_tracker, on_result)
        return ResearchData(topic_analysis=analysis, main_research=main_research)
