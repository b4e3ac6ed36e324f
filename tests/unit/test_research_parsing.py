"""Unit tests for research parsing, outline parsing, and batched research."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from voicecast.errors import InputValidationError, ProviderError
from voicecast.models.datatypes import ResearchData, ResearchResult, to_payload
from voicecast.providers.factory import ProviderSet
from voicecast.research.narrative import NarrativeService, parse_outline
from voicecast.research.service import (
    ResearchService,
    extract_json_object,
    parse_research_data,
    parse_topic_analysis,
)


def test_extract_json_object_prefers_fenced_block() -> None:
    text = 'Sure! {"not": "this"} ```json\n{"mainAreas": []}\n```'

    assert extract_json_object(text, what="topic analysis") == {"mainAreas": []}


def test_extract_json_object_falls_back_to_brace_span() -> None:
    text = 'Here is the plan: {"title": "X", "mainSegments": []} Hope it helps.'

    assert extract_json_object(text, what="outline")["title"] == "X"


def test_extract_json_object_rejects_prose() -> None:
    with pytest.raises(ProviderError, match="Invalid response format from podcast structure generation") as exc_info:
        extract_json_object("No JSON here.", what="podcast structure generation")
    assert exc_info.value.failure_kind == "malformed"


def test_parse_topic_analysis_flattens_questions_in_order(topic_analysis_payload: dict[str, Any]) -> None:
    analysis = parse_topic_analysis(topic_analysis_payload)

    assert [area.title for area in analysis.main_areas] == ["Origins", "Impact"]
    assert analysis.research_queries() == ["When did it start?", "Who started it?", "What changed?"]
    assert analysis.target_audience == "Curious listeners"


def test_parse_topic_analysis_requires_main_areas() -> None:
    with pytest.raises(ProviderError, match="mainAreas"):
        parse_topic_analysis({"targetAudience": "Everyone"})


def test_parse_outline_keeps_ids_and_order(outline_payload: dict[str, Any]) -> None:
    outline = parse_outline(outline_payload)

    assert outline.title == "The Story of Tea"
    assert [section.id for section in outline.ordered_sections()] == ["intro", "s-1", "s-2", "outro"]
    assert outline.segments[0].estimated_duration_minutes == 4
    assert outline.ordered_sections()[1].estimated_tokens == 1500


def test_parse_outline_fills_missing_and_duplicate_ids(outline_payload: dict[str, Any]) -> None:
    payload = outline_payload
    payload["mainSegments"][0]["sections"][1]["id"] = "s-1"
    del payload["introduction"]["id"]

    outline = parse_outline(payload)

    ids = [section.id for section in outline.ordered_sections()]
    assert len(set(ids)) == len(ids)
    assert ids[0].startswith("intro-")
    assert ids[1] == "s-1"
    assert ids[2].startswith("section-")


def test_parse_outline_requires_segments() -> None:
    with pytest.raises(ProviderError, match="mainSegments"):
        parse_outline({"title": "X", "introduction": {}, "conclusion": {}})


def test_parse_research_data_accepts_served_payload(topic_analysis_payload: dict[str, Any]) -> None:
    data = ResearchData(
        topic_analysis=parse_topic_analysis(topic_analysis_payload),
        main_research=(ResearchResult(query="q1", summary="s1", citations=("https://a",)),),
        segment_research={"seg-1": (ResearchResult(query="q2", summary="", failed=True),)},
    )

    parsed = parse_research_data(to_payload(data))

    assert parsed.main_research == data.main_research
    assert parsed.segment_research["seg-1"][0].failed is True
    assert parsed.topic_analysis.research_queries() == data.topic_analysis.research_queries()


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"topicAnalysis": {"mainAreas": "nope"}},
        {"topicAnalysis": {"mainAreas": []}, "mainResearch": "nope"},
        {"topicAnalysis": {"mainAreas": []}, "mainResearch": [{"summary": "no query"}]},
    ],
)
def test_parse_research_data_rejects_bad_shapes(payload: dict[str, object]) -> None:
    with pytest.raises(InputValidationError):
        parse_research_data(payload)


def test_research_batch_keeps_query_order_and_marks_failures(
    build_providers: Callable[..., ProviderSet],
) -> None:
    """A failing query is retried once and then recorded in place as failed."""

    providers = build_providers(search_failing=("b",))
    service = ResearchService(providers.completion, providers.search, search_retries=1)

    results = asyncio.run(service.research_batch(["a", "b", "c"]))

    assert [result.query for result in results] == ["a", "b", "c"]
    assert [result.failed for result in results] == [False, True, False]
    assert results[1].summary.startswith("Research failed for this query")
    assert providers.search.queries == ["a", "b", "b", "c"]


def test_research_topic_runs_analysis_questions(fake_providers: ProviderSet) -> None:
    service = ResearchService(fake_providers.completion, fake_providers.search)
    partial: list[ResearchData] = []

    data = asyncio.run(service.research_topic("Tea", on_analysis=partial.append))

    assert [result.query for result in data.main_research] == [
        "When did it start?",
        "Who started it?",
        "What changed?",
    ]
    assert partial[0].main_research == ()
    assert data.main_research[0].citations == ("https://example.com/a",)


def test_segment_queries_cover_segment_and_sections(outline_payload: dict[str, Any]) -> None:
    queries = NarrativeService.segment_queries("Tea", parse_outline(outline_payload))

    assert queries == {
        "seg-1": ["Tea Leaves and Legends", "Tea First Cups", "Tea Trade Routes"],
    }
