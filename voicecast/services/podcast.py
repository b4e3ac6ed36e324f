"""Podcast project orchestration across research, planning, and synthesis.

Responsibilities:
- Validate project requests and register one record per project.
- Define the five project phases and commit partial output as each one runs.
- Expose inline research and planning for interactive clients.
- Cancel and delete projects, removing produced audio.

Key types:
- `PodcastProjectManager`: owns the project registry and phase wiring.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from loguru import logger

from ..audio.materializer import AudioMaterializer
from ..audio.storage import AudioStore
from ..config import AVAILABLE_VOICES, VoicecastConfig
from ..errors import InputValidationError
from ..generation.compiler import CompilationStage
from ..generation.generator import OverlappingContextGenerator
from ..generation.planner import plan_generation_units
from ..jobs.cancellation import CancellationToken
from ..jobs.registry import JobRegistry
from ..models.datatypes import Outline, ProjectState, ProjectStatus, ResearchData, ResearchResult
from ..pipeline.executor import Phase, PhaseContext, PipelineExecutor
from ..providers.factory import ProviderSet
from ..providers.prompts import PromptLibrary
from ..research.narrative import NarrativeService
from ..research.service import ResearchService
from ..telemetry.cost_tracker import CostTracker

MIN_PROJECT_MINUTES = 5
MAX_PROJECT_MINUTES = 60
PROJECT_KIND = "podcast"


class _ProjectRun:
    """Phase actions of one podcast project run, sharing a cost tracker."""

    def __init__(self, manager: PodcastProjectManager) -> None:
        self.manager = manager
        self.costs = CostTracker()

    def phases(self) -> list[Phase]:
        return [
            Phase("research", self.research, ProjectStatus.RESEARCHING.value),
            Phase("planning", self.plan, ProjectStatus.PLANNING.value),
            Phase("generating", self.generate, ProjectStatus.GENERATING.value),
            Phase("compiling", self.compile, ProjectStatus.COMPILING.value),
            Phase("converting", self.convert, ProjectStatus.CONVERTING.value),
        ]

    def usage(self) -> dict[str, Any]:
        return {
            "estimated_tokens_used": self.costs.llm_tokens,
            "estimated_cost_usd": self.costs.total_cost_usd,
        }

    async def research(self, context: PhaseContext[ProjectState]) -> dict[str, Any]:
        project = context.record
        data = await self.manager.research_service.research_topic(
            project.topic,
            context.token,
            self.costs,
            on_analysis=lambda partial: context.commit(research_data=partial),
            on_result=lambda done, total: context.report(done / total),
        )
        return {"research_data": data, **self.usage()}

    async def plan(self, context: PhaseContext[ProjectState]) -> dict[str, Any]:
        project = context.record
        if project.research_data is None:
            raise RuntimeError("planning requires research data.")
        outline, guide, segment_research = await self.manager.plan_outline(
            project.topic,
            project.target_duration_minutes,
            project.research_data,
            context,
            self.costs,
        )
        return {
            "outline": outline,
            "narrative_guide": guide,
            "research_data": replace(project.research_data, segment_research=segment_research),
            **self.usage(),
        }

    async def generate(self, context: PhaseContext[ProjectState]) -> dict[str, Any]:
        project = context.record
        if project.outline is None:
            raise RuntimeError("generation requires an outline.")
        config = self.manager.config
        plans = plan_generation_units(
            project.outline,
            config.generation_token_ceiling,
            config.tokens_per_minute,
        )
        context.commit(total_units=len(plans))

        def _on_unit(units: tuple[Any, ...], total: int) -> None:
            context.commit(content_units=units)
            context.report(len(units) / total)

        units = await self.manager.generator.generate(
            project, plans, context.token, _on_unit, self.costs
        )
        return {"content_units": units, **self.usage()}

    async def compile(self, context: PhaseContext[ProjectState]) -> dict[str, Any]:
        project = context.record
        if project.outline is None:
            raise RuntimeError("compilation requires an outline.")
        compiler = self.manager.compiler
        script = compiler.compile(project.content_units, project.outline)
        return {"final_script": compiler.format_script(script, project.outline)}

    async def convert(self, context: PhaseContext[ProjectState]) -> dict[str, Any]:
        project = context.record
        audio = await self.manager.materializer.materialize(
            project.final_script or "",
            project.voice,
            context.token,
            on_progress=lambda done, total: context.report(done / total),
            cost_tracker=self.costs,
            clean_markup=True,
            on_stored=lambda path: context.commit(output_path=path),
        )
        return {"audio_url": audio.url, **self.usage()}

    def release(self, project: ProjectState) -> None:
        """Remove audio of a project that failed after its file was stored."""

        if project.output_path is not None:
            self.manager.store.remove(project.output_path)


class PodcastProjectManager:
    """Create and track long-form podcast projects."""

    def __init__(
        self,
        *,
        config: VoicecastConfig,
        providers: ProviderSet,
        store: AudioStore,
        executor: PipelineExecutor,
        registry: JobRegistry[ProjectState] | None = None,
        prompts: PromptLibrary | None = None,
    ) -> None:
        prompts = prompts or PromptLibrary()
        timeout = config.provider_timeout_seconds
        self.config = config
        self.store = store
        self.executor = executor
        self.registry: JobRegistry[ProjectState] = registry or JobRegistry(
            ttl_seconds=config.job_ttl_seconds,
            max_records=config.max_jobs,
        )
        self.research_service = ResearchService(
            providers.completion,
            providers.search,
            prompts=prompts,
            timeout_seconds=timeout,
            search_retries=config.search_retries,
        )
        self.narrative_service = NarrativeService(
            providers.completion,
            prompts=prompts,
            timeout_seconds=timeout,
            tokens_per_minute=config.tokens_per_minute,
        )
        self.generator = OverlappingContextGenerator(
            providers.completion,
            prompts=prompts,
            overlap_chars=config.overlap_chars,
            timeout_seconds=timeout,
        )
        self.compiler = CompilationStage()
        self.materializer = AudioMaterializer(
            providers.speech,
            store,
            chunk_chars=config.tts_chunk_chars,
            timeout_seconds=timeout,
        )

    def validate(self, topic: str, target_minutes: int, voice: str | None = None) -> tuple[str, int, str]:
        """Return the normalized `(topic, minutes, voice)` or raise `InputValidationError`."""

        normalized_topic = topic.strip()
        if not normalized_topic:
            raise InputValidationError("Topic is required")
        if isinstance(target_minutes, bool) or not MIN_PROJECT_MINUTES <= target_minutes <= MAX_PROJECT_MINUTES:
            raise InputValidationError(
                f"Target duration must be between {MIN_PROJECT_MINUTES} and "
                f"{MAX_PROJECT_MINUTES} minutes."
            )
        resolved_voice = voice or self.config.default_voice
        if resolved_voice not in AVAILABLE_VOICES:
            raise InputValidationError("Please select a valid voice")
        return normalized_topic, target_minutes, resolved_voice

    def create_project(self, topic: str, target_minutes: int, voice: str | None = None) -> int:
        """Register a project and spawn its phases; return the project id."""

        topic, target_minutes, voice = self.validate(topic, target_minutes, voice)
        project_id = self.registry.create(
            lambda record_id: ProjectState(
                id=record_id,
                topic=topic,
                target_duration_minutes=target_minutes,
                voice=voice,
            )
        )
        logger.info("Created podcast project {} ({} minutes).", project_id, target_minutes)
        run = _ProjectRun(self)
        self.executor.spawn(
            self.registry,
            project_id,
            run.phases(),
            CancellationToken(),
            kind=PROJECT_KIND,
            on_failure=run.release,
        )
        return project_id

    def get(self, project_id: int) -> ProjectState:
        return self.registry.get(project_id)

    def list(self) -> list[ProjectState]:
        return self.registry.list()

    def cancel(self, project_id: int) -> ProjectState:
        return self.executor.cancel(self.registry, project_id, kind=PROJECT_KIND)

    def delete(self, project_id: int) -> ProjectState:
        """Cancel a running project, drop its record, and remove its audio file."""

        self.cancel(project_id)
        project = self.registry.delete(project_id)
        if project.output_path is not None:
            self.store.remove(project.output_path)
        return project

    async def research(self, topic: str) -> ResearchData:
        """Run topic analysis and research inline."""

        normalized = topic.strip()
        if not normalized:
            raise InputValidationError("Topic is required")
        return await self.research_service.research_topic(normalized)

    async def plan(
        self,
        topic: str,
        target_minutes: int,
        research_data: ResearchData | None = None,
    ) -> tuple[Outline, str]:
        """Return an outline and narrative guide, researching first when no data is given."""

        topic, target_minutes, _ = self.validate(topic, target_minutes)
        if research_data is None:
            research_data = await self.research_service.research_topic(topic)
        outline = await self.narrative_service.create_outline(
            topic,
            research_data.topic_analysis,
            research_data.main_research,
            target_minutes,
        )
        guide = await self.narrative_service.create_narrative_guide(topic, outline)
        return outline, guide

    async def plan_outline(
        self,
        topic: str,
        target_minutes: int,
        research_data: ResearchData,
        context: PhaseContext[ProjectState],
        costs: CostTracker,
    ) -> tuple[Outline, str, dict[str, tuple[ResearchResult, ...]]]:
        """Create the outline and guide, then research every main segment."""

        outline = await self.narrative_service.create_outline(
            topic,
            research_data.topic_analysis,
            research_data.main_research,
            target_minutes,
            context.token,
            costs,
        )
        context.commit(outline=outline)
        context.report(0.3)
        guide = await self.narrative_service.create_narrative_guide(topic, outline, context.token, costs)
        context.commit(narrative_guide=guide)
        context.report(0.5)

        queries_by_segment = self.narrative_service.segment_queries(topic, outline)
        segment_research: dict[str, tuple[ResearchResult, ...]] = {}
        for done, (segment_id, queries) in enumerate(queries_by_segment.items(), start=1):
            segment_research[segment_id] = await self.research_service.research_batch(
                queries, context.token, costs
            )
            context.report(0.5 + 0.5 * done / len(queries_by_segment))
        return outline, guide, segment_research
