"""Prompt template library for completion and artwork calls.

Responsibilities:
- Centralize prompt construction for research, planning, and generation.
- Keep prompts deterministic for identical inputs.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from ..models.datatypes import OutlineSection, ResearchResult

HOST_PERSONA = "an engaging, thoughtful podcast host with a conversational style"

_STAGE_GUIDANCE = {
    "opening": (
        "OPENING STAGE: Establish the main themes and questions. Use an inviting, curious "
        "tone that hints at what is to come."
    ),
    "early": (
        "EARLY DEVELOPMENT: Build on the introduction and provide context that will matter "
        "later."
    ),
    "middle": (
        "MAIN EXPLORATION: Fully explore the key concepts with detailed examples and connect "
        "ideas introduced earlier."
    ),
    "late": (
        "SYNTHESIS STAGE: Connect the ideas explored earlier, highlight patterns, and prepare "
        "for the conclusion."
    ),
    "closing": (
        "CONCLUSION STAGE: Bring everything together, reference key insights, and end with "
        "something thought-provoking."
    ),
}


class PromptLibrary:
    """Build prompt strings for supported completion tasks."""

    def json_system_prompt(self, role: str) -> str:
        """Return a system prompt demanding a bare JSON object."""

        return (
            f"You are {role}. Always return valid JSON without markdown formatting, "
            "code fences, or explanations."
        )

    def topic_analysis_prompt(self, topic: str) -> str:
        return (
            f'Analyze the podcast topic "{topic}" and create a research plan.\n'
            "1. Break the topic into 4-5 main areas.\n"
            "2. For each area list 3-5 specific research questions.\n"
            "3. Identify the target audience.\n"
            "4. Suggest angles, approaches, or controversies to explore.\n"
            "5. Rate each area's relevance from 1 to 10.\n\n"
            "Respond with a JSON object of this shape:\n"
            '{"mainAreas": [{"title": "string", "description": "string", '
            '"researchQuestions": ["string"], "relevance": 0}], '
            '"targetAudience": "string", "keyQuestions": ["string"], '
            '"suggestedApproach": "string"}'
        )

    def outline_prompt(
        self,
        topic: str,
        analysis_payload: dict[str, Any],
        research: Sequence[ResearchResult],
        target_minutes: int,
        tokens_per_minute: int,
    ) -> str:
        """Return the outline-planning prompt with research summaries inlined."""

        research_summary = "\n\n".join(
            f"Query: {result.query}\nSummary: {result.summary}" for result in research
        )
        return (
            f"Create a detailed structure for a {target_minutes}-minute podcast on "
            f'"{topic}", hosted by {HOST_PERSONA}.\n\n'
            f"Topic analysis:\n{json.dumps(analysis_payload, indent=2)}\n\n"
            f"Research summary:\n{research_summary or 'No research available.'}\n\n"
            "Include an introduction (1-2 minutes), 4-6 main segments, and a conclusion "
            "(1-2 minutes). For every section give a title, key points, talking points, an "
            f"estimated duration in minutes, and estimated tokens (about {tokens_per_minute} "
            "tokens per minute).\n\n"
            "Respond with a JSON object of this shape:\n"
            '{"title": "string", "introduction": SECTION, "mainSegments": [{"id": "string", '
            '"title": "string", "sections": [SECTION], "estimatedDuration": 0}], '
            '"conclusion": SECTION, "estimatedDuration": 0}\n'
            'where SECTION is {"id": "string", "title": "string", "keyPoints": ["string"], '
            '"talkingPoints": ["string"], "estimatedDuration": 0, "estimatedTokens": 0}.\n'
            f"The total duration must add up to about {target_minutes} minutes and all ids "
            "must be unique."
        )

    def narrative_guide_system_prompt(self) -> str:
        return (
            "You are an expert podcast narrative designer who writes guides for narrative "
            "flow and continuity."
        )

    def narrative_guide_prompt(self, topic: str, outline_payload: dict[str, Any]) -> str:
        return (
            f'Write a narrative guide for the podcast "{outline_payload.get("title", topic)}" '
            f'on "{topic}".\n\nStructure:\n{json.dumps(outline_payload, indent=2)}\n\n'
            "Describe the story arc, 3-5 recurring themes, the host voice and tone, how "
            "early segments foreshadow later ones, how later segments call back to earlier "
            "ones, and the audience journey from start to finish."
        )

    def generation_system_prompt(self) -> str:
        return (
            f"You are {HOST_PERSONA}. Write only spoken podcast script content, with no "
            "headers or notes."
        )

    def stage_guidance(self, stage: str) -> str:
        return _STAGE_GUIDANCE.get(stage, _STAGE_GUIDANCE["middle"])

    def generation_unit_prompt(
        self,
        *,
        topic: str,
        variant: str,
        stage: str,
        sections: Sequence[OutlineSection],
        seed: str,
        narrative_guide: str | None,
        research_notes: Sequence[ResearchResult] = (),
    ) -> str:
        """Return the prompt for one generation unit.

        Args:
            variant: `opening`, `continue`, `closing`, or `standalone`.
            stage: Narrative stage hint for the unit.
            seed: Tail of the previous unit that this unit must continue from.
        """

        part = {
            "opening": "the introduction",
            "closing": "the conclusion",
            "standalone": "the complete episode",
        }.get(variant, "a middle segment")
        lines = [f'You are creating {part} of a podcast on "{topic}".', ""]
        if seed:
            lines += [
                "CONTEXT FROM PREVIOUS CONTENT (continue naturally from this, do not repeat it):",
                seed,
                "",
            ]
        lines += ["NARRATIVE GUIDANCE:", self.stage_guidance(stage)]
        if narrative_guide:
            lines += ["", "NARRATIVE GUIDE:", narrative_guide]
        if variant in ("opening", "standalone"):
            lines += ["", "Start with an engaging hook that introduces the topic."]
        if variant in ("closing", "standalone"):
            lines += ["", "End with a satisfying conclusion that ties everything together."]
        lines += ["", "Cover these sections:"]
        for section in sections:
            lines.append(f"SECTION: {section.title}")
            lines += [f"- {point}" for point in section.key_points]
            if section.talking_points:
                lines.append("TALKING POINTS:")
                lines += [f"- {point}" for point in section.talking_points]
        if research_notes:
            lines += ["", "RESEARCH NOTES:"]
            lines += [f"- {note.query}: {note.summary}" for note in research_notes if not note.failed]
        lines += [
            "",
            "Write conversationally, as spoken content rather than an essay. Do not repeat "
            "information already covered. Write ONLY the script content.",
        ]
        return "\n".join(lines)

    def summary_system_prompt(self) -> str:
        return "You summarize texts in two or three plain sentences."

    def summary_prompt(self, title: str, text: str, max_chars: int = 4000) -> str:
        """Return a prompt summarizing the head of `text` for library display."""

        excerpt = text[:max_chars]
        return f'Summarize the following text titled "{title}":\n\n{excerpt}'

    def artwork_prompt(self, title: str, summary: str) -> str:
        return (
            f'Cover artwork for an audio piece titled "{title}". {summary} '
            "Abstract, modern illustration without any text."
        )

    def chat_system_prompt(self, context: str = "") -> str:
        """Return the chat persona, grounded in `context` when one is given."""

        if not context:
            return (
                "You are a helpful assistant. Provide detailed, thoughtful answers to the "
                "user's questions."
            )
        return (
            "You help analyze and discuss the following text.\n\n"
            f"{context}\n\n"
            "Answer questions about this content in detail and stay focused on it."
        )

    def chat_prompt(self, turns: Sequence[tuple[str, str]]) -> str:
        """Render `(role, content)` turns as a transcript ending with the assistant's cue."""

        lines = [f"{role.capitalize()}: {content}" for role, content in turns]
        lines.append("Assistant:")
        return "\n\n".join(lines)
