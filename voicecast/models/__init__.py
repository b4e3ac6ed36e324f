"""Shared typed data models for Voicecast.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AudioRecord,
    Chunk,
    ContentUnit,
    GenerationUnitPlan,
    JobState,
    JobStatus,
    Outline,
    OutlineSection,
    OutlineSegment,
    ProjectState,
    ProjectStatus,
    ResearchData,
    ResearchResult,
    TopicAnalysis,
    TopicArea,
    to_payload,
)

__all__ = [
    "AudioRecord",
    "Chunk",
    "ContentUnit",
    "GenerationUnitPlan",
    "JobState",
    "JobStatus",
    "Outline",
    "OutlineSection",
    "OutlineSegment",
    "ProjectState",
    "ProjectStatus",
    "ResearchData",
    "ResearchResult",
    "TopicAnalysis",
    "TopicArea",
    "to_payload",
]
