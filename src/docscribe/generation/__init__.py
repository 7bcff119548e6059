"""Documentation generation workflow."""

from docscribe.generation.orchestrator import ALLOWED_TRANSITIONS, DocumentationOrchestrator
from docscribe.generation.parallel import GenerationStats, ParallelGenerator
from docscribe.generation.preview import PreviewRenderer, group_by_file

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DocumentationOrchestrator",
    "GenerationStats",
    "ParallelGenerator",
    "PreviewRenderer",
    "group_by_file",
]
