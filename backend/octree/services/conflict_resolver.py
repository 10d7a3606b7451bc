"""
Conflict resolution for suggestions whose anchor drifted.

The model is asked for a fresh latex-diff block against the current numbered document; the
reply goes back through the diff parser. There is no retry loop: a failure is final for the
stale suggestion.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from loguru import logger

from octree.core.config import settings
from octree.schemas.suggestion import EditSuggestion
from octree.services.assistant_service import number_lines
from octree.services.latex_diff_parser import LatexDiffParser, latex_diff_parser
from octree.services.llm_service import LLMService, llm_service
from octree.utils.exceptions import ConflictResolutionError, LLMServiceError, ValidationError

CONFLICT_SYSTEM_PROMPT = (
    "You are Octra, a LaTeX expert assistant. Provide updated latex-diff code blocks that apply "
    "the intended change. Ensure diffs use accurate line numbers, omit line number prefixes "
    "within the diff body, and keep changes minimal."
)


def is_small_change(suggestion: EditSuggestion) -> bool:
    suggested_lines = len(suggestion.suggested.split("\n")) if suggestion.suggested else 0
    return suggestion.original_line_count + suggested_lines <= settings.SMALL_CHANGE_MAX_LINES


class ConflictResolver:
    def __init__(self, llm: Optional[LLMService] = None, parser: Optional[LatexDiffParser] = None):
        self.llm = llm or llm_service
        self.parser = parser or latex_diff_parser

    def build_prompt(self, file_content: str, suggestion: EditSuggestion, current_text: str) -> str:
        previous_original = suggestion.original if suggestion.original.strip() else "(no original content)"
        previous_suggested = suggestion.suggested if suggestion.suggested.strip() else "(no suggested content)"
        return (
            "The document changed after an earlier suggestion. Update the suggestion so it applies cleanly now.\n\n"
            "Previous suggestion metadata:\n"
            f"- Start line: {suggestion.start_line}\n"
            f"- Original line count: {suggestion.original_line_count}\n"
            f"- Original snippet:\n---\n{previous_original}\n---\n"
            f"- Intended replacement snippet:\n---\n{previous_suggested}\n---\n\n"
            f"Current snippet at the targeted region:\n---\n{current_text or '(empty)'}\n---\n\n"
            f"Current numbered file content:\n---\n{number_lines(file_content)}\n---\n\n"
            "Return updated latex-diff code block(s) that integrate the intended replacement. "
            "Include a brief explanation after the code block."
        )

    def select_model(self, small_change: bool) -> tuple[str, str]:
        """(provider, model) for the re-query."""
        if small_change:
            return "openai", settings.CONFLICT_FAST_MODEL
        return "deepseek", settings.CONFLICT_CAPABLE_MODEL

    async def resolve_text(
        self,
        file_content: str,
        suggestion: EditSuggestion,
        current_text: str,
        small_change: bool,
    ) -> str:
        """Ask the model for a corrected latex-diff reply and return it verbatim."""
        if not file_content or suggestion is None or not suggestion.suggested:
            raise ValidationError("Invalid conflict resolution payload")

        provider, model = self.select_model(small_change)
        messages = [
            {"role": "system", "content": CONFLICT_SYSTEM_PROMPT},
            {"role": "user", "content": self.build_prompt(file_content, suggestion, current_text)},
        ]
        logger.info(f"Resolving conflict for suggestion {suggestion.id} with {provider}/{model}")
        try:
            return await asyncio.wait_for(
                self.llm.chat(
                    messages,
                    model=model,
                    provider=provider,
                    temperature=settings.CONFLICT_TEMPERATURE,
                    max_tokens=settings.CONFLICT_MAX_TOKENS,
                ),
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            raise ConflictResolutionError("timed out waiting for the model")
        except LLMServiceError as e:
            raise ConflictResolutionError(e.message, e.detail)

    async def resolve(
        self,
        file_content: str,
        suggestion: EditSuggestion,
        current_text: str,
        small_change: Optional[bool] = None,
    ) -> List[EditSuggestion]:
        """Resolve a stale suggestion into one or more fresh pending suggestions."""
        if small_change is None:
            small_change = is_small_change(suggestion)
        text = await self.resolve_text(file_content, suggestion, current_text, small_change)
        replacements = self.parser.parse(text)
        if not replacements:
            raise ConflictResolutionError("the model returned no usable latex-diff block")
        return replacements


conflict_resolver = ConflictResolver()
