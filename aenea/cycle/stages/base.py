"""Shared plumbing for the pipeline stages."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from aenea.exceptions import PersonaCallError

if TYPE_CHECKING:
    from aenea.events import ConsciousnessEvent, EventBus
    from aenea.interfaces import TextGenerator
    from aenea.personas.registry import PersonaRegistry

logger = logging.getLogger(__name__)

# Generator key for the non-persona roles
COMPILER = "compiler"
AUDITOR = "auditor"
SCRIBE = "scribe"

INTERROGATIVES = (
    "what", "why", "how", "when", "where", "who", "which", "whether",
    "is", "are", "can", "could", "does", "do", "should", "would", "will", "might",
)
MIN_QUESTION_CHARS = 3

_QUESTION_PATTERN = re.compile(r"[^.!?\n]*\?")


def is_question(text: str) -> bool:
    """True for text that asks something: ends in '?' or opens with an interrogative."""
    candidate = text.strip().strip("\"'")
    if len(candidate) < MIN_QUESTION_CHARS:
        return False
    if candidate.endswith("?"):
        return True
    first = candidate.split(maxsplit=1)[0].lower().rstrip(",:")
    return first in INTERROGATIVES


def extract_questions(text: str) -> list[str]:
    """All '?'-terminated sentences in a block of text."""
    found = []
    for match in _QUESTION_PATTERN.findall(text or ""):
        q = match.strip().lstrip("-*\"' ").strip()
        if len(q) > MIN_QUESTION_CHARS:
            found.append(q)
    return found


def dedupe(items: list[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping first occurrences."""
    seen = set()
    out = []
    for item in items:
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(item.strip())
    return out


@dataclass
class StageContext:
    """
    Collaborators every stage may need.

    ``generators`` maps persona ids (or the compiler/auditor roles) to a
    dedicated generator; anything not in the map uses ``generator``.
    """

    generator: "TextGenerator"
    registry: "PersonaRegistry"
    event_bus: Optional["EventBus"] = None
    persona_timeout: float = 120.0
    generators: dict[str, "TextGenerator"] = field(default_factory=dict)

    def generator_for(self, key: str) -> "TextGenerator":
        return self.generators.get(key, self.generator)

    async def emit(self, event: "ConsciousnessEvent") -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event)

    async def generate(self, key: str, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Run one generation call bounded by the persona timeout.

        Returns:
            Stripped response text

        Raises:
            PersonaCallError: If the call raises, times out, reports failure
                or returns blank text
        """
        generator = self.generator_for(key)
        try:
            result = await asyncio.wait_for(
                generator.execute(prompt, system_prompt=system_prompt),
                timeout=self.persona_timeout,
            )
        except asyncio.TimeoutError:
            raise PersonaCallError(key, f"timed out after {self.persona_timeout}s") from None
        except PersonaCallError:
            raise
        except Exception as e:
            raise PersonaCallError(key, str(e)) from e

        if not result.success:
            raise PersonaCallError(key, result.error or "generation failed")
        if not result.usable:
            raise PersonaCallError(key, "empty response")
        return result.content.strip()
