"""Dream patterns extracted during the REM phase of sleep."""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

# "1. text", "2) text"
LIST_ITEM = re.compile(r"^\s*(\d+)[.)]\s*(.+)$")
MIN_PATTERN_CHARS = 10

# Checked in order; first match wins
TONE_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("lonely", "loneliness", "solitude", "sad", "sorrow", "grief"), "serene sorrow"),
    (("wonder", "mystery", "mysterious", "surprise", "strange"), "wonder and curiosity"),
    (("silence", "silent", "stillness", "quiet"), "quiet astonishment"),
    (("paradox", "contradiction", "contradict"), "perplexity and insight"),
    (("beauty", "beautiful", "light"), "quiet joy"),
    (("fear", "afraid", "anxiety", "unease"), "unease and inquiry"),
)
DEFAULT_TONE = "philosophical stillness"

_INSTRUCTION_MARKERS = ("numbered list", "no preamble")


@dataclass
class DreamPattern:
    """An abstract pattern distilled from recent thoughts."""

    pattern: str
    emotional_tone: str
    source_thought_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"dream_{uuid.uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "emotional_tone": self.emotional_tone,
            "source_thought_ids": list(self.source_thought_ids),
            "created_at": self.created_at.isoformat(),
        }


def infer_emotional_tone(pattern: str) -> str:
    lowered = pattern.lower()
    for keywords, tone in TONE_KEYWORDS:
        if any(re.search(rf"\b{k}\b", lowered) for k in keywords):
            return tone
    return DEFAULT_TONE


def parse_dream_patterns(content: str, source_thought_ids: Iterable[str] = ()) -> list[DreamPattern]:
    """Parse a numbered list into dream patterns.

    Lines that are not list items, are shorter than MIN_PATTERN_CHARS, or
    echo the prompt's instructions are skipped.
    """
    sources = list(source_thought_ids)
    dreams = []
    for line in (content or "").splitlines():
        match = LIST_ITEM.match(line)
        if not match:
            continue
        pattern = match.group(2).strip()
        if len(pattern) < MIN_PATTERN_CHARS:
            continue
        if any(marker in pattern.lower() for marker in _INSTRUCTION_MARKERS):
            continue
        dreams.append(
            DreamPattern(
                pattern=pattern,
                emotional_tone=infer_emotional_tone(pattern),
                source_thought_ids=list(sources),
            )
        )
    return dreams
