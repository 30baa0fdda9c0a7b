"""Sleep mode: consolidation and full energy recovery."""

from aenea.sleep.dreams import DreamPattern, infer_emotional_tone, parse_dream_patterns
from aenea.sleep.manager import PHASE_PROGRESS, SleepManager, SleepPhase, SleepSession

__all__ = [
    "DreamPattern",
    "infer_emotional_tone",
    "parse_dream_patterns",
    "PHASE_PROGRESS",
    "SleepManager",
    "SleepPhase",
    "SleepSession",
]
