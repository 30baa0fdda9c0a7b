"""Individual pipeline stages."""

from aenea.cycle.stages.auditor import AuditorStage, heuristic_audit, parse_audit_response, risk_for
from aenea.cycle.stages.base import StageContext, extract_questions, is_question
from aenea.cycle.stages.compiler import CompilerStage, fallback_synthesis, parse_synthesis
from aenea.cycle.stages.critique import CritiqueStage
from aenea.cycle.stages.individual_thought import IndividualThoughtResult, IndividualThoughtStage
from aenea.cycle.stages.mutual_reflection import MutualReflectionStage, parse_reflection
from aenea.cycle.stages.scribe import ScribeStage, fallback_documentation, parse_documentation
from aenea.cycle.stages.unresolved import UnresolvedStage, collect_unresolved_questions

__all__ = [
    "AuditorStage",
    "heuristic_audit",
    "parse_audit_response",
    "risk_for",
    "StageContext",
    "extract_questions",
    "is_question",
    "CompilerStage",
    "fallback_synthesis",
    "parse_synthesis",
    "CritiqueStage",
    "IndividualThoughtResult",
    "IndividualThoughtStage",
    "MutualReflectionStage",
    "parse_reflection",
    "ScribeStage",
    "fallback_documentation",
    "parse_documentation",
    "UnresolvedStage",
    "collect_unresolved_questions",
]
