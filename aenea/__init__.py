"""Aenea: a staged thought-cycle engine governed by energy and evolving value weights."""

from aenea.categories import QuestionCategory
from aenea.config import AeneaSettings, configure_logging, get_settings
from aenea.cycle import CycleOrchestrator, ThoughtCycle, Trigger
from aenea.energy import EnergyManager
from aenea.events import EventBus
from aenea.interfaces import GenerationResult, Storage, TextGenerator
from aenea.scheduler import ConsciousnessScheduler
from aenea.storage import InMemoryStorage

__version__ = "0.1.0"

__all__ = [
    "QuestionCategory",
    "AeneaSettings",
    "configure_logging",
    "get_settings",
    "CycleOrchestrator",
    "ThoughtCycle",
    "Trigger",
    "EnergyManager",
    "EventBus",
    "GenerationResult",
    "Storage",
    "TextGenerator",
    "ConsciousnessScheduler",
    "InMemoryStorage",
]
