"""Minigames for skillcheck.

To add a new minigame, subclass BaseMinigame, give it a unique ``name`` and
append the class to AVAILABLE_MINIGAMES; MinigameHost registers every class
listed here.
"""

from skillcheck.minigames.base import (
    BaseMinigame,
    Effect,
    EffectKind,
    GameOutcome,
    Phase,
)
from skillcheck.minigames.memory_sequence import MemorySequenceGame
from skillcheck.minigames.circuit_solver import CircuitSolverGame
from skillcheck.minigames.code_cracker import CodeCrackerGame
from skillcheck.minigames.safe_cracker import SafeCrackerGame
from skillcheck.minigames.thermite import ThermiteGame
from skillcheck.minigames.dispatcher import CompletionDispatcher
from skillcheck.minigames.manager import MinigameHost, AdmissionGate, SessionToken

AVAILABLE_MINIGAMES = [
    MemorySequenceGame,
    CircuitSolverGame,
    CodeCrackerGame,
    SafeCrackerGame,
    ThermiteGame,
]

__all__ = [
    "BaseMinigame",
    "Effect",
    "EffectKind",
    "GameOutcome",
    "Phase",
    "MemorySequenceGame",
    "CircuitSolverGame",
    "CodeCrackerGame",
    "SafeCrackerGame",
    "ThermiteGame",
    "AVAILABLE_MINIGAMES",
    "CompletionDispatcher",
    "MinigameHost",
    "AdmissionGate",
    "SessionToken",
]
