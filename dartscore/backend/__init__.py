"""Backend package for dart match scoring."""

from .config import BackendSettings, load_settings
from .darts import MISS, Hit, Miss, Turn, make_dart
from .engine import TurnOrchestrator, apply_confirmed_turn, undo_last_turn
from .models import ClockConfig, CricketConfig, MatchPlayer, ShanghaiConfig, Variant, Verdict, VerdictKind
from .security import generate_token, hash_token, verify_token
from .state import MatchState, build_initial_state
from .store import InMemoryMatchStore, MatchStore, PostgresMatchStore, create_store

__all__ = [
    "apply_confirmed_turn",
    "BackendSettings",
    "build_initial_state",
    "ClockConfig",
    "create_store",
    "CricketConfig",
    "generate_token",
    "hash_token",
    "Hit",
    "InMemoryMatchStore",
    "load_settings",
    "make_dart",
    "MatchPlayer",
    "MatchState",
    "MatchStore",
    "MISS",
    "Miss",
    "PostgresMatchStore",
    "ShanghaiConfig",
    "Turn",
    "TurnOrchestrator",
    "undo_last_turn",
    "Variant",
    "Verdict",
    "VerdictKind",
    "verify_token",
]
