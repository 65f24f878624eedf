"""Game engine - role catalogue, night resolution, passives and win checks."""

from .actions import ActionCheck, ActionOutcome, GameAction, NightResolution
from .game import DayReport, Game, GameConfig, GameSnapshot, NightReport, NightStart, RoundConfig
from .passives import DeathReport, EffectKind, PassiveEffect, PassiveSkillHandler
from .phases import GamePhase, PhaseManager
from .resolver import ActionResolver
from .roles import (
    ActionKind,
    CatalogueError,
    RoleCatalogue,
    RoleDefinition,
    Team,
    load_default_catalogue,
)
from .state import DeathCause, PlayerSetup, PlayerState, PlayerStateStore
from .status import Status
from .win import WinConditionEvaluator, WinnerType, WinResult

__all__ = [
    "ActionCheck",
    "ActionKind",
    "ActionOutcome",
    "ActionResolver",
    "CatalogueError",
    "DayReport",
    "DeathCause",
    "DeathReport",
    "EffectKind",
    "Game",
    "GameAction",
    "GameConfig",
    "GamePhase",
    "GameSnapshot",
    "NightReport",
    "NightResolution",
    "NightStart",
    "PassiveEffect",
    "PassiveSkillHandler",
    "PhaseManager",
    "PlayerSetup",
    "PlayerState",
    "PlayerStateStore",
    "RoleCatalogue",
    "RoleDefinition",
    "RoundConfig",
    "Status",
    "Team",
    "WinConditionEvaluator",
    "WinResult",
    "WinnerType",
    "load_default_catalogue",
]
