"""Night action records and resolution results."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .passives import PassiveEffect
from .roles import ActionKind


@dataclass
class GameAction:
    """A submitted night action, queued until the night is resolved."""
    actor_id: str
    role_id: str
    kind: ActionKind
    target_ids: list[str] = field(default_factory=list)
    sub_action: Optional[ActionKind] = None  # heal or kill, for dual actions
    order: int = 0  # assigned on submission

    def __post_init__(self):
        self.kind = ActionKind(self.kind)
        if self.sub_action is not None:
            self.sub_action = ActionKind(self.sub_action)
        self.target_ids = list(self.target_ids)

    def is_kind(self, kind: ActionKind) -> bool:
        """True for a plain action of ``kind`` or a dual action carrying it."""
        if self.kind == kind:
            return True
        return self.kind == ActionKind.DUAL and self.sub_action == kind


@dataclass(frozen=True)
class ActionCheck:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class ActionOutcome:
    """What happened to one action (or one target of it) during resolution."""
    kind: ActionKind
    actor_id: str
    target_ids: tuple[str, ...]
    success: bool
    message: str
    data: Any = None


@dataclass
class NightResolution:
    """Output of one night's resolution. Built fresh every night."""
    deaths: list[str] = field(default_factory=list)
    saved: list[str] = field(default_factory=list)
    transformed: list[str] = field(default_factory=list)
    investigations: dict[tuple[str, str], Any] = field(default_factory=dict)
    outcomes: list[ActionOutcome] = field(default_factory=list)
    effects: list[PassiveEffect] = field(default_factory=list)

    def record(
        self,
        action: GameAction,
        success: bool,
        message: str,
        targets: Optional[list[str]] = None,
        data: Any = None,
        kind: Optional[ActionKind] = None,
    ) -> ActionOutcome:
        outcome = ActionOutcome(
            kind=kind or action.kind,
            actor_id=action.actor_id,
            target_ids=tuple(action.target_ids if targets is None else targets),
            success=success,
            message=message,
            data=data,
        )
        self.outcomes.append(outcome)
        return outcome

    def add_saved(self, player_id: str) -> None:
        if player_id not in self.saved:
            self.saved.append(player_id)
