"""Player state store - the single owner of mutable per-player state."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .roles import Team
from .status import DAY_TRANSIENT, NIGHT_TRANSIENT, Status

logger = logging.getLogger(__name__)


class DeathCause(str, Enum):
    """Tags recorded as ``killed_by`` when a player dies."""
    WEREWOLF = "werewolf"
    VAMPIRE = "vampire"
    NIGHT_KILL = "night_kill"
    GAMBLE = "gamble"
    EXECUTION = "execution"
    HUNTER_SHOT = "hunter_shot"
    LINKED_FATE = "linked_fate"
    EXPLOSION = "explosion"
    AUTO_KILL = "auto_kill"


@dataclass
class PlayerSetup:
    """Initial assignment of a role to a seat."""
    id: str
    name: str
    role_id: str
    team: Optional[Team] = None


@dataclass
class PlayerState:
    """Mutable state of one player.

    Death clears ALIVE; dead players stay in the store so passives and win
    checks can still read them.
    """

    id: str
    name: str
    role_id: str
    team: Team
    seat: int
    status: Status = Status.ALIVE

    # Relationships
    lover_id: Optional[str] = None
    twin_id: Optional[str] = None
    cult_member: bool = False

    # Targeting history
    last_protected_id: Optional[str] = None
    last_silenced_id: Optional[str] = None
    marked_targets: list[str] = field(default_factory=list)
    copy_target_id: Optional[str] = None

    # Death and transformation
    marked_for_death: bool = False
    death_delay: int = 0
    killed_by: Optional[str] = None
    transformed: bool = False
    original_role_id: Optional[str] = None

    # Pack-wide effects, mirrored on every werewolf
    infected: bool = False
    kill_bonus: int = 0

    used_abilities: set[str] = field(default_factory=set)
    vote_weight: int = 1
    can_vote: bool = True

    @property
    def alive(self) -> bool:
        return Status.ALIVE in self.status

    @property
    def protected(self) -> bool:
        return Status.PROTECTED in self.status

    @property
    def blessed(self) -> bool:
        return Status.BLESSED in self.status

    @property
    def silenced(self) -> bool:
        return Status.SILENCED in self.status

    @property
    def exiled(self) -> bool:
        return Status.EXILED in self.status

    def has(self, flag: Status) -> bool:
        return flag in self.status


class PlayerStateStore:
    """Tracks every player's status, links and ability usage.

    All mutation goes through the setters below. A setter given an unknown
    player id does nothing.
    """

    def __init__(self, players: Optional[Iterable[PlayerSetup]] = None):
        self._states: dict[str, PlayerState] = {}
        self._seating: list[str] = []
        if players is not None:
            self.initialize(players)

    def initialize(self, players: Iterable[PlayerSetup]) -> None:
        """Reset the store to the start-of-game state for ``players``.

        Args:
            players: Setups in seating order. Every setup must carry a team.
        """
        self._states.clear()
        self._seating = []
        for seat, setup in enumerate(players):
            if setup.team is None:
                raise ValueError(f"Player {setup.id} has no team")
            self._seating.append(setup.id)
            self._states[setup.id] = PlayerState(
                id=setup.id,
                name=setup.name,
                role_id=setup.role_id,
                team=Team(setup.team),
                seat=seat,
            )

    def _lookup(self, player_id: str) -> Optional[PlayerState]:
        state = self._states.get(player_id)
        if state is None:
            logger.warning("Ignoring state change for unknown player %r", player_id)
        return state

    # --- Queries -----------------------------------------------------------

    def get(self, player_id: str) -> Optional[PlayerState]:
        return self._states.get(player_id)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._states

    @property
    def seating(self) -> list[str]:
        return list(self._seating)

    def all_players(self) -> list[PlayerState]:
        return [self._states[pid] for pid in self._seating]

    def living_players(self) -> list[PlayerState]:
        return [p for p in self.all_players() if p.alive]

    def players_by_team(self, team: Team) -> list[PlayerState]:
        return [p for p in self.all_players() if p.team == team]

    def living_by_team(self, team: Team) -> list[PlayerState]:
        return [p for p in self.living_players() if p.team == team]

    def is_alive(self, player_id: str) -> bool:
        state = self._states.get(player_id)
        return state is not None and state.alive

    def has_used_ability(self, player_id: str, ability: str) -> bool:
        state = self._states.get(player_id)
        return state is not None and ability in state.used_abilities

    def werewolf_kill_bonus(self) -> int:
        return max((p.kill_bonus for p in self.living_by_team(Team.WEREWOLF)), default=0)

    def get_adjacent_players(self, player_id: str) -> list[str]:
        """Living neighbours of ``player_id``; seating wraps around."""
        if player_id not in self._states:
            return []
        index = self._seating.index(player_id)
        count = len(self._seating)
        neighbours = []
        for offset in (-1, 1):
            neighbour = self._seating[(index + offset) % count]
            if neighbour != player_id and neighbour not in neighbours and self.is_alive(neighbour):
                neighbours.append(neighbour)
        return neighbours

    # --- Status setters ----------------------------------------------------

    def _set_flag(self, player_id: str, flag: Status, value: bool) -> Optional[PlayerState]:
        state = self._lookup(player_id)
        if state is not None:
            if value:
                state.status |= flag
            else:
                state.status &= ~flag
        return state

    def set_protected(self, player_id: str, value: bool = True) -> None:
        self._set_flag(player_id, Status.PROTECTED, value)

    def set_blessed(self, player_id: str, value: bool = True) -> None:
        self._set_flag(player_id, Status.BLESSED, value)

    def set_silenced(self, player_id: str, value: bool = True) -> None:
        self._set_flag(player_id, Status.SILENCED, value)

    def set_exiled(self, player_id: str, value: bool = True) -> None:
        state = self._set_flag(player_id, Status.EXILED, value)
        if state is not None:
            state.can_vote = not value

    def set_flag(self, player_id: str, flag: Status, value: bool = True) -> None:
        """Set a transient marker flag (bitten, healed, poisoned)."""
        self._set_flag(player_id, flag, value)

    # --- Death -------------------------------------------------------------

    def mark_for_death(self, player_id: str, cause: str, delay: int = 0) -> None:
        """Queue a death; a repeated mark keeps the shorter delay."""
        state = self._lookup(player_id)
        if state is None:
            return
        if state.marked_for_death and state.death_delay <= delay:
            return
        state.marked_for_death = True
        state.killed_by = cause
        state.death_delay = delay

    def kill_player(self, player_id: str, cause: Optional[str] = None) -> None:
        state = self._lookup(player_id)
        if state is None:
            return
        state.status &= ~Status.ALIVE
        state.marked_for_death = False
        state.death_delay = 0
        if cause is not None:
            state.killed_by = cause

    def save_from_death(self, player_id: str) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.marked_for_death = False
            state.death_delay = 0
            state.killed_by = None

    def process_delayed_deaths(self) -> list[str]:
        """Tick every deferred death once.

        Returns:
            Ids of players whose counter reached zero and are now dead.
        """
        newly_dead = []
        for state in self.all_players():
            if state.alive and state.marked_for_death and state.death_delay > 0:
                state.death_delay -= 1
                if state.death_delay == 0:
                    state.status &= ~Status.ALIVE
                    state.marked_for_death = False
                    newly_dead.append(state.id)
        return newly_dead

    # --- Relationships -----------------------------------------------------

    def create_lovers(self, first_id: str, second_id: str) -> bool:
        """Link two players as lovers. Links are permanent once set."""
        first, second = self._lookup(first_id), self._lookup(second_id)
        if first is None or second is None or first_id == second_id:
            return False
        if first.lover_id is not None or second.lover_id is not None:
            return False
        first.lover_id = second_id
        second.lover_id = first_id
        return True

    def create_twins(self, first_id: str, second_id: str) -> bool:
        first, second = self._lookup(first_id), self._lookup(second_id)
        if first is None or second is None or first_id == second_id:
            return False
        if first.twin_id is not None or second.twin_id is not None:
            return False
        first.twin_id = second_id
        second.twin_id = first_id
        return True

    def add_to_cult(self, player_id: str) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.cult_member = True

    # --- Roles -------------------------------------------------------------

    def transform_player(self, player_id: str, role_id: str, team: Team) -> None:
        state = self._lookup(player_id)
        if state is None:
            return
        if state.original_role_id is None:
            state.original_role_id = state.role_id
        state.role_id = role_id
        state.team = Team(team)
        state.transformed = True

    def swap_roles(self, first_id: str, second_id: str) -> None:
        first, second = self._lookup(first_id), self._lookup(second_id)
        if first is None or second is None:
            return
        first.role_id, second.role_id = second.role_id, first.role_id
        first.team, second.team = second.team, first.team

    # --- Abilities and history ---------------------------------------------

    def use_ability(self, player_id: str, ability: str) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.used_abilities.add(ability)

    def set_vote_weight(self, player_id: str, weight: int) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.vote_weight = weight

    def set_last_protected(self, player_id: str, target_id: str) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.last_protected_id = target_id

    def set_last_silenced(self, player_id: str, target_id: str) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.last_silenced_id = target_id

    def set_marked_targets(self, player_id: str, target_ids: Iterable[str]) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.marked_targets = list(target_ids)

    def set_copy_target(self, player_id: str, target_id: str) -> None:
        state = self._lookup(player_id)
        if state is not None:
            state.copy_target_id = target_id

    # --- Pack-wide effects -------------------------------------------------

    def infect_werewolves(self) -> list[str]:
        infected = []
        for state in self.living_by_team(Team.WEREWOLF):
            state.infected = True
            infected.append(state.id)
        return infected

    def clear_werewolf_infection(self, player_ids: Optional[Iterable[str]] = None) -> None:
        targets = self.all_players() if player_ids is None else [
            self._states[pid] for pid in player_ids if pid in self._states
        ]
        for state in targets:
            state.infected = False

    def set_werewolf_kill_bonus(self, bonus: int) -> None:
        for state in self.players_by_team(Team.WEREWOLF):
            state.kill_bonus = bonus

    # --- Phase resets ------------------------------------------------------

    def reset_night_statuses(self) -> None:
        """Clear per-night flags. Blessing is permanent and survives."""
        for state in self._states.values():
            state.status &= ~NIGHT_TRANSIENT

    def reset_day_statuses(self) -> None:
        for state in self._states.values():
            state.status &= ~DAY_TRANSIENT
            state.can_vote = True
