"""Win condition evaluation."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .roles import RoleCatalogue, Team, WinCondition
from .state import DeathCause, PlayerState, PlayerStateStore


class WinnerType(str, Enum):
    TEAM = "team"
    INDIVIDUAL = "individual"
    GROUP = "group"
    NONE = "none"


@dataclass(frozen=True)
class WinResult:
    """Outcome of one win check. Never cached between state changes."""
    has_winner: bool
    winner_type: WinnerType = WinnerType.NONE
    winner: Optional[str] = None  # team value, group tag or role id
    win_condition: Optional[str] = None
    winner_ids: tuple[str, ...] = ()

    @classmethod
    def none(cls) -> "WinResult":
        return cls(has_winner=False)


class WinConditionEvaluator:
    """Checks the store for a winner in fixed priority order.

    Individual conditions come first, then group conditions, then the
    generic team conditions. The first match wins.
    """

    def __init__(self, store: PlayerStateStore, catalogue: RoleCatalogue):
        self.store = store
        self.catalogue = catalogue

    def check_win_conditions(self) -> WinResult:
        for check in (
            self._check_execution_wins,
            self._check_marked_target_wins,
            self._check_lone_wolf,
            self._check_group_wins,
            self._check_team_wins,
        ):
            result = check()
            if result.has_winner:
                return result
        return WinResult.none()

    def check_player_win(self, player_id: str) -> WinResult:
        """Return the current result if ``player_id`` is on the winning side."""
        state = self.store.get(player_id)
        if state is None:
            return WinResult.none()

        result = self.check_win_conditions()
        if not result.has_winner:
            return result
        if result.winner_type == WinnerType.TEAM:
            return result if state.team.value == result.winner else WinResult.none()
        if player_id in result.winner_ids:
            return result
        # e.g. cupid shares the lovers' win without being one of them
        role = self.catalogue.role_by_id(state.role_id)
        if role is not None and result.winner in role.alternative_wins:
            return result
        return WinResult.none()

    def _win_condition(self, player: PlayerState) -> Optional[WinCondition]:
        return self.catalogue.win_condition(player.role_id)

    # --- Individual --------------------------------------------------------

    def _check_execution_wins(self) -> WinResult:
        # Dead players count here
        for player in self.store.all_players():
            if self._win_condition(player) != WinCondition.DIE_BY_EXECUTION:
                continue
            if not player.alive and player.killed_by == DeathCause.EXECUTION.value:
                return WinResult(
                    has_winner=True,
                    winner_type=WinnerType.INDIVIDUAL,
                    winner=player.role_id,
                    win_condition=WinCondition.DIE_BY_EXECUTION.value,
                    winner_ids=(player.id,),
                )
        return WinResult.none()

    def _check_marked_target_wins(self) -> WinResult:
        for player in self.store.living_players():
            if self._win_condition(player) != WinCondition.TARGETS_DEAD_AND_SELF_ALIVE:
                continue
            if not player.marked_targets:
                continue
            if all(not self.store.is_alive(pid) for pid in player.marked_targets):
                return WinResult(
                    has_winner=True,
                    winner_type=WinnerType.INDIVIDUAL,
                    winner=player.role_id,
                    win_condition=WinCondition.TARGETS_DEAD_AND_SELF_ALIVE.value,
                    winner_ids=(player.id,),
                )
        return WinResult.none()

    def _check_lone_wolf(self) -> WinResult:
        wolves = self.store.living_by_team(Team.WEREWOLF)
        if len(wolves) != 1:
            return WinResult.none()
        wolf = wolves[0]
        if self._win_condition(wolf) != WinCondition.BE_LAST_WEREWOLF_ALIVE:
            return WinResult.none()
        if not self._werewolves_have_parity():
            return WinResult.none()
        return WinResult(
            has_winner=True,
            winner_type=WinnerType.INDIVIDUAL,
            winner=wolf.role_id,
            win_condition=WinCondition.BE_LAST_WEREWOLF_ALIVE.value,
            winner_ids=(wolf.id,),
        )

    # --- Groups ------------------------------------------------------------

    def _check_group_wins(self) -> WinResult:
        living = self.store.living_players()

        if len(living) == 2:
            first, second = living
            if first.lover_id == second.id and second.lover_id == first.id:
                return self._group_result("lovers", WinCondition.BE_LAST_TWO_SURVIVORS, living)
            if first.twin_id == second.id and second.twin_id == first.id:
                return self._group_result("twins", WinCondition.BE_LAST_TWO_SURVIVORS, living)

        leaders = [
            p for p in living
            if self._win_condition(p) == WinCondition.ALL_ALIVE_BELONG_TO_CULT
        ]
        if leaders and all(p.cult_member or p in leaders for p in living):
            return self._group_result("cult", WinCondition.ALL_ALIVE_BELONG_TO_CULT, living)

        return WinResult.none()

    @staticmethod
    def _group_result(group: str, condition: WinCondition, members: list[PlayerState]) -> WinResult:
        return WinResult(
            has_winner=True,
            winner_type=WinnerType.GROUP,
            winner=group,
            win_condition=condition.value,
            winner_ids=tuple(p.id for p in members),
        )

    # --- Teams -------------------------------------------------------------

    def _werewolves_have_parity(self) -> bool:
        living = self.store.living_players()
        wolves = sum(1 for p in living if p.team == Team.WEREWOLF)
        return wolves > 0 and wolves >= len(living) - wolves

    def _check_team_wins(self) -> WinResult:
        living = self.store.living_players()
        teams = {p.team for p in living}

        # Neutrals never block the vampires
        if Team.VAMPIRE in teams and not teams & {Team.WEREWOLF, Team.VILLAGER}:
            return self._team_result(Team.VAMPIRE, WinCondition.VAMPIRE_TEAM_WINS)

        if self._werewolves_have_parity():
            return self._team_result(Team.WEREWOLF, WinCondition.WEREWOLF_TEAM_WINS)

        if Team.WEREWOLF not in teams and Team.VAMPIRE not in teams and Team.VILLAGER in teams:
            return self._team_result(Team.VILLAGER, WinCondition.VILLAGER_TEAM_WINS)

        return WinResult.none()

    def _team_result(self, team: Team, condition: WinCondition) -> WinResult:
        return WinResult(
            has_winner=True,
            winner_type=WinnerType.TEAM,
            winner=team.value,
            win_condition=condition.value,
            winner_ids=tuple(p.id for p in self.store.living_by_team(team)),
        )
