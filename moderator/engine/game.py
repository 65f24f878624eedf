"""Main game engine: phase flow around the night resolver."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..communication.markdown_logger import MarkdownLogger
from .actions import ActionCheck, ActionOutcome, GameAction
from .passives import DeathReport, EffectKind, PassiveEffect, PassiveSkillHandler
from .phases import GamePhase, PhaseManager, PhaseState
from .resolver import ActionResolver
from .roles import ActionKind, CatalogueError, PassiveKind, RoleCatalogue, load_default_catalogue
from .state import DeathCause, PlayerSetup, PlayerState, PlayerStateStore
from .status import status_names
from .win import WinConditionEvaluator, WinResult

log = logging.getLogger(__name__)

MAYOR_VOTE_WEIGHT = 2


@dataclass
class RoundConfig:
    """One scripted night and the day after it."""
    actions: list[dict] = field(default_factory=list)
    execute: Optional[str] = None
    hunter_shot: Optional[str] = None


@dataclass
class GameConfig:
    """Configuration for a scripted game."""
    players: list[dict] = field(default_factory=list)
    twins: Optional[tuple[str, str]] = None
    mayor: Optional[str] = None
    rounds: list[RoundConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "GameConfig":
        twins = data.get("twins")
        return cls(
            players=list(data.get("players", [])),
            twins=tuple(twins) if twins else None,
            mayor=data.get("mayor"),
            rounds=[
                RoundConfig(
                    actions=list(r.get("actions") or []),
                    execute=r.get("execute"),
                    hunter_shot=r.get("hunter_shot"),
                )
                for r in data.get("rounds") or []
            ],
        )

    def player_setups(self) -> list[PlayerSetup]:
        return [
            PlayerSetup(id=p["id"], name=p.get("name", p["id"]), role_id=p["role"])
            for p in self.players
        ]


@dataclass
class NightStart:
    """What happened while the night was being set up."""
    night_number: int
    deaths: list[str] = field(default_factory=list)
    effects: list[PassiveEffect] = field(default_factory=list)
    win: Optional[WinResult] = None


@dataclass
class NightReport:
    """Results from a night phase, cascades included."""
    night_number: int
    deaths: list[str] = field(default_factory=list)
    saved: list[str] = field(default_factory=list)
    transformed: list[str] = field(default_factory=list)
    investigations: dict[tuple[str, str], Any] = field(default_factory=dict)
    outcomes: list[ActionOutcome] = field(default_factory=list)
    effects: list[PassiveEffect] = field(default_factory=list)
    pending_shooters: list[str] = field(default_factory=list)
    win: Optional[WinResult] = None


@dataclass
class DayReport:
    """Results from a day execution or revenge shot."""
    executed: Optional[str] = None
    survived: bool = False
    additional_deaths: list[str] = field(default_factory=list)
    effects: list[PassiveEffect] = field(default_factory=list)
    pending_shooters: list[str] = field(default_factory=list)
    win: Optional[WinResult] = None
    message: Optional[str] = None


@dataclass
class GameSnapshot:
    """Read-only view of the game for display."""
    phase: str
    night_number: int
    alive: list[str]
    dead: list[str]
    players: list[dict]
    pending_shooters: list[str]
    winner: Optional[WinResult] = None


class Game:
    """Moderates one game.

    Owns one store, resolver, passive handler and win evaluator. Once a
    winner is found every mutating call becomes a no-op.
    """

    def __init__(
        self,
        players: Iterable[PlayerSetup],
        catalogue: Optional[RoleCatalogue] = None,
        logger: Optional[MarkdownLogger] = None,
    ):
        """Initialize the game.

        Args:
            players: Role assignments in seating order.
            catalogue: Role table; the bundled one when omitted.
            logger: Optional markdown logger.

        Raises:
            CatalogueError: A player holds a role the catalogue lacks.
        """
        self.catalogue = catalogue or load_default_catalogue()
        self.logger = logger or MarkdownLogger()
        self.phase_manager = PhaseManager()

        self.store = PlayerStateStore([self._with_team(p) for p in players])
        self.passives = PassiveSkillHandler(self.store, self.catalogue)
        self.resolver = ActionResolver(self.store, self.catalogue, self.passives)
        self.win_evaluator = WinConditionEvaluator(self.store, self.catalogue)

        for player in self.store.all_players():
            passive = self.catalogue.passive(player.role_id)
            if passive is not None and passive.kind == PassiveKind.DOUBLE_VOTE:
                self.store.set_vote_weight(player.id, MAYOR_VOTE_WEIGHT)

        self.winner: Optional[WinResult] = None
        self._pending_shooters: list[str] = []
        self._pending_copies: dict[str, PassiveEffect] = {}

        self.logger.log_setup([
            {"name": p.name, "role": p.role_id, "team": p.team.value}
            for p in self.store.all_players()
        ])

    @classmethod
    def from_config(
        cls,
        config: GameConfig,
        catalogue: Optional[RoleCatalogue] = None,
        logger: Optional[MarkdownLogger] = None,
    ) -> "Game":
        game = cls(config.player_setups(), catalogue=catalogue, logger=logger)
        if config.twins:
            game.create_twins(*config.twins)
        if config.mayor:
            game.assign_mayor(config.mayor)
        return game

    def _with_team(self, setup: PlayerSetup) -> PlayerSetup:
        if setup.team is not None:
            return setup
        role = self.catalogue.role_by_id(setup.role_id)
        if role is None:
            raise CatalogueError(f"Unknown role {setup.role_id!r} for player {setup.id}")
        return PlayerSetup(id=setup.id, name=setup.name, role_id=setup.role_id, team=role.team)

    # --- Queries -----------------------------------------------------------

    @property
    def phase(self) -> GamePhase:
        return self.phase_manager.phase

    @property
    def night_number(self) -> int:
        return self.phase_manager.state.round_number

    @property
    def is_over(self) -> bool:
        return self.phase_manager.is_over

    @property
    def pending_shooters(self) -> list[str]:
        return list(self._pending_shooters)

    @property
    def pending_copies(self) -> list[str]:
        return list(self._pending_copies)

    def get_player(self, player_id: str) -> Optional[PlayerState]:
        return self.store.get(player_id)

    @property
    def alive_players(self) -> list[PlayerState]:
        """Get all alive players."""
        return self.store.living_players()

    def check_win_conditions(self) -> WinResult:
        return self.win_evaluator.check_win_conditions()

    def check_player_win(self, player_id: str) -> WinResult:
        return self.win_evaluator.check_player_win(player_id)

    def wake_order(self) -> list[PlayerState]:
        """Players to call tonight, in moderator order."""
        if self.phase != GamePhase.NIGHT:
            return []
        return self.resolver.wake_order(self.night_number)

    def snapshot(self) -> GameSnapshot:
        players = [
            {
                "id": p.id,
                "name": p.name,
                "role": p.role_id,
                "team": p.team.value,
                "alive": p.alive,
                "status": status_names(p.status),
                "killed_by": p.killed_by,
                "vote_weight": p.vote_weight,
            }
            for p in self.store.all_players()
        ]
        return GameSnapshot(
            phase=self.phase_manager.state.phase_name,
            night_number=self.night_number,
            alive=[p.id for p in self.store.all_players() if p.alive],
            dead=[p.id for p in self.store.all_players() if not p.alive],
            players=players,
            pending_shooters=self.pending_shooters,
            winner=self.winner,
        )

    # --- Night -------------------------------------------------------------

    def start_night_phase(self) -> NightStart:
        """Begin the next night.

        Clears last night's flags and the past day's silence and exile, fires
        the scripted first-night and night-three events, then finalizes any
        deferred deaths that are now due.

        Returns:
            Deaths and effects produced before any action is submitted.
        """
        if self.is_over:
            return NightStart(night_number=self.night_number, win=self.winner)

        state = self.phase_manager.start_night()
        night = state.round_number
        self.resolver.night_number = night
        self.resolver.clear_pending_actions()
        self.store.reset_night_statuses()
        self.store.reset_day_statuses()
        self.logger.log_phase_start(state.phase_name)

        result = NightStart(night_number=night)
        if night == 1:
            self._absorb(self.passives.process_first_night(), result.deaths, result.effects)
        if night == 3:
            self._absorb(self.passives.process_night_three(), result.deaths, result.effects)

        for player_id in self.store.process_delayed_deaths():
            if player_id not in result.deaths:
                result.deaths.append(player_id)
            self._absorb(self.passives.process_player_death(player_id), result.deaths, result.effects)

        self._log_deaths(result.deaths)
        self._log_effects(result.effects)
        result.win = self._update_winner()
        return result

    def can_perform_action(
        self,
        actor_id: str,
        kind: ActionKind,
        target_ids: list[str],
        sub_action: Optional[ActionKind] = None,
    ) -> ActionCheck:
        if self.phase != GamePhase.NIGHT:
            return ActionCheck(False, "not in night phase")
        return self.resolver.can_perform_action(
            actor_id, kind, target_ids, self.night_number, sub_action=sub_action
        )

    def submit_action(self, action: GameAction) -> ActionCheck:
        """Queue a night action. Rejections change nothing."""
        if self.phase != GamePhase.NIGHT:
            return ActionCheck(False, "not in night phase")
        return self.resolver.submit_action(action)

    def resolve_night_phase(self) -> NightReport:
        """Resolve the queued actions, then cascade every death.

        Returns:
            The night report; empty outside the night phase.
        """
        if self.phase != GamePhase.NIGHT:
            return NightReport(night_number=self.night_number, win=self.winner)

        resolution = self.resolver.resolve_night_phase()
        report = NightReport(
            night_number=self.night_number,
            deaths=list(resolution.deaths),
            saved=list(resolution.saved),
            transformed=list(resolution.transformed),
            investigations=dict(resolution.investigations),
            outcomes=list(resolution.outcomes),
            effects=list(resolution.effects),
        )

        for player_id in resolution.deaths:
            self._absorb(self.passives.process_player_death(player_id), report.deaths, report.effects)

        self._log_outcomes(report.outcomes)
        self._log_deaths(report.deaths)
        self._log_effects(report.effects)
        report.pending_shooters = self.pending_shooters
        report.win = self._update_winner()
        return report

    # --- Day ---------------------------------------------------------------

    def start_day_phase(self) -> PhaseState:
        """Move to the day. Silence and exile from last night stay in force."""
        if self.phase == GamePhase.NIGHT:
            self.resolver.clear_pending_actions()
            state = self.phase_manager.start_day()
            self.logger.log_phase_start(state.phase_name)
        return self.phase_manager.state

    def execute_player(self, player_id: str) -> DayReport:
        """Carry out the village's execution.

        Args:
            player_id: The condemned player.

        Returns:
            The execution report. A report with only ``message`` set means the
            call was rejected and nothing changed.
        """
        if self.phase != GamePhase.DAY:
            return DayReport(message="not in day phase")
        if self.phase_manager.state.executed:
            return DayReport(message="execution already used today")
        target = self.store.get(player_id)
        if target is None or not target.alive:
            return DayReport(message="target unavailable")

        self.phase_manager.mark_executed()
        outcome = self.passives.process_execution(player_id)
        if not outcome.should_die:
            self.logger.log_execution(target.name, survived=True)
            self._log_effects(outcome.effects)
            return DayReport(survived=True, effects=list(outcome.effects))

        self.store.kill_player(player_id, DeathCause.EXECUTION.value)
        self.logger.log_execution(target.name)

        report = DayReport(executed=player_id)
        self._absorb(
            self.passives.process_player_death(player_id, DeathCause.EXECUTION.value),
            report.additional_deaths,
            report.effects,
        )
        self._log_deaths(report.additional_deaths)
        self._log_effects(report.effects)
        report.pending_shooters = self.pending_shooters
        report.win = self._update_winner()
        return report

    def skip_execution(self) -> DayReport:
        if self.phase != GamePhase.DAY:
            return DayReport(message="not in day phase")
        self.phase_manager.mark_executed()
        self.logger.log_execution(None)
        return DayReport(message="no execution")

    def hunter_shoot(self, target_id: Optional[str], hunter_id: Optional[str] = None) -> DayReport:
        """Fire a pending revenge shot.

        Args:
            target_id: Who to shoot; None shoots into the sky.
            hunter_id: Which pending shooter fires; the oldest when omitted.
        """
        if self.is_over:
            return DayReport(message="game is over", win=self.winner)
        if hunter_id is None and self._pending_shooters:
            hunter_id = self._pending_shooters[0]
        if hunter_id not in self._pending_shooters:
            return DayReport(message="no pending shot")

        self._pending_shooters.remove(hunter_id)
        report = DayReport()
        self._absorb(
            self.passives.execute_hunter_shot(hunter_id, target_id),
            report.additional_deaths,
            report.effects,
        )
        self._log_deaths(report.additional_deaths)
        self._log_effects(report.effects)
        report.pending_shooters = self.pending_shooters
        report.win = self._update_winner()
        return report

    # --- Setup and successions ---------------------------------------------

    def create_twins(self, first_id: str, second_id: str) -> bool:
        if self.is_over:
            return False
        return self.store.create_twins(first_id, second_id)

    def assign_mayor(self, player_id: str) -> bool:
        if self.is_over or not self.store.is_alive(player_id):
            return False
        self.store.set_vote_weight(player_id, MAYOR_VOTE_WEIGHT)
        return True

    def transfer_mayor(self, from_id: str, to_id: str) -> bool:
        """Hand the mayor's double vote to a living successor."""
        if self.is_over or not self.store.is_alive(to_id) or from_id not in self.store:
            return False
        self.store.set_vote_weight(from_id, 1)
        self.store.set_vote_weight(to_id, MAYOR_VOTE_WEIGHT)
        return True

    def apply_copy_role(self, copier_id: str) -> bool:
        """Give a copier the role its target held at death."""
        if self.is_over:
            return False
        effect = self._pending_copies.pop(copier_id, None)
        if effect is None or not self.store.is_alive(copier_id):
            return False
        self.store.transform_player(copier_id, effect.data["role_id"], effect.data["team"])
        return True

    # --- Internals ---------------------------------------------------------

    def _absorb(self, report: DeathReport, deaths: list[str], effects: list[PassiveEffect]) -> None:
        for player_id in report.additional_deaths:
            if player_id not in deaths:
                deaths.append(player_id)
        effects.extend(report.effects)
        for shooter_id in report.pending_shooters:
            if shooter_id not in self._pending_shooters:
                self._pending_shooters.append(shooter_id)
        for effect in report.effects:
            if effect.kind == EffectKind.COPY_ROLE:
                self._pending_copies[effect.source_id] = effect

    def _update_winner(self) -> Optional[WinResult]:
        result = self.win_evaluator.check_win_conditions()
        if not result.has_winner:
            return None

        self.winner = result
        self.phase_manager.end_game()
        log.info("Game over: %s (%s)", result.winner, result.win_condition)
        self.logger.log_game_end(
            winner=result.winner,
            win_condition=result.win_condition,
            surviving_players=[
                {"name": p.name, "role": p.role_id} for p in self.store.living_players()
            ],
            all_players=[
                {"name": p.name, "role": p.role_id, "team": p.team.value, "alive": p.alive}
                for p in self.store.all_players()
            ],
        )
        return result

    def _log_outcomes(self, outcomes: list[ActionOutcome]) -> None:
        phase = f"night_{self.night_number}"
        for outcome in outcomes:
            actor = self.store.get(outcome.actor_id)
            targets = [self.store.get(pid) for pid in outcome.target_ids]
            self.logger.log_night_action(
                phase,
                role=actor.role_id if actor else "unknown",
                player=actor.name if actor else outcome.actor_id,
                action=outcome.kind.value,
                target=", ".join(t.name for t in targets if t is not None) or None,
                result=outcome.message,
            )

    def _log_deaths(self, deaths: list[str]) -> None:
        phase = self.phase_manager.state.phase_name
        for player_id in deaths:
            state = self.store.get(player_id)
            self.logger.log_death(state.name, state.killed_by or "unknown", phase, state.role_id)

    def _log_effects(self, effects: list[PassiveEffect]) -> None:
        for effect in effects:
            self.logger.log_effect(effect.message)
