"""Action resolver - validates night actions and applies them in fixed passes."""

import logging
from typing import Any, Callable, Optional

from .actions import ActionCheck, GameAction, NightResolution
from .passives import PassiveSkillHandler
from .roles import (
    SEER_VARIANTS,
    ActionKind,
    ActionTrigger,
    DetectTarget,
    Frequency,
    InformationType,
    NightAction,
    RecruitMode,
    Restriction,
    RoleCatalogue,
    Team,
)
from .state import DeathCause, PlayerState, PlayerStateStore
from .status import Status

logger = logging.getLogger(__name__)


# Moderator call order. Resolution itself always runs the eight passes below.
ACTION_PRIORITY: dict[ActionKind, int] = {
    ActionKind.CREATE_LOVERS: 1,
    ActionKind.COPY_ROLE: 2,
    ActionKind.MARK_TARGETS: 3,
    ActionKind.BLESS: 5,
    ActionKind.PROTECT: 10,
    ActionKind.DUAL: 15,
    ActionKind.KILL: 20,
    ActionKind.HEAL: 21,
    ActionKind.INVESTIGATE: 30,
    ActionKind.DETECT_ROLE: 31,
    ActionKind.SILENCE: 40,
    ActionKind.EXILE: 41,
    ActionKind.RECRUIT: 50,
    ActionKind.SWAP_ROLES: 60,
    ActionKind.GAMBLE: 70,
    ActionKind.NONE: 100,
}

# Investigation-type actions may target dead players
_INFORMATION_KINDS = {ActionKind.INVESTIGATE, ActionKind.DETECT_ROLE}

_KILL_CAUSES = {
    Team.WEREWOLF: DeathCause.WEREWOLF,
    Team.VAMPIRE: DeathCause.VAMPIRE,
}


class ActionResolver:
    """Queues night actions and resolves them against the store."""

    def __init__(
        self,
        store: PlayerStateStore,
        catalogue: RoleCatalogue,
        passives: Optional[PassiveSkillHandler] = None,
    ):
        self.store = store
        self.catalogue = catalogue
        self.passives = passives or PassiveSkillHandler(store, catalogue)
        self.night_number = 1
        self._queue: list[GameAction] = []
        self._submitted = 0

        self._passes: list[Callable[[list[GameAction], NightResolution, set[str]], None]] = [
            self._resolve_protection,
            self._resolve_kills,
            self._resolve_heals,
            self._resolve_information,
            self._resolve_status,
            self._resolve_recruits,
            self._resolve_other,
            self._finalize_deaths,
        ]

    @property
    def pending_actions(self) -> list[GameAction]:
        return list(self._queue)

    def clear_pending_actions(self) -> None:
        self._queue.clear()

    # --- Validation --------------------------------------------------------

    def can_perform_action(
        self,
        actor_id: str,
        kind: ActionKind,
        target_ids: list[str],
        night_number: Optional[int] = None,
        sub_action: Optional[ActionKind] = None,
    ) -> ActionCheck:
        """Check whether an action is legal right now.

        Checks run in a fixed order and stop at the first failure.

        Args:
            actor_id: Acting player.
            kind: Action kind being attempted.
            target_ids: Chosen targets.
            night_number: Night to check against; defaults to the current one.
            sub_action: Heal or kill, for dual actions.

        Returns:
            An ``ActionCheck`` carrying the failure reason when not allowed.
        """
        night = self.night_number if night_number is None else night_number
        kind = ActionKind(kind)

        actor = self.store.get(actor_id)
        if actor is None:
            return ActionCheck(False, "Player not found")
        if not actor.alive:
            return ActionCheck(False, "Player is dead")
        if actor.exiled:
            return ActionCheck(False, "Player is exiled")

        night_action = self.catalogue.night_action(actor.role_id)
        if night_action is None or night_action.kind == ActionKind.NONE:
            return ActionCheck(False, "Role has no night action")
        if night_action.kind != kind:
            return ActionCheck(False, f"Role cannot perform {kind.value}")
        if sub_action is not None and ActionKind(sub_action) not in night_action.sub_actions:
            return ActionCheck(False, f"Role cannot perform {ActionKind(sub_action).value}")

        used = self.store.has_used_ability(actor_id, kind.value)
        if not self.catalogue.frequency_allows(actor.role_id, night, used):
            return ActionCheck(False, "Action not available this night")
        if sub_action is not None and self.store.has_used_ability(actor_id, ActionKind(sub_action).value):
            return ActionCheck(False, f"{ActionKind(sub_action).value} already used")

        if night_action.trigger is not None and not self._trigger_met(night_action.trigger):
            return ActionCheck(False, f"Requires {night_action.trigger.role_died} to have died")

        for restriction in night_action.restrictions:
            reason = self._check_restriction(actor, night_action, restriction, target_ids)
            if reason:
                return ActionCheck(False, reason)

        for target_id in target_ids:
            target = self.store.get(target_id)
            if target is None:
                return ActionCheck(False, f"Target {target_id} not found")
            if not target.alive and kind not in _INFORMATION_KINDS:
                return ActionCheck(False, "Target is dead")

        if not night_action.can_target_self and actor_id in target_ids:
            return ActionCheck(False, "Cannot target self")

        if len(target_ids) > self._max_targets(actor, night_action):
            return ActionCheck(False, "Too many targets")

        return ActionCheck(True)

    def _trigger_met(self, trigger: ActionTrigger) -> bool:
        for player in self.store.all_players():
            if player.role_id != trigger.role_died or player.alive:
                continue
            if trigger.killed_by is None or player.killed_by == trigger.killed_by:
                return True
        return False

    def _check_restriction(
        self,
        actor: PlayerState,
        night_action: NightAction,
        restriction: Restriction,
        target_ids: list[str],
    ) -> Optional[str]:
        if restriction == Restriction.NO_CONSECUTIVE_TARGET:
            previous = {actor.last_protected_id, actor.last_silenced_id} - {None}
            if previous & set(target_ids):
                return "Cannot target same person consecutively"
        elif restriction == Restriction.CANNOT_TARGET_OWN_TEAM:
            for target_id in target_ids:
                target = self.store.get(target_id)
                if target is None or target.team != actor.team:
                    continue
                if target.role_id not in night_action.own_team_exceptions:
                    return f"Cannot target own team ({actor.team.value})"
        return None

    def _max_targets(self, actor: PlayerState, night_action: NightAction) -> int:
        limit = night_action.target_count
        if night_action.kind == ActionKind.KILL and actor.team == Team.WEREWOLF:
            limit += self.store.werewolf_kill_bonus()
        return limit

    def submit_action(self, action: GameAction) -> ActionCheck:
        """Validate and queue an action for this night.

        A rejected action leaves every piece of state untouched.
        """
        actor = self.store.get(action.actor_id)
        if actor is not None and actor.role_id != action.role_id:
            return ActionCheck(False, f"Player does not hold role {action.role_id}")

        check = self.can_perform_action(
            action.actor_id,
            action.kind,
            action.target_ids,
            self.night_number,
            sub_action=action.sub_action,
        )
        if not check.allowed:
            logger.debug("Rejected %s from %s: %s", action.kind.value, action.actor_id, check.reason)
            return check

        self._submitted += 1
        action.order = self._submitted
        self._queue.append(action)
        return ActionCheck(True, "Action queued")

    def wake_order(self, night_number: Optional[int] = None) -> list[PlayerState]:
        """Living players who may act tonight, in moderator call order."""
        night = self.night_number if night_number is None else night_number
        awake = []
        for player in self.store.living_players():
            night_action = self.catalogue.night_action(player.role_id)
            if night_action is None or night_action.kind == ActionKind.NONE:
                continue
            used = self.store.has_used_ability(player.id, night_action.kind.value)
            if not self.catalogue.frequency_allows(player.role_id, night, used):
                continue
            if night_action.trigger is not None and not self._trigger_met(night_action.trigger):
                continue
            awake.append(player)
        return sorted(
            awake,
            key=lambda p: (ACTION_PRIORITY[self.catalogue.night_action(p.role_id).kind], p.seat),
        )

    # --- Resolution --------------------------------------------------------

    def resolve_night_phase(self) -> NightResolution:
        """Drain the queue and apply every action.

        Returns:
            The night's deaths, saves, transformations, investigation
            payloads and per-action outcome log.
        """
        result = NightResolution()
        actions = list(self._queue)
        infected = {p.id for p in self.store.all_players() if p.infected}

        try:
            for resolve_pass in self._passes:
                resolve_pass(actions, result, infected)
        finally:
            self._queue.clear()
            self.store.clear_werewolf_infection(infected)
            self.store.set_werewolf_kill_bonus(0)

        return result

    def _night_action(self, action: GameAction) -> Optional[NightAction]:
        actor = self.store.get(action.actor_id)
        role_id = actor.role_id if actor else action.role_id
        return self.catalogue.night_action(role_id)

    def _consume(self, action: GameAction, ability: Optional[str] = None) -> None:
        """Record usage for once-per-game actions (or an explicit key)."""
        if ability is not None:
            self.store.use_ability(action.actor_id, ability)
            return
        night_action = self._night_action(action)
        if night_action is not None and night_action.frequency == Frequency.ONCE_PER_GAME:
            self.store.use_ability(action.actor_id, action.kind.value)

    def _resolve_protection(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if action.kind == ActionKind.PROTECT:
                for target_id in action.target_ids:
                    self.store.set_protected(target_id)
                    self.store.set_last_protected(action.actor_id, target_id)
                self._consume(action)
                result.record(action, True, "Protection applied")

            elif action.kind == ActionKind.BLESS:
                for target_id in action.target_ids:
                    self.store.set_blessed(target_id)
                self._consume(action, ActionKind.BLESS.value)
                result.record(action, True, "Blessing applied permanently")

    def _resolve_kills(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if action.kind == ActionKind.DUAL and action.sub_action not in (ActionKind.HEAL, ActionKind.KILL):
                logger.warning("Skipping dual action from %s without a sub-action", action.actor_id)
                result.record(action, False, "Dual action has no valid sub-action")
                continue
            if not action.is_kind(ActionKind.KILL):
                continue

            actor = self.store.get(action.actor_id)
            team = actor.team if actor else Team.NEUTRAL
            if team == Team.WEREWOLF and action.actor_id in infected:
                result.record(action, False, "The pack is infected and cannot kill", kind=ActionKind.KILL)
                continue

            cause = _KILL_CAUSES.get(team, DeathCause.NIGHT_KILL)
            for target_id in action.target_ids:
                self._apply_kill(action, target_id, team, cause, result)

            if action.kind == ActionKind.DUAL:
                self._consume(action, ActionKind.KILL.value)
            else:
                self._consume(action)

    def _apply_kill(
        self,
        action: GameAction,
        target_id: str,
        team: Team,
        cause: DeathCause,
        result: NightResolution,
    ) -> None:
        target = self.store.get(target_id)
        if target is None or not target.alive:
            result.record(action, False, "Target unavailable", [target_id], kind=ActionKind.KILL)
            return

        if target.protected or target.blessed:
            result.add_saved(target_id)
            result.record(action, False, "Target was protected", [target_id], kind=ActionKind.KILL)
            return

        if team == Team.WEREWOLF:
            self.store.set_flag(target_id, Status.BITTEN)
            attack = self.passives.process_attack(target_id, team, action.role_id)
            result.effects.extend(attack.effects)
            if attack.transformed:
                if target_id not in result.transformed:
                    result.transformed.append(target_id)
                result.record(action, False, "Target transformed instead of dying", [target_id], kind=ActionKind.KILL)
                return
            if not attack.should_die:
                result.record(action, True, "Target will die next night", [target_id], kind=ActionKind.KILL)
                return
        else:
            self.store.set_flag(target_id, Status.POISONED)

        self.store.mark_for_death(target_id, cause.value, delay=0)
        result.record(action, True, "Target marked for death", [target_id], kind=ActionKind.KILL)

    def _resolve_heals(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if not action.is_kind(ActionKind.HEAL):
                continue
            for target_id in action.target_ids:
                target = self.store.get(target_id)
                if target is None or not target.marked_for_death:
                    result.record(action, False, "Target was not in danger", [target_id], kind=ActionKind.HEAL)
                    continue
                self.store.save_from_death(target_id)
                self.store.set_flag(target_id, Status.HEALED)
                result.add_saved(target_id)
                self._consume(action, ActionKind.HEAL.value)
                result.record(action, True, "Target saved from death", [target_id], kind=ActionKind.HEAL)

    def _resolve_information(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if action.kind == ActionKind.INVESTIGATE:
                self._investigate(action, result)
                self._consume(action)

            elif action.kind == ActionKind.DETECT_ROLE:
                night_action = self._night_action(action)
                detect_target = night_action.detect_target if night_action else None
                for target_id in action.target_ids:
                    detected = self._detect_role(target_id, detect_target)
                    result.investigations[(action.actor_id, target_id)] = detected
                    message = "Target matches" if detected else "Target does not match"
                    result.record(action, True, message, [target_id], data=detected)
                self._consume(action)

    def _investigate(self, action: GameAction, result: NightResolution) -> None:
        night_action = self._night_action(action)
        information = night_action.information if night_action else None

        if information == InformationType.SAME_TEAM:
            if len(action.target_ids) != 2:
                result.record(action, False, "Same-team check requires exactly two targets")
                return
            first, second = (self.store.get(pid) for pid in action.target_ids)
            if first is None or second is None:
                result.record(action, False, "Target unavailable")
                return
            same = first.team == second.team
            for target_id in action.target_ids:
                result.investigations[(action.actor_id, target_id)] = same
            result.record(action, True, "Investigation complete", data=same)
            return

        for target_id in action.target_ids:
            payload = self._investigation_payload(target_id, information)
            result.investigations[(action.actor_id, target_id)] = payload
            result.record(action, True, "Investigation complete", [target_id], data=payload)

    def _investigation_payload(self, target_id: str, information: Optional[InformationType]) -> Any:
        target = self.store.get(target_id)
        if target is None:
            return None

        if information == InformationType.EXACT_ROLE:
            return target.role_id
        if information == InformationType.HAS_SPECIAL_ROLE:
            return self.catalogue.has_special_ability(target.role_id)
        if information == InformationType.TARGET_OR_ADJACENT_IS_WEREWOLF:
            checked = [target_id, *self.store.get_adjacent_players(target_id)]
            return any(self.store.get(pid).team == Team.WEREWOLF for pid in checked)
        return self.catalogue.appears_as(target.role_id, target.team)

    def _detect_role(self, target_id: str, detect_target: Optional[DetectTarget]) -> bool:
        target = self.store.get(target_id)
        if target is None:
            return False
        if detect_target == DetectTarget.SEER:
            return target.role_id in SEER_VARIANTS
        if detect_target == DetectTarget.WEREWOLF:
            return target.team == Team.WEREWOLF
        return False

    def _resolve_status(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if action.kind == ActionKind.SILENCE:
                for target_id in action.target_ids:
                    self.store.set_silenced(target_id)
                    self.store.set_last_silenced(action.actor_id, target_id)
                self._consume(action)
                result.record(action, True, "Target silenced for next day")

            elif action.kind == ActionKind.EXILE:
                for target_id in action.target_ids:
                    self.store.set_exiled(target_id)
                self._consume(action)
                result.record(action, True, "Target exiled for next day")

    def _resolve_recruits(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if action.kind != ActionKind.RECRUIT:
                continue
            night_action = self._night_action(action)
            mode = night_action.recruit_mode if night_action else None

            if mode == RecruitMode.ALLY:
                self._consume(action, ActionKind.RECRUIT.value)
                result.record(action, True, "Target converted to an ally")
            else:
                for target_id in action.target_ids:
                    self.store.add_to_cult(target_id)
                self._consume(action)
                result.record(action, True, "Target recruited to the cult")

    def _resolve_other(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for action in actions:
            if action.kind == ActionKind.CREATE_LOVERS:
                if len(action.target_ids) != 2:
                    result.record(action, False, "Lovers require exactly two targets")
                    continue
                if not self.store.create_lovers(*action.target_ids):
                    result.record(action, False, "Targets cannot be linked")
                    continue
                self._consume(action)
                result.record(action, True, "Lovers created")

            elif action.kind == ActionKind.MARK_TARGETS:
                self.store.set_marked_targets(action.actor_id, action.target_ids)
                self._consume(action)
                result.record(action, True, "Targets marked")

            elif action.kind == ActionKind.COPY_ROLE:
                if len(action.target_ids) != 1:
                    result.record(action, False, "Copy requires exactly one target")
                    continue
                self.store.set_copy_target(action.actor_id, action.target_ids[0])
                self._consume(action)
                result.record(action, True, "Copy target set")

            elif action.kind == ActionKind.SWAP_ROLES:
                if len(action.target_ids) != 2:
                    result.record(action, False, "Swap requires exactly two targets")
                    continue
                self.store.swap_roles(*action.target_ids)
                self._consume(action, ActionKind.SWAP_ROLES.value)
                result.record(action, True, "Roles swapped")

            elif action.kind == ActionKind.GAMBLE:
                self._gamble(action, result)

    def _gamble(self, action: GameAction, result: NightResolution) -> None:
        if len(action.target_ids) != 1:
            result.record(action, False, "Gamble requires exactly one target")
            return
        target = self.store.get(action.target_ids[0])
        if target is None:
            result.record(action, False, "Target unavailable")
            return

        if target.team == Team.WEREWOLF:
            self.store.mark_for_death(action.actor_id, DeathCause.GAMBLE.value, delay=0)
            result.record(action, False, "Gambler picked a werewolf and dies")
        else:
            self.store.mark_for_death(target.id, DeathCause.GAMBLE.value, delay=0)
            result.record(action, True, "Target killed")
        self._consume(action)

    def _finalize_deaths(self, actions: list[GameAction], result: NightResolution, infected: set[str]) -> None:
        for state in self.store.all_players():
            if state.alive and state.marked_for_death and state.death_delay == 0:
                self.store.kill_player(state.id)
                result.deaths.append(state.id)
