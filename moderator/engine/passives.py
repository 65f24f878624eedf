"""Passive skills - reactions to deaths, attacks and executions."""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .roles import PassiveKind, PassiveTrigger, RoleCatalogue, Team
from .state import DeathCause, PlayerState, PlayerStateStore


class EffectKind(str, Enum):
    """Signals emitted by passive skills."""
    HUNTER_SHOT_PENDING = "hunter_shot_pending"
    HUNTER_SHOT = "hunter_shot"
    EXPLOSION = "explosion"
    WEREWOLF_REVENGE = "werewolf_revenge"
    POWER_ENABLED = "power_enabled"
    SUCCESSION = "succession"
    LINKED_FATE = "linked_fate"
    COPY_ROLE = "copy_role"
    TRANSFORMATION = "transformation"
    DELAYED_DEATH = "delayed_death"
    INFECTION = "infection"
    SURVIVED_EXECUTION = "survived_execution"
    AUTO_KILL = "auto_kill"
    ROLE_REVEAL = "role_reveal"


@dataclass(frozen=True)
class PassiveEffect:
    kind: EffectKind
    source_id: str
    message: str
    target_ids: tuple[str, ...] = ()
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeathReport:
    """Everything a finalized death set in motion."""
    additional_deaths: list[str] = field(default_factory=list)
    effects: list[PassiveEffect] = field(default_factory=list)
    pending_shooters: list[str] = field(default_factory=list)

    def merge(self, other: "DeathReport") -> None:
        for pid in other.additional_deaths:
            if pid not in self.additional_deaths:
                self.additional_deaths.append(pid)
        self.effects.extend(other.effects)
        for pid in other.pending_shooters:
            if pid not in self.pending_shooters:
                self.pending_shooters.append(pid)


@dataclass
class AttackOutcome:
    should_die: bool
    effects: list[PassiveEffect] = field(default_factory=list)
    transformed: bool = False


class _Cascade:
    """Worklist of deaths still waiting for their passives to run."""

    def __init__(self, report: DeathReport):
        self.report = report
        self.pending: deque[str] = deque()
        self.seen: set[str] = set()

    def push(self, player_id: str) -> None:
        if player_id not in self.seen:
            self.seen.add(player_id)
            self.pending.append(player_id)


class PassiveSkillHandler:
    """Runs passive skills against the store.

    Death processing never recurses: each death queues the deaths it causes
    and the queue is drained in order, so every player is processed once.
    """

    def __init__(self, store: PlayerStateStore, catalogue: RoleCatalogue):
        self.store = store
        self.catalogue = catalogue
        self._fired_events: set[str] = set()

    # --- Deaths ------------------------------------------------------------

    def process_player_death(self, player_id: str, cause: Optional[str] = None) -> DeathReport:
        """Trigger every reaction to a finalized death.

        Args:
            player_id: The player who just died.
            cause: Death cause tag; defaults to the player's recorded cause.

        Returns:
            Deaths caused by the cascade (the original death excluded),
            emitted effects and players owed a revenge shot.
        """
        report = DeathReport()
        cascade = _Cascade(report)
        state = self.store.get(player_id)
        if state is None:
            return report
        # Record the cause first so the root's own triggers can see it
        if cause is not None and not state.alive and state.killed_by is None:
            self.store.kill_player(player_id, cause)

        cascade.push(player_id)
        while cascade.pending:
            dead_id = cascade.pending.popleft()
            state = self.store.get(dead_id)
            if state is None:
                continue
            self._run_on_death_passive(state, cascade)
            self._run_on_death_skill(state, cascade)
            self._run_linked_fate(state, cascade)
            self._run_copy_trigger(state, cascade)

        return report

    def _cascade_kill(self, target_id: str, cause: DeathCause, cascade: _Cascade) -> None:
        self.store.kill_player(target_id, cause.value)
        if target_id not in cascade.report.additional_deaths:
            cascade.report.additional_deaths.append(target_id)
        cascade.push(target_id)

    def _run_on_death_passive(self, state: PlayerState, cascade: _Cascade) -> None:
        passive = self.catalogue.passive(state.role_id)
        if passive is None or passive.trigger != PassiveTrigger.ON_DEATH:
            return
        reaction = ON_DEATH_REACTIONS[passive.kind]
        if reaction is not None:
            reaction(self, state, cascade)

    def _revenge_kill(self, state: PlayerState, cascade: _Cascade) -> None:
        cascade.report.pending_shooters.append(state.id)
        cascade.report.effects.append(PassiveEffect(
            kind=EffectKind.HUNTER_SHOT_PENDING,
            source_id=state.id,
            message=f"{state.name} may take one shot before leaving play",
        ))

    def _explode(self, state: PlayerState, cascade: _Cascade) -> None:
        neighbours = self.store.get_adjacent_players(state.id)
        for neighbour in neighbours:
            self._cascade_kill(neighbour, DeathCause.EXPLOSION, cascade)
        cascade.report.effects.append(PassiveEffect(
            kind=EffectKind.EXPLOSION,
            source_id=state.id,
            target_ids=tuple(neighbours),
            message=f"{state.name} exploded, killing {len(neighbours)} neighbour(s)",
        ))

    def _pack_revenge(self, state: PlayerState, cascade: _Cascade) -> None:
        self.store.set_werewolf_kill_bonus(1)
        cascade.report.effects.append(PassiveEffect(
            kind=EffectKind.WEREWOLF_REVENGE,
            source_id=state.id,
            message="The pack may kill one extra player next night",
        ))

    def _enable_power(self, state: PlayerState, cascade: _Cascade) -> None:
        passive = self.catalogue.passive(state.role_id)
        if passive.beneficiary is None:
            return
        if passive.cause is not None and state.killed_by != passive.cause:
            return
        cascade.report.effects.append(PassiveEffect(
            kind=EffectKind.POWER_ENABLED,
            source_id=state.id,
            message=f"The death of {state.name} unlocks the {passive.beneficiary} power",
            data={"beneficiary": passive.beneficiary},
        ))

    def _run_on_death_skill(self, state: PlayerState, cascade: _Cascade) -> None:
        role = self.catalogue.role_by_id(state.role_id)
        if role is None or role.on_death is None:
            return
        if role.on_death.kind == "succession":
            cascade.report.effects.append(PassiveEffect(
                kind=EffectKind.SUCCESSION,
                source_id=state.id,
                message=f"{state.name} may name a successor",
            ))

    def _run_linked_fate(self, state: PlayerState, cascade: _Cascade) -> None:
        for partner_id, bond in ((state.lover_id, "lover"), (state.twin_id, "twin")):
            if partner_id is None or not self.store.is_alive(partner_id):
                continue
            self._cascade_kill(partner_id, DeathCause.LINKED_FATE, cascade)
            cascade.report.effects.append(PassiveEffect(
                kind=EffectKind.LINKED_FATE,
                source_id=state.id,
                target_ids=(partner_id,),
                message=f"The {bond} of {state.name} dies with them",
                data={"bond": bond},
            ))

    def _run_copy_trigger(self, state: PlayerState, cascade: _Cascade) -> None:
        for player in self.store.living_players():
            if player.copy_target_id != state.id:
                continue
            cascade.report.effects.append(PassiveEffect(
                kind=EffectKind.COPY_ROLE,
                source_id=player.id,
                target_ids=(state.id,),
                message=f"{player.name} inherits the role of {state.name}",
                data={"role_id": state.role_id, "team": state.team},
            ))

    # --- Attacks -----------------------------------------------------------

    def process_attack(self, target_id: str, attacker_team: Team, attacker_role_id: str) -> AttackOutcome:
        """Decide whether an attack kills, and apply on-attack passives."""
        state = self.store.get(target_id)
        if state is None:
            return AttackOutcome(should_die=True)

        if state.protected or state.blessed:
            return AttackOutcome(should_die=False)

        passive = self.catalogue.passive(state.role_id)
        if (
            passive is not None
            and passive.trigger == PassiveTrigger.ON_WEREWOLF_ATTACK
            and attacker_team == Team.WEREWOLF
        ):
            reaction = ON_ATTACK_REACTIONS[passive.kind]
            if reaction is not None:
                return reaction(self, state)

        return AttackOutcome(should_die=True)

    def _transform(self, state: PlayerState) -> AttackOutcome:
        passive = self.catalogue.passive(state.role_id)
        new_role = passive.becomes
        role = self.catalogue.role_by_id(new_role)
        new_team = role.team if role else Team.WEREWOLF
        self.store.transform_player(state.id, new_role, new_team)
        return AttackOutcome(
            should_die=False,
            transformed=True,
            effects=[PassiveEffect(
                kind=EffectKind.TRANSFORMATION,
                source_id=state.id,
                message=f"{state.name} turns into a {new_role} instead of dying",
                data={"role_id": new_role, "team": new_team},
            )],
        )

    def _delay_death(self, state: PlayerState) -> AttackOutcome:
        self.store.mark_for_death(state.id, DeathCause.WEREWOLF.value, delay=1)
        return AttackOutcome(
            should_die=False,
            effects=[PassiveEffect(
                kind=EffectKind.DELAYED_DEATH,
                source_id=state.id,
                message=f"{state.name} survives the attack until next night",
            )],
        )

    def _infect_pack(self, state: PlayerState) -> AttackOutcome:
        infected = self.store.infect_werewolves()
        return AttackOutcome(
            should_die=True,
            effects=[PassiveEffect(
                kind=EffectKind.INFECTION,
                source_id=state.id,
                target_ids=tuple(infected),
                message="The pack is infected and cannot kill next night",
            )],
        )

    # --- Day ---------------------------------------------------------------

    def process_execution(self, target_id: str) -> AttackOutcome:
        state = self.store.get(target_id)
        if state is None:
            return AttackOutcome(should_die=True)

        passive = self.catalogue.passive(state.role_id)
        ability = PassiveKind.SURVIVE_EXECUTION.value
        if (
            passive is not None
            and passive.kind == PassiveKind.SURVIVE_EXECUTION
            and not self.store.has_used_ability(target_id, ability)
        ):
            self.store.use_ability(target_id, ability)
            return AttackOutcome(
                should_die=False,
                effects=[PassiveEffect(
                    kind=EffectKind.SURVIVED_EXECUTION,
                    source_id=target_id,
                    message=f"{state.name} reveals their role and survives the execution",
                    data={"role_id": state.role_id},
                )],
            )
        return AttackOutcome(should_die=True)

    def execute_hunter_shot(self, hunter_id: str, target_id: Optional[str]) -> DeathReport:
        """Resolve a revenge shot. Protection does not stop it."""
        report = DeathReport()
        if target_id is None or not self.store.is_alive(target_id):
            report.effects.append(PassiveEffect(
                kind=EffectKind.HUNTER_SHOT,
                source_id=hunter_id,
                message="The shot goes into the sky",
            ))
            return report

        self.store.kill_player(target_id, DeathCause.HUNTER_SHOT.value)
        report.additional_deaths.append(target_id)
        report.effects.append(PassiveEffect(
            kind=EffectKind.HUNTER_SHOT,
            source_id=hunter_id,
            target_ids=(target_id,),
            message=f"The shot kills {self.store.get(target_id).name}",
        ))
        report.merge(self.process_player_death(target_id, DeathCause.HUNTER_SHOT.value))
        return report

    # --- Scripted nights ---------------------------------------------------

    def process_first_night(self) -> DeathReport:
        report = DeathReport()
        if "first_night" in self._fired_events:
            return report
        self._fired_events.add("first_night")

        for player in self.store.living_players():
            passive = self.catalogue.passive(player.role_id)
            if passive is None or passive.trigger != PassiveTrigger.FIRST_NIGHT:
                continue
            if passive.kind != PassiveKind.AUTO_KILL:
                continue
            self.store.kill_player(player.id, DeathCause.AUTO_KILL.value)
            report.additional_deaths.append(player.id)
            report.effects.append(PassiveEffect(
                kind=EffectKind.AUTO_KILL,
                source_id=player.id,
                message=f"{player.name} dies on the first night to speak from beyond",
            ))
            report.merge(self.process_player_death(player.id, DeathCause.AUTO_KILL.value))
        return report

    def process_night_three(self) -> DeathReport:
        report = DeathReport()
        if "night_three" in self._fired_events:
            return report
        self._fired_events.add("night_three")

        for player in self.store.living_players():
            passive = self.catalogue.passive(player.role_id)
            if passive is None or passive.trigger != PassiveTrigger.NIGHT_THREE:
                continue
            if passive.kind != PassiveKind.REVEAL_ROLE or player.transformed:
                continue
            report.effects.append(PassiveEffect(
                kind=EffectKind.ROLE_REVEAL,
                source_id=player.id,
                message=f"{player.name} learns their true role",
                data={"role_id": player.role_id},
            ))
        return report


DeathReaction = Callable[[PassiveSkillHandler, PlayerState, _Cascade], None]
AttackReaction = Callable[[PassiveSkillHandler, PlayerState], AttackOutcome]

# Every passive kind must appear in both tables; None means "no reaction".
ON_DEATH_REACTIONS: dict[PassiveKind, Optional[DeathReaction]] = {
    PassiveKind.REVENGE_KILL: PassiveSkillHandler._revenge_kill,
    PassiveKind.EXPLOSION_ON_DEATH: PassiveSkillHandler._explode,
    PassiveKind.REVENGE: PassiveSkillHandler._pack_revenge,
    PassiveKind.ENABLE_POWER: PassiveSkillHandler._enable_power,
    PassiveKind.LINKED_FATE: None,
    PassiveKind.TRANSFORMATION: None,
    PassiveKind.REVEAL_ROLE: None,
    PassiveKind.DELAYED_DEATH: None,
    PassiveKind.SURVIVE_EXECUTION: None,
    PassiveKind.DOUBLE_VOTE: None,
    PassiveKind.FALSE_IDENTITY: None,
    PassiveKind.DISEASE_CARRIER: None,
    PassiveKind.AUTO_KILL: None,
    PassiveKind.HIDDEN_ALLEGIANCE: None,
}

ON_ATTACK_REACTIONS: dict[PassiveKind, Optional[AttackReaction]] = {
    PassiveKind.TRANSFORMATION: PassiveSkillHandler._transform,
    PassiveKind.DELAYED_DEATH: PassiveSkillHandler._delay_death,
    PassiveKind.DISEASE_CARRIER: PassiveSkillHandler._infect_pack,
    PassiveKind.LINKED_FATE: None,
    PassiveKind.REVEAL_ROLE: None,
    PassiveKind.REVENGE: None,
    PassiveKind.SURVIVE_EXECUTION: None,
    PassiveKind.DOUBLE_VOTE: None,
    PassiveKind.FALSE_IDENTITY: None,
    PassiveKind.EXPLOSION_ON_DEATH: None,
    PassiveKind.AUTO_KILL: None,
    PassiveKind.HIDDEN_ALLEGIANCE: None,
    PassiveKind.ENABLE_POWER: None,
    PassiveKind.REVENGE_KILL: None,
}

for _table in (ON_DEATH_REACTIONS, ON_ATTACK_REACTIONS):
    _missing = set(PassiveKind) - set(_table)
    if _missing:
        raise RuntimeError(f"Passive kinds without a reaction entry: {sorted(k.value for k in _missing)}")
