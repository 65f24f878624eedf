"""Role catalogue - static role definitions loaded from YAML."""

from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError


DEFAULT_CATALOGUE_PATH = Path(__file__).resolve().parent.parent / "data" / "roles.yaml"


class CatalogueError(ValueError):
    """Raised when a role catalogue cannot be loaded or is inconsistent."""


class Team(str, Enum):
    """Coarse alignment that decides generic win conditions."""
    VILLAGER = "villager"
    WEREWOLF = "werewolf"
    VAMPIRE = "vampire"
    NEUTRAL = "neutral"


class ActionKind(str, Enum):
    """Kinds of night action a role can submit."""
    PROTECT = "protect"
    BLESS = "bless"
    KILL = "kill"
    HEAL = "heal"
    INVESTIGATE = "investigate"
    DETECT_ROLE = "detect_role"
    SILENCE = "silence"
    EXILE = "exile"
    RECRUIT = "recruit"
    SWAP_ROLES = "swap_roles"
    GAMBLE = "gamble"
    CREATE_LOVERS = "create_lovers"
    MARK_TARGETS = "mark_targets"
    COPY_ROLE = "copy_role"
    DUAL = "dual"  # carries a heal or kill sub-action
    NONE = "none"


class Frequency(str, Enum):
    EVERY_NIGHT = "every_night"
    FIRST_NIGHT_ONLY = "first_night_only"
    ONCE_PER_GAME = "once_per_game"
    CONDITIONAL = "conditional"


class Restriction(str, Enum):
    NO_CONSECUTIVE_TARGET = "no_consecutive_target"
    CANNOT_TARGET_OWN_TEAM = "cannot_target_own_team"


class InformationType(str, Enum):
    """What an investigation reveals."""
    TEAM = "team"
    EXACT_ROLE = "exact_role"
    HAS_SPECIAL_ROLE = "has_special_role"
    SAME_TEAM = "same_team"
    TARGET_OR_ADJACENT_IS_WEREWOLF = "target_or_adjacent_is_werewolf"


class DetectTarget(str, Enum):
    SEER = "seer"
    WEREWOLF = "werewolf"


class RecruitMode(str, Enum):
    CULT = "cult"  # target joins the cult roster
    ALLY = "ally"  # one-time conversion, consumes the actor's usage only


class PassiveKind(str, Enum):
    """Every passive skill a role can carry."""
    LINKED_FATE = "linked_fate"
    TRANSFORMATION = "transformation"
    REVEAL_ROLE = "reveal_role"
    REVENGE = "revenge"
    DELAYED_DEATH = "delayed_death"
    SURVIVE_EXECUTION = "survive_execution"
    DOUBLE_VOTE = "double_vote"
    FALSE_IDENTITY = "false_identity"
    EXPLOSION_ON_DEATH = "explosion_on_death"
    DISEASE_CARRIER = "disease_carrier"
    AUTO_KILL = "auto_kill"
    HIDDEN_ALLEGIANCE = "hidden_allegiance"
    ENABLE_POWER = "enable_power"
    REVENGE_KILL = "revenge_kill"


class PassiveTrigger(str, Enum):
    ON_DEATH = "on_death"
    ON_WEREWOLF_ATTACK = "on_werewolf_attack"
    ON_EXECUTION = "on_execution"
    FIRST_NIGHT = "first_night"
    NIGHT_THREE = "night_three"
    ALWAYS = "always"


class WinCondition(str, Enum):
    VILLAGER_TEAM_WINS = "villager_team_wins"
    WEREWOLF_TEAM_WINS = "werewolf_team_wins"
    VAMPIRE_TEAM_WINS = "vampire_team_wins"
    DIE_BY_EXECUTION = "die_by_execution"
    TARGETS_DEAD_AND_SELF_ALIVE = "targets_dead_and_self_alive"
    BE_LAST_WEREWOLF_ALIVE = "be_last_werewolf_alive"
    ALL_ALIVE_BELONG_TO_CULT = "all_alive_belong_to_cult"
    BE_LAST_TWO_SURVIVORS = "be_last_two_survivors"
    CAUSE_MAXIMUM_CHAOS = "cause_maximum_chaos"


# Role ids answering True to a "seer" role detection
SEER_VARIANTS = frozenset({"seer", "apprentice_seer", "aura_seer", "mystic_seer"})


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ActionTrigger(_Frozen):
    """Condition on global state: a role must already be dead."""
    role_died: str
    killed_by: Optional[str] = None


class NightAction(_Frozen):
    """Descriptor of a role's night action."""
    kind: ActionKind
    frequency: Frequency = Frequency.EVERY_NIGHT
    target_count: int = 1
    restrictions: tuple[Restriction, ...] = ()
    trigger: Optional[ActionTrigger] = None
    can_target_self: bool = True
    detect_target: Optional[DetectTarget] = None
    information: Optional[InformationType] = None
    exclude_first_night: bool = False
    sub_actions: tuple[ActionKind, ...] = ()
    recruit_mode: Optional[RecruitMode] = None
    own_team_exceptions: tuple[str, ...] = ()
    appears_as: Optional[Team] = None


class Passive(_Frozen):
    kind: PassiveKind
    trigger: PassiveTrigger = PassiveTrigger.ALWAYS
    beneficiary: Optional[str] = None
    appears_as: Optional[Team] = None
    becomes: str = "werewolf"
    cause: Optional[str] = None


class OnDeath(_Frozen):
    kind: str = "succession"


class RoleDefinition(_Frozen):
    """A role in the catalogue."""
    id: str
    name: str
    team: Team
    description: str = ""
    night_action: Optional[NightAction] = None
    passive: Optional[Passive] = None
    on_death: Optional[OnDeath] = None
    win_condition: WinCondition
    alternative_wins: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.name


class RoleCatalogue:
    """Read-only lookup of role id -> definition."""

    def __init__(self, roles: list[RoleDefinition]):
        self._roles: dict[str, RoleDefinition] = {}
        for role in roles:
            if role.id in self._roles:
                raise CatalogueError(f"Duplicate role id: {role.id}")
            self._roles[role.id] = role
        self._check_references()

    @classmethod
    def from_yaml(cls, path: Path | str) -> "RoleCatalogue":
        """Load and validate a catalogue file.

        Args:
            path: YAML file holding a top-level ``roles`` list.

        Returns:
            The loaded catalogue.
        """
        path = Path(path)
        if not path.exists():
            raise CatalogueError(f"Role catalogue not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        try:
            roles = [RoleDefinition.model_validate(raw) for raw in data.get("roles", [])]
        except ValidationError as e:
            raise CatalogueError(f"Invalid role catalogue {path}: {e}") from e
        return cls(roles)

    def _check_references(self) -> None:
        for role in self._roles.values():
            action = role.night_action
            if action and action.trigger and action.trigger.role_died not in self._roles:
                raise CatalogueError(
                    f"{role.id}: trigger references unknown role {action.trigger.role_died}"
                )
            passive = role.passive
            if passive and passive.beneficiary and passive.beneficiary not in self._roles:
                raise CatalogueError(
                    f"{role.id}: beneficiary references unknown role {passive.beneficiary}"
                )

    def __contains__(self, role_id: str) -> bool:
        return role_id in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def all_roles(self) -> list[RoleDefinition]:
        return list(self._roles.values())

    def role_by_id(self, role_id: str) -> Optional[RoleDefinition]:
        return self._roles.get(role_id)

    def roles_by_team(self, team: Team) -> list[RoleDefinition]:
        return [role for role in self._roles.values() if role.team == team]

    def night_action(self, role_id: str) -> Optional[NightAction]:
        role = self._roles.get(role_id)
        return role.night_action if role else None

    def passive(self, role_id: str) -> Optional[Passive]:
        role = self._roles.get(role_id)
        return role.passive if role else None

    def has_night_action(self, role_id: str) -> bool:
        action = self.night_action(role_id)
        return action is not None and action.kind != ActionKind.NONE

    def has_passive(self, role_id: str) -> bool:
        return self.passive(role_id) is not None

    def has_special_ability(self, role_id: str) -> bool:
        return self.has_night_action(role_id) or self.has_passive(role_id)

    def win_condition(self, role_id: str) -> Optional[WinCondition]:
        role = self._roles.get(role_id)
        return role.win_condition if role else None

    def appears_as(self, role_id: str, actual: Team) -> Team:
        """Team a role shows to team investigations.

        Args:
            role_id: Role being investigated.
            actual: The holder's current team, used when nothing is spoofed.
        """
        passive = self.passive(role_id)
        if passive and passive.appears_as:
            return passive.appears_as

        action = self.night_action(role_id)
        if action and action.appears_as:
            return action.appears_as

        return actual

    def frequency_allows(self, role_id: str, night_number: int, used: bool) -> bool:
        """Check a role's frequency policy for the given night.

        Conditional actions always pass here; their trigger is checked by the
        resolver against the live game state.
        """
        action = self.night_action(role_id)
        if action is None:
            return False

        if action.frequency == Frequency.EVERY_NIGHT:
            return not (action.exclude_first_night and night_number == 1)
        if action.frequency == Frequency.FIRST_NIGHT_ONLY:
            return night_number == 1
        if action.frequency == Frequency.ONCE_PER_GAME:
            return not used
        if action.frequency == Frequency.CONDITIONAL:
            return True
        return False


def load_default_catalogue() -> RoleCatalogue:
    """Load the catalogue bundled with the package."""
    return RoleCatalogue.from_yaml(DEFAULT_CATALOGUE_PATH)
