"""Player status flags."""

from enum import Flag, auto


class Status(Flag):
    """Status set carried by every player.

    BLESSED is permanent once set. The other flags are cleared by one of the
    two reset passes below.
    """
    NONE = 0
    ALIVE = auto()
    BITTEN = auto()
    PROTECTED = auto()
    HEALED = auto()
    POISONED = auto()
    BLESSED = auto()
    SILENCED = auto()
    EXILED = auto()


NIGHT_TRANSIENT = Status.BITTEN | Status.PROTECTED | Status.HEALED | Status.POISONED
DAY_TRANSIENT = Status.SILENCED | Status.EXILED

_DISPLAY_ORDER = [
    Status.ALIVE,
    Status.BITTEN,
    Status.PROTECTED,
    Status.HEALED,
    Status.POISONED,
    Status.BLESSED,
    Status.SILENCED,
    Status.EXILED,
]


def status_names(flags: Status) -> list[str]:
    """Human readable names of the flags set in ``flags``."""
    return [flag.name.title() for flag in _DISPLAY_ORDER if flag in flags]
