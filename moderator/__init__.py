"""Werewolf moderator - night-action resolution engine."""

__version__ = "0.1.0"
