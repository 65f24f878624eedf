"""Markdown logger for moderated games."""

from datetime import datetime
from pathlib import Path
from typing import Optional


class MarkdownLogger:
    """Writes game events to markdown files.

    Nothing is written until ``start_game`` creates the game directory.
    """

    def __init__(self, base_dir: str = "games"):
        """Initialize the logger.

        Args:
            base_dir: Base directory for game logs.
        """
        self.base_dir = Path(base_dir)
        self.game_dir: Optional[Path] = None
        self.game_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.game_dir is not None

    def start_game(self, game_id: Optional[str] = None) -> Path:
        """Start logging a new game.

        Args:
            game_id: Optional game identifier. If not provided, uses timestamp.

        Returns:
            Path to the game directory.
        """
        if game_id is None:
            timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
            game_id = f"game_{timestamp}"

        self.game_id = game_id
        self.game_dir = self.base_dir / game_id
        self.game_dir.mkdir(parents=True, exist_ok=True)

        # Create initial game state file
        self._write_game_header()

        return self.game_dir

    @property
    def _game_file(self) -> Path:
        return self.game_dir / "game_state.md"

    def _write_game_header(self) -> None:
        """Write the initial game state file header."""
        with open(self._game_file, "w") as f:
            f.write(f"# Werewolf Game - {self.game_id}\n\n")
            f.write(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
            f.write("---\n\n")

    def log_setup(self, players: list[dict]) -> None:
        """Log game setup information.

        Args:
            players: List of player info dicts (name, role, team).
        """
        if not self.enabled:
            return
        with open(self._game_file, "a") as f:
            f.write("## Players\n\n")
            f.write("| Seat | Player | Role | Team |\n")
            f.write("|------|--------|------|------|\n")
            for seat, p in enumerate(players, start=1):
                f.write(f"| {seat} | {p['name']} | {p['role']} | {p['team']} |\n")
            f.write("\n---\n\n")

    def log_phase_start(self, phase: str) -> None:
        """Log the start of a game phase.

        Args:
            phase: Phase name (e.g., "night_1", "day_1").
        """
        if not self.enabled:
            return
        with open(self._game_file, "a") as f:
            f.write(f"## {phase.replace('_', ' ').title()}\n\n")

    def log_night_action(
        self,
        phase: str,
        role: str,
        player: str,
        action: str,
        target: Optional[str] = None,
        result: Optional[str] = None,
    ) -> None:
        """Log one resolved night action (moderator eyes only).

        Args:
            phase: Night phase.
            role: Role that took action.
            player: Player who took action.
            action: What action.
            target: Target of action.
            result: Result of action.
        """
        if not self.enabled:
            return
        filepath = self.game_dir / f"{phase}_actions.md"

        # Append to file
        mode = "a" if filepath.exists() else "w"
        with open(filepath, mode) as f:
            if mode == "w":
                f.write(f"# Night Actions - {phase.replace('_', ' ').title()}\n\n")
                f.write("*This file records all night actions for game review*\n\n")
                f.write("---\n\n")

            f.write(f"**{player}** ({role}): {action}")
            if target:
                f.write(f" -> {target}")
            if result:
                f.write(f" [{result}]")
            f.write("\n\n")

    def log_death(
        self,
        player_name: str,
        cause: str,
        phase: str,
        role_revealed: Optional[str] = None,
    ) -> None:
        """Log a player death.

        Args:
            player_name: Who died.
            cause: How they died.
            phase: When they died.
            role_revealed: Their role (revealed on death).
        """
        if not self.enabled:
            return
        with open(self._game_file, "a") as f:
            f.write("### Death\n\n")
            f.write(f"**{player_name}** died ({cause.replace('_', ' ')}) during {phase.replace('_', ' ')}.\n")
            if role_revealed:
                f.write(f"*They were a {role_revealed}.*\n")
            f.write("\n")

    def log_effect(self, message: str) -> None:
        if not self.enabled:
            return
        with open(self._game_file, "a") as f:
            f.write(f"- *{message}*\n\n")

    def log_execution(self, player_name: Optional[str], survived: bool = False) -> None:
        """Log the day's execution result.

        Args:
            player_name: Who was put to death, or None when the village skipped.
            survived: The target revealed a survival power.
        """
        if not self.enabled:
            return
        with open(self._game_file, "a") as f:
            f.write("### Execution\n\n")
            if player_name is None:
                f.write("*The village chose not to execute anyone.*\n\n")
            elif survived:
                f.write(f"**{player_name}** survived the execution.\n\n")
            else:
                f.write(f"**{player_name}** was executed by the village.\n\n")

    def log_game_end(
        self,
        winner: str,
        win_condition: Optional[str],
        surviving_players: list[dict],
        all_players: list[dict],
    ) -> None:
        """Log the game ending.

        Args:
            winner: Winning team, group or role.
            win_condition: The condition that ended the game.
            surviving_players: Players still alive.
            all_players: All players with roles revealed.
        """
        if not self.enabled:
            return
        with open(self._game_file, "a") as f:
            f.write("---\n\n")
            f.write("# GAME OVER\n\n")
            f.write(f"## Winner: {winner.upper()}\n\n")
            if win_condition:
                f.write(f"*{win_condition.replace('_', ' ')}*\n\n")

            f.write("## Survivors\n\n")
            if surviving_players:
                for p in surviving_players:
                    f.write(f"- {p['name']} ({p['role']})\n")
            else:
                f.write("*No survivors*\n")

            f.write("\n## All Players\n\n")
            f.write("| Player | Role | Team | Survived |\n")
            f.write("|--------|------|------|----------|\n")
            for p in all_players:
                survived = "Yes" if p.get("alive", False) else "No"
                f.write(f"| {p['name']} | {p['role']} | {p['team']} | {survived} |\n")

            f.write(f"\n\nEnded: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
