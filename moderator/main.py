"""Main entry point for the werewolf moderator."""

import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .communication.markdown_logger import MarkdownLogger
from .engine.actions import GameAction
from .engine.game import DayReport, Game, GameConfig, NightReport, NightStart
from .engine.roles import CatalogueError, RoleCatalogue, load_default_catalogue
from .engine.win import WinResult


# Load environment variables
load_dotenv()

console = Console()

DEFAULT_CONFIG = "config/game.yaml"
DEFAULT_LOG_DIR = "games"


def load_config(config_path: str = DEFAULT_CONFIG) -> dict:
    """Load game configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        sys.exit(1)

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_catalogue() -> RoleCatalogue:
    """Load the role catalogue, honouring MODERATOR_ROLES."""
    roles_path = os.getenv("MODERATOR_ROLES")
    if roles_path:
        return RoleCatalogue.from_yaml(roles_path)
    return load_default_catalogue()


def display_welcome():
    """Display welcome message."""
    console.print(Panel.fit(
        "[bold red]WEREWOLF[/bold red]\n"
        "[dim]Moderator night resolution[/dim]",
        border_style="red",
    ))
    console.print()


def display_players(game: Game):
    """Display player information."""
    table = Table(title="Players", show_header=True, header_style="bold magenta")
    table.add_column("Seat", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Role", style="red")
    table.add_column("Team", style="blue")

    for player in game.store.all_players():
        table.add_row(str(player.seat + 1), player.name, player.role_id, player.team.value)

    console.print(table)
    console.print()


def _names(game: Game, player_ids: list[str]) -> str:
    return ", ".join(game.get_player(pid).name for pid in player_ids) or "nobody"


def display_night(game: Game, start: NightStart, report: NightReport):
    """Summarize one resolved night."""
    lines = []
    if start.deaths:
        lines.append(f"[red]Died at nightfall:[/red] {_names(game, start.deaths)}")
    for outcome in report.outcomes:
        actor = game.get_player(outcome.actor_id)
        mark = "[green]ok[/green]" if outcome.success else "[yellow]--[/yellow]"
        lines.append(f"{mark} {actor.name} {outcome.kind.value}: {outcome.message}")
    lines.append(f"[red]Deaths:[/red] {_names(game, report.deaths)}")
    if report.saved:
        lines.append(f"[green]Saved:[/green] {_names(game, report.saved)}")
    if report.transformed:
        lines.append(f"[magenta]Transformed:[/magenta] {_names(game, report.transformed)}")
    for effect in start.effects + report.effects:
        lines.append(f"[dim]{effect.message}[/dim]")

    console.print(Panel("\n".join(lines), title=f"Night {report.night_number}", border_style="blue"))


def display_day(game: Game, report: DayReport):
    """Summarize the day's execution."""
    if report.message and report.executed is None and not report.survived:
        text = f"[dim]{report.message}[/dim]"
    elif report.survived:
        text = "[yellow]The condemned player survives the execution.[/yellow]"
    else:
        text = f"[red]{game.get_player(report.executed).name} was executed.[/red]"
    if report.additional_deaths:
        text += f"\n[red]Also died:[/red] {_names(game, report.additional_deaths)}"
    for effect in report.effects:
        text += f"\n[dim]{effect.message}[/dim]"

    console.print(Panel(text, title=f"Day {game.night_number}", border_style="yellow"))


def display_results(game: Game, winner: Optional[WinResult]):
    """Display game results."""
    console.print()

    if winner is None:
        console.print(Panel(
            "[bold yellow]NO WINNER YET[/bold yellow]\n"
            "The script ran out before the game ended.",
            border_style="yellow",
        ))
    else:
        console.print(Panel(
            f"[bold green]{winner.winner.upper()} WINS![/bold green]\n"
            f"{winner.win_condition.replace('_', ' ')}",
            border_style="green",
        ))

    console.print()

    # Final standings
    table = Table(title="Final Standings", show_header=True, header_style="bold")
    table.add_column("Player", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Team", style="blue")
    table.add_column("Status", style="green")

    for player in game.store.all_players():
        status = "[green]Survived[/green]" if player.alive else f"[red]Dead ({player.killed_by})[/red]"
        team_color = "red" if player.team.value == "werewolf" else "green"
        table.add_row(
            player.name,
            player.role_id,
            f"[{team_color}]{player.team.value}[/{team_color}]",
            status,
        )

    console.print(table)
    console.print()

    # Log location
    if game.logger.game_dir:
        console.print(f"[dim]Game log saved to: {game.logger.game_dir}[/dim]")


def build_action(game: Game, entry: dict) -> GameAction:
    player = game.get_player(entry["actor"])
    return GameAction(
        actor_id=entry["actor"],
        role_id=player.role_id if player else "",
        kind=entry["kind"],
        target_ids=entry.get("targets", []),
        sub_action=entry.get("sub_action"),
    )


def play_script(game: Game, config: GameConfig) -> Optional[WinResult]:
    """Run every scripted round until a winner is found."""
    for round_config in config.rounds:
        start = game.start_night_phase()
        if game.is_over:
            break

        for entry in round_config.actions:
            check = game.submit_action(build_action(game, entry))
            if not check:
                console.print(f"[yellow]Rejected {entry['actor']} {entry['kind']}: {check.reason}[/yellow]")

        display_night(game, start, game.resolve_night_phase())
        if game.is_over:
            break

        game.start_day_phase()
        if round_config.execute:
            display_day(game, game.execute_player(round_config.execute))
        else:
            display_day(game, game.skip_execution())

        while game.pending_shooters and not game.is_over:
            display_day(game, game.hunter_shoot(round_config.hunter_shot))
        if game.is_over:
            break

    return game.winner


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    display_welcome()

    # Load configuration
    config_path = argv[0] if argv else os.getenv("MODERATOR_CONFIG", DEFAULT_CONFIG)
    console.print(f"[dim]Loading config from: {config_path}[/dim]")

    try:
        config = GameConfig.from_dict(load_config(config_path))
        logger = MarkdownLogger(base_dir=os.getenv("MODERATOR_LOG_DIR", DEFAULT_LOG_DIR))
        logger.start_game()
        game = Game.from_config(config, catalogue=load_catalogue(), logger=logger)
    except (CatalogueError, KeyError, TypeError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(1)

    display_players(game)

    try:
        winner = play_script(game, config)
        display_results(game, winner)
    except KeyboardInterrupt:
        console.print("\n[yellow]Game interrupted by user.[/yellow]")
        sys.exit(0)


def run():
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run()
