"""Team and game lookups that treat missing documents as a no-op"""
from typing import Optional

from ..storage.models import Game, Team
from ..storage.store import Store
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


def fetch_team(store: Store, team_id: Optional[str]) -> Optional[Team]:
    """Get a team, or None when the ID is blank or the team is gone"""
    if not team_id:
        logger.debug("No team ID given")
        return None

    team = store.get_team(team_id)
    if team is None:
        logger.debug(f"Team {team_id} not found")
    return team


def fetch_game(store: Store, game_id: Optional[str]) -> Optional[Game]:
    """Get a game, or None when the ID is blank or the game is gone"""
    if not game_id:
        logger.debug("No game ID given")
        return None

    game = store.get_game(game_id)
    if game is None:
        logger.debug(f"Game {game_id} not found")
    return game
