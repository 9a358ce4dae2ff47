"""Firestore document store operations"""
from datetime import datetime
from typing import Callable, List, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .models import Game, Team, User
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

USERS = "users"
TEAMS = "teams"
GAMES = "games"
MESSAGES = "messages"


class Store:
    """Read-through access to users, teams and games plus reminder flag writes"""

    def __init__(self, client):
        """
        Initialize the store

        Args:
            client: A google.cloud.firestore.Client (from firebase_admin.firestore.client)
        """
        self.client = client

    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID, None if the document does not exist"""
        snapshot = self.client.collection(USERS).document(user_id).get()
        if not snapshot.exists:
            return None
        return User.from_document(snapshot.id, snapshot.to_dict() or {})

    def get_team(self, team_id: str) -> Optional[Team]:
        """Get a team by ID, None if the document does not exist"""
        snapshot = self.client.collection(TEAMS).document(team_id).get()
        if not snapshot.exists:
            return None
        return Team.from_document(snapshot.id, snapshot.to_dict() or {})

    def get_game(self, game_id: str) -> Optional[Game]:
        """Get a game by ID, None if the document does not exist"""
        snapshot = self.client.collection(GAMES).document(game_id).get()
        if not snapshot.exists:
            return None
        return Game.from_document(snapshot.id, snapshot.to_dict() or {})

    def query_games_in_window(
        self,
        start: datetime,
        end: datetime,
        unsent_flag: Optional[str] = None
    ) -> List[Game]:
        """
        Get active games with start <= dateTime < end

        Args:
            start: Inclusive lower bound
            end: Exclusive upper bound
            unsent_flag: Optional flag field that must still be False

        Returns:
            Games ordered as the store returns them
        """
        query = (
            self.client.collection(GAMES)
            .where(filter=FieldFilter("isActive", "==", True))
            .where(filter=FieldFilter("dateTime", ">=", start))
            .where(filter=FieldFilter("dateTime", "<", end))
        )
        if unsent_flag:
            query = query.where(filter=FieldFilter(unsent_flag, "==", False))

        return [Game.from_document(doc.id, doc.to_dict() or {}) for doc in query.stream()]

    def mark_reminder_sent(self, game_id: str, flag_field: str):
        """Set one reminder flag with a merge write, leaving sibling fields alone"""
        self.client.collection(GAMES).document(game_id).set({flag_field: True}, merge=True)

    def remove_tokens(self, tokens: List[str]) -> int:
        """
        Remove device tokens from every user that holds them

        Returns:
            Number of user documents updated
        """
        updated = 0
        for token in dict.fromkeys(tokens):
            query = self.client.collection(USERS).where(
                filter=FieldFilter("fcmTokens", "array_contains", token)
            )
            for doc in query.stream():
                doc.reference.update({"fcmTokens": firestore.ArrayRemove([token])})
                updated += 1
                logger.info(f"Removed stale token {token[:12]}... from user {doc.id}")
        return updated

    def watch_games(self, callback: Callable):
        """Subscribe to changes on the games collection, returns the Watch handle"""
        return self.client.collection(GAMES).on_snapshot(callback)

    def watch_messages(self, callback: Callable):
        """Subscribe to changes on every team's messages sub-collection"""
        return self.client.collection_group(MESSAGES).on_snapshot(callback)
