"""Reactions to game and chat message changes in the store"""
import asyncio
from typing import Optional

from .dispatcher import NotificationDispatcher
from .entity_lookup import fetch_team
from .recipient_resolver import RecipientResolver
from ..storage.models import (
    ChatMessage,
    DispatchResult,
    Game,
    NotificationCategory,
    NotificationPayload,
)
from ..storage.store import Store
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class EventHandlers:
    """
    One method per store trigger

    Trigger delivery is at-least-once, so a replayed event sends the
    notification again. Handlers return the dispatch result, or None when
    nothing was sent.
    """

    def __init__(self, store: Store, resolver: RecipientResolver, dispatcher: NotificationDispatcher):
        self.store = store
        self.resolver = resolver
        self.dispatcher = dispatcher

    async def on_game_created(self, game: Game) -> Optional[DispatchResult]:
        """Tell the team's members about a newly scheduled game"""
        team = await asyncio.to_thread(fetch_team, self.store, game.team_id)
        if team is None:
            return None

        tokens = await asyncio.to_thread(
            self.resolver.resolve_tokens, team.member_ids, NotificationCategory.TEAM_ANNOUNCEMENTS
        )
        if not tokens:
            logger.debug(f"No recipients for new game {game.id}")
            return None

        payload = NotificationPayload(
            title="New game scheduled",
            body="Your team has a new game.",
            data={"type": "game_created", "gameId": game.id, "teamId": team.id},
        )
        logger.info(f"Notifying {len(tokens)} devices about new game {game.id}")
        return await self.dispatcher.dispatch(tokens, payload)

    async def on_game_updated(self, before: Game, after: Game) -> Optional[DispatchResult]:
        """Tell the team admin when attendance on a game changed"""
        if before.confirmations == after.confirmations:
            return None

        team = await asyncio.to_thread(fetch_team, self.store, after.team_id)
        if team is None:
            return None

        admin_ids = [team.admin_id] if team.admin_id else []
        tokens = await asyncio.to_thread(
            self.resolver.resolve_tokens, admin_ids, NotificationCategory.TEAM_ANNOUNCEMENTS
        )
        if not tokens:
            logger.debug(f"No admin devices to notify for game {after.id}")
            return None

        payload = NotificationPayload(
            title="Game attendance updated",
            body="Someone changed their status for an upcoming game.",
            data={"type": "confirmation_changed", "gameId": after.id, "teamId": team.id},
        )
        logger.info(f"Notifying admin of team {team.id} about attendance on game {after.id}")
        return await self.dispatcher.dispatch(tokens, payload)

    async def on_chat_message_created(self, message: ChatMessage) -> Optional[DispatchResult]:
        """Fan a chat message out to everyone on the team but its sender"""
        team = await asyncio.to_thread(fetch_team, self.store, message.team_id)
        if team is None:
            return None

        recipient_ids = [uid for uid in team.member_ids if uid != message.sender_id]
        tokens = await asyncio.to_thread(
            self.resolver.resolve_tokens, recipient_ids, NotificationCategory.CHAT_MESSAGES
        )
        if not tokens:
            logger.debug(f"No recipients for message {message.id} in team {team.id}")
            return None

        payload = NotificationPayload(
            title=f"New message in {team.name or 'team chat'}",
            body=message.text,
            data={"type": "chat_message", "teamId": team.id, "messageId": message.id},
        )
        logger.info(f"Notifying {len(tokens)} devices about message {message.id}")
        return await self.dispatcher.dispatch(tokens, payload)
