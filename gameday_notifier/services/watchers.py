"""Firestore listeners that feed document changes to the event handlers"""
import asyncio
import threading
from typing import Any, Dict, List, Optional

from .event_handlers import EventHandlers
from ..storage.models import ChatMessage, Game
from ..storage.store import Store
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

ADDED = "ADDED"
MODIFIED = "MODIFIED"
REMOVED = "REMOVED"


class StoreWatchers:
    """
    Bridges Firestore snapshot listeners onto the service's event loop

    Listener callbacks arrive on Firestore's own threads. Each change is
    turned into a handler coroutine and scheduled on the loop passed to
    start(). The first snapshot of every listener is the existing data set
    and only seeds state; nothing is sent for it.
    """

    def __init__(self, store: Store, handlers: EventHandlers):
        self.store = store
        self.handlers = handlers
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._watches: List[Any] = []
        self._lock = threading.Lock()
        self._games: Dict[str, Dict[str, Any]] = {}
        self._games_seeded = False
        self._messages_seeded = False

    def start(self, loop: asyncio.AbstractEventLoop):
        """Subscribe to games and chat messages"""
        self.loop = loop
        self._watches.append(self.store.watch_games(self._on_games_snapshot))
        self._watches.append(self.store.watch_messages(self._on_messages_snapshot))
        logger.info("Watching games and team chat messages")

    def stop(self):
        """Unsubscribe every listener"""
        for watch in self._watches:
            try:
                watch.unsubscribe()
            except Exception as e:
                logger.warning(f"Error unsubscribing listener: {e}")
        self._watches = []
        logger.info("Stopped store listeners")

    def _on_games_snapshot(self, snapshot, changes, read_time):
        with self._lock:
            if not self._games_seeded:
                for change in changes:
                    if change.type.name != REMOVED:
                        self._games[change.document.id] = change.document.to_dict() or {}
                self._games_seeded = True
                logger.info(f"Seeded {len(self._games)} games from initial snapshot")
                return

            for change in changes:
                game_id = change.document.id
                kind = change.type.name

                if kind == REMOVED:
                    self._games.pop(game_id, None)
                    continue

                after = change.document.to_dict() or {}
                before = self._games.get(game_id)
                self._games[game_id] = after

                if kind == ADDED:
                    self._submit(self.handlers.on_game_created(Game.from_document(game_id, after)))
                elif kind == MODIFIED:
                    if before is None:
                        logger.debug(f"No previous state for game {game_id}, skipping update")
                        continue
                    self._submit(self.handlers.on_game_updated(
                        Game.from_document(game_id, before),
                        Game.from_document(game_id, after),
                    ))

    def _on_messages_snapshot(self, snapshot, changes, read_time):
        with self._lock:
            if not self._messages_seeded:
                self._messages_seeded = True
                logger.info(f"Skipped {len(changes)} existing chat messages from initial snapshot")
                return

            for change in changes:
                if change.type.name != ADDED:
                    continue

                team_ref = change.document.reference.parent.parent
                if team_ref is None:
                    logger.warning(f"Message {change.document.id} is not under a team, skipping")
                    continue

                message = ChatMessage.from_document(
                    change.document.id, team_ref.id, change.document.to_dict() or {}
                )
                self._submit(self.handlers.on_chat_message_created(message))

    def _submit(self, coro):
        """Run a handler coroutine on the service loop and log its failure"""
        if self.loop is None or self.loop.is_closed():
            coro.close()
            logger.warning("Event loop unavailable, dropping store event")
            return

        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        future.add_done_callback(_log_handler_failure)


def _log_handler_failure(future):
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Event handler failed: {error}", exc_info=error)
