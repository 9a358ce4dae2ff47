"""Hands resolved tokens to the push client and prunes dead tokens"""
import asyncio
from typing import List, Optional

from .push_client import PushClient
from ..storage.models import DispatchResult, NotificationPayload
from ..storage.store import Store
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class NotificationDispatcher:
    """Single entry point every handler and reminder uses to send"""

    def __init__(self, push_client: PushClient, store: Store, prune_invalid_tokens: bool = False):
        self.push_client = push_client
        self.store = store
        self.prune_invalid_tokens = prune_invalid_tokens

    async def dispatch(self, tokens: List[str], payload: NotificationPayload) -> Optional[DispatchResult]:
        """
        Send a payload to the given tokens

        A transport that raises is logged and reported as every token
        failing; sends are not retried.

        Returns:
            The dispatch result, or None when there was nobody to send to
        """
        if not tokens:
            logger.debug(f"No tokens for {payload.type}, skipping dispatch")
            return None

        try:
            result = await self.push_client.send_multicast(tokens, payload)
        except Exception as e:
            logger.error(f"Dispatch of {payload.type} to {len(tokens)} tokens failed: {e}")
            return DispatchResult(failure_count=len(tokens))

        if self.prune_invalid_tokens and result.invalid_tokens:
            try:
                updated = await asyncio.to_thread(self.store.remove_tokens, result.invalid_tokens)
                logger.info(f"Pruned {len(result.invalid_tokens)} dead tokens from {updated} users")
            except Exception as e:
                logger.warning(f"Failed to prune dead tokens: {e}")

        return result
