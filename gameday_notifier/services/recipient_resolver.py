"""Resolve user IDs to the device tokens that should receive a notification"""
from typing import List, Optional, Sequence

from ..storage.models import NotificationCategory
from ..storage.store import Store
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class RecipientResolver:
    """Turns a list of user IDs into a flat list of push tokens"""

    def __init__(self, store: Store):
        self.store = store

    def resolve_tokens(
        self,
        user_ids: Sequence[str],
        category: Optional[NotificationCategory] = None
    ) -> List[str]:
        """
        Collect device tokens for the given users

        Users are looked up one by one in input order. Missing users are
        skipped, and a failed lookup only costs that user's tokens. With a
        category, users who switched it (or all notifications) off are
        skipped. Without one, nobody is filtered.

        Args:
            user_ids: User IDs, duplicates allowed
            category: Optional notification category to honor

        Returns:
            Tokens in input order, not deduplicated
        """
        if not user_ids:
            return []

        tokens: List[str] = []
        for user_id in user_ids:
            try:
                user = self.store.get_user(user_id)
            except Exception as e:
                logger.warning(f"Could not look up user {user_id}, skipping: {e}")
                continue

            if user is None:
                logger.debug(f"User {user_id} not found, skipping")
                continue

            if category is not None and not user.accepts(category):
                logger.debug(f"User {user_id} opted out of {category.value}")
                continue

            tokens.extend(user.tokens)

        return tokens
