"""Firebase Cloud Messaging client for sending push notifications"""
import asyncio
import warnings
from typing import List, Optional

import firebase_admin
from firebase_admin import messaging
from firebase_admin.exceptions import FirebaseError

from ..storage.models import DispatchResult, NotificationPayload
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

# FCM rejects multicast messages with more tokens than this
MAX_MULTICAST_TOKENS = 500

# Errors meaning the token will never work again
INVALID_TOKEN_ERRORS = (messaging.UnregisteredError, messaging.SenderIdMismatchError)


class PushClient:
    """Best-effort multicast delivery through FCM"""

    def __init__(self, app: Optional[firebase_admin.App] = None, dry_run: bool = False):
        """
        Initialize push client

        Args:
            app: Firebase app to send with (default app when None)
            dry_run: Validate messages with FCM without delivering them
        """
        self.app = app
        self.dry_run = dry_run

    async def send_multicast(self, tokens: List[str], payload: NotificationPayload) -> DispatchResult:
        """
        Send one payload to many device tokens

        Tokens are sent in chunks of MAX_MULTICAST_TOKENS. A failing chunk is
        logged and counted as failed; it never raises.

        Args:
            tokens: Device tokens
            payload: Notification to send

        Returns:
            Aggregated success/failure counts and tokens FCM reported as dead
        """
        result = DispatchResult()

        for start in range(0, len(tokens), MAX_MULTICAST_TOKENS):
            chunk = tokens[start:start + MAX_MULTICAST_TOKENS]
            try:
                message = self._build_message(chunk, payload)
                response = await asyncio.to_thread(
                    messaging.send_each_for_multicast, message, self.dry_run, self.app
                )
            except FirebaseError as e:
                logger.error(f"FCM error sending {payload.type} to {len(chunk)} tokens: {e}")
                result.failure_count += len(chunk)
                continue
            except Exception as e:
                logger.error(f"Error sending {payload.type} to {len(chunk)} tokens: {e}")
                result.failure_count += len(chunk)
                continue

            result.success_count += response.success_count
            result.failure_count += response.failure_count

            for token, send_response in zip(chunk, response.responses):
                if send_response.success:
                    continue
                if isinstance(send_response.exception, INVALID_TOKEN_ERRORS):
                    result.invalid_tokens.append(token)
                else:
                    logger.debug(f"Delivery failed for token {token[:12]}...: {send_response.exception}")

        logger.info(
            f"Sent {payload.type}: {result.success_count} success, "
            f"{result.failure_count} failure"
        )
        return result

    def _build_message(self, tokens: List[str], payload: NotificationPayload) -> messaging.MulticastMessage:
        """Build the FCM multicast message for one chunk"""
        # SDK 7 deprecates `tokens` in favor of installation IDs; these are registration tokens
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            return messaging.MulticastMessage(
                tokens=tokens,
                notification=messaging.Notification(
                    title=payload.title,
                    body=payload.body,
                ),
                data={key: str(value) for key, value in payload.data.items()},
            )
