"""Configuration loading and validation"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from .utils.logger import resolve_level, setup_logger

logger = setup_logger(__name__)

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    def __init__(self):
        """Load and validate configuration"""
        # Firebase
        self.firebase_credentials: Optional[str] = os.getenv("FIREBASE_CREDENTIALS") or None
        self.firebase_project_id: Optional[str] = os.getenv("FIREBASE_PROJECT_ID") or None

        # Reminder sweep; the window width always equals the polling period
        self.reminder_interval_minutes = self._get_int("REMINDER_INTERVAL_MINUTES", 5)

        # Features
        self.enable_reminders = self._get_bool("ENABLE_REMINDERS", True)
        self.enable_event_watchers = self._get_bool("ENABLE_EVENT_WATCHERS", True)
        self.prune_invalid_tokens = self._get_bool("PRUNE_INVALID_TOKENS", False)
        self.push_dry_run = self._get_bool("PUSH_DRY_RUN", False)

        self.log_level = resolve_level(os.getenv("LOG_LEVEL", "INFO"))

        self._validate()
        logger.info("Configuration loaded successfully")

    def _get_int(self, key: str, default: int) -> int:
        """Get an integer environment variable"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {value!r}")

    def _get_bool(self, key: str, default: bool) -> bool:
        """Get a true/false environment variable"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")

    def _validate(self):
        """Validate configuration values"""
        if self.reminder_interval_minutes < 1:
            raise ValueError("REMINDER_INTERVAL_MINUTES must be at least 1 minute")

        if self.firebase_credentials and not Path(self.firebase_credentials).is_file():
            raise ValueError(f"FIREBASE_CREDENTIALS file not found: {self.firebase_credentials}")

        logger.info(f"Reminder sweep interval: {self.reminder_interval_minutes} minutes")
        if not self.firebase_credentials:
            logger.info("FIREBASE_CREDENTIALS not set, using application default credentials")
        if not self.enable_reminders:
            logger.info("Reminder sweep disabled")
        if not self.enable_event_watchers:
            logger.info("Store listeners disabled")
        if self.prune_invalid_tokens:
            logger.info("Unregistered device tokens will be removed from users")
        if self.push_dry_run:
            logger.info("Push dry run: messages are validated but not delivered")
