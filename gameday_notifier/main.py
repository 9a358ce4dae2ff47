"""Main entry point for the gameday notifier"""
import argparse
import asyncio
import signal
import sys
from typing import Optional

from .config import Config
from .storage.firebase_app import close_firebase_app, firestore_client, init_firebase_app
from .storage.store import Store
from .services.dispatcher import NotificationDispatcher
from .services.event_handlers import EventHandlers
from .services.push_client import PushClient
from .services.recipient_resolver import RecipientResolver
from .services.reminder_service import ReminderService
from .services.watchers import StoreWatchers
from .utils.logger import set_package_level, setup_logger

logger = setup_logger(__name__)


class GamedayNotifier:
    """Service orchestrator"""

    def __init__(self, config: Optional[Config] = None):
        """Initialize service components"""
        self.config = config or Config()
        set_package_level(self.config.log_level)
        self.running = False

        self.firebase_app = init_firebase_app(
            credentials_path=self.config.firebase_credentials,
            project_id=self.config.firebase_project_id
        )
        self.store = Store(firestore_client(self.firebase_app))

        # Initialize services
        self.push_client = PushClient(app=self.firebase_app, dry_run=self.config.push_dry_run)
        self.dispatcher = NotificationDispatcher(
            push_client=self.push_client,
            store=self.store,
            prune_invalid_tokens=self.config.prune_invalid_tokens
        )
        self.resolver = RecipientResolver(self.store)
        self.event_handlers = EventHandlers(self.store, self.resolver, self.dispatcher)
        self.reminder_service = ReminderService(
            store=self.store,
            resolver=self.resolver,
            dispatcher=self.dispatcher,
            interval_minutes=self.config.reminder_interval_minutes
        )
        self.watchers = StoreWatchers(self.store, self.event_handlers)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    async def start(self):
        """Run listeners and the reminder loop until a shutdown signal"""
        self.running = True
        logger.info("Starting gameday notifier...")

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        if self.config.enable_event_watchers:
            self.watchers.start(asyncio.get_running_loop())

        reminder_task = None
        if self.config.enable_reminders:
            reminder_task = asyncio.create_task(self.reminder_service.start())

        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            logger.info("Stopping services...")
            self.watchers.stop()
            if reminder_task is not None:
                self.reminder_service.stop()
                reminder_task.cancel()
                try:
                    await reminder_task
                except asyncio.CancelledError:
                    pass
            self.close()
            logger.info("Notifier stopped")

    async def sweep_once(self):
        """Run a single reminder sweep, for an external scheduler"""
        try:
            return await self.reminder_service.run_sweep()
        finally:
            self.close()

    def close(self):
        """Release the Firebase app"""
        if self.firebase_app is not None:
            close_firebase_app(self.firebase_app)
            self.firebase_app = None


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Push notifications for games, attendance and team chat"
    )
    parser.add_argument(
        "--sweep-once",
        action="store_true",
        help="Run one reminder sweep and exit (for cron-style triggers)"
    )
    return parser.parse_args(argv)


async def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    try:
        notifier = GamedayNotifier()
        if args.sweep_once:
            await notifier.sweep_once()
        else:
            await notifier.start()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
