"""Reminder sweep for games entering their 24h, 2h and 1h lead windows"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .dispatcher import NotificationDispatcher
from .entity_lookup import fetch_game, fetch_team
from .recipient_resolver import RecipientResolver
from ..storage.models import Game, NotificationCategory, NotificationPayload, Team
from ..storage.store import Store
from ..utils.logger import setup_logger
from ..utils.timezone import now_utc, to_utc, window

logger = setup_logger(__name__)

# A loop that falls further behind than this many ticks jumps to the present
MAX_CATCH_UP_TICKS = 3


@dataclass(frozen=True)
class ReminderLead:
    """One reminder lead time and everything that varies with it"""
    key: str
    offset: timedelta
    flag_field: str
    attribute: str
    payload_type: str
    title: str
    body_template: str
    confirmed_only: bool = False

    def is_sent(self, game: Game) -> bool:
        return getattr(game, self.attribute)

    def build_payload(self, game: Game, team: Team) -> NotificationPayload:
        return NotificationPayload(
            title=self.title,
            body=self.body_template.format(team=team.display_name),
            data={"type": self.payload_type, "gameId": game.id, "teamId": team.id},
        )


REMINDER_LEADS = (
    ReminderLead(
        key="24h",
        offset=timedelta(hours=24),
        flag_field="reminder24Sent",
        attribute="reminder_24h_sent",
        payload_type="game_reminder_24h",
        title="Game tomorrow",
        body_template="You have a game with {team} in 24 hours.",
    ),
    ReminderLead(
        key="2h",
        offset=timedelta(hours=2),
        flag_field="reminder2hSent",
        attribute="reminder_2h_sent",
        payload_type="game_reminder_2h",
        title="Game soon",
        body_template="Your game with {team} starts in 2 hours.",
        confirmed_only=True,
    ),
    ReminderLead(
        key="1h",
        offset=timedelta(hours=1),
        flag_field="reminder1Sent",
        attribute="reminder_1h_sent",
        payload_type="game_reminder_1h",
        title="Game soon",
        body_template="Your game with {team} starts in 1 hour.",
    ),
)

LEADS_BY_KEY = {lead.key: lead for lead in REMINDER_LEADS}


@dataclass
class LeadStats:
    """Counts for one lead time within one sweep"""
    due: int = 0
    dispatched: int = 0
    flagged: int = 0
    failed: int = 0


@dataclass
class SweepSummary:
    """What a sweep did, per lead time"""
    now: datetime
    leads: Dict[str, LeadStats] = field(default_factory=dict)
    failed_leads: List[str] = field(default_factory=list)

    def describe(self) -> str:
        parts = [
            f"{key}: {stats.due} due, {stats.dispatched} sent, {stats.flagged} flagged, {stats.failed} failed"
            for key, stats in self.leads.items()
        ]
        parts.extend(f"{key}: block failed" for key in self.failed_leads)
        return "; ".join(parts)


class ReminderService:
    """Finds games entering a lead window and reminds their players once"""

    def __init__(
        self,
        store: Store,
        resolver: RecipientResolver,
        dispatcher: NotificationDispatcher,
        interval_minutes: int = 5
    ):
        """
        Initialize reminder service

        Args:
            store: Document store
            resolver: Recipient resolver
            dispatcher: Notification dispatcher
            interval_minutes: Polling period, also the width of each window
        """
        self.store = store
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.interval = timedelta(minutes=interval_minutes)
        self.running = False

    async def start(self):
        """
        Sweep on a fixed cadence until stopped

        Each sweep is anchored to its scheduled tick rather than to when it
        actually ran, so consecutive windows stay contiguous under jitter.
        """
        self.running = True
        logger.info(f"Starting reminder service (sweep every {self.interval})")

        tick = now_utc()
        while self.running:
            try:
                await self.run_sweep(now=tick)
            except Exception as e:
                logger.error(f"Error in reminder loop: {e}", exc_info=True)

            tick += self.interval
            lag = now_utc() - tick
            if lag > self.interval * MAX_CATCH_UP_TICKS:
                logger.warning(f"Reminder loop is {lag} behind, skipping to the current time")
                tick = now_utc()

            delay = (tick - now_utc()).total_seconds()
            if delay > 0 and self.running:
                await asyncio.sleep(delay)

    def stop(self):
        """Stop the sweep loop"""
        self.running = False
        logger.info("Stopping reminder service")

    async def run_sweep(self, now: Optional[datetime] = None) -> SweepSummary:
        """
        Process every lead time once

        Lead times run in order (24h, 2h, 1h); a failure in one does not
        stop the others. Store calls run in worker threads so listener
        callbacks keep flowing during a long sweep.
        """
        now = to_utc(now) if now is not None else now_utc()
        summary = SweepSummary(now=now)

        for lead in REMINDER_LEADS:
            try:
                summary.leads[lead.key] = await self._process_lead(lead, now)
            except Exception as e:
                logger.error(f"{lead.key} reminders failed: {e}", exc_info=True)
                summary.failed_leads.append(lead.key)

        logger.info(f"Reminder sweep at {now.isoformat()}: {summary.describe()}")
        return summary

    async def send_reminder(self, game_id: str, lead_key: str, mark_sent: bool = True) -> bool:
        """
        Send one lead's reminder for one game right away

        Returns:
            True if a notification was dispatched
        """
        lead = LEADS_BY_KEY[lead_key]
        game = await asyncio.to_thread(fetch_game, self.store, game_id)
        if game is None:
            return False

        dispatched = await self._remind(game, lead)
        if mark_sent:
            await asyncio.to_thread(self.store.mark_reminder_sent, game.id, lead.flag_field)
        return dispatched

    async def _process_lead(self, lead: ReminderLead, now: datetime) -> LeadStats:
        start, end = window(lead.offset, self.interval, now)
        games = await asyncio.to_thread(self._due_games, lead, start, end)
        stats = LeadStats(due=len(games))

        for game in games:
            try:
                if await self._remind(game, lead):
                    stats.dispatched += 1
                # The flag records the attempt, not the delivery
                await asyncio.to_thread(self.store.mark_reminder_sent, game.id, lead.flag_field)
                stats.flagged += 1
            except Exception as e:
                stats.failed += 1
                logger.error(f"{lead.key} reminder for game {game.id} failed: {e}")

        return stats

    def _due_games(self, lead: ReminderLead, start: datetime, end: datetime) -> List[Game]:
        """Games in [start, end) whose flag for this lead is unset"""
        try:
            return self.store.query_games_in_window(start, end, unsent_flag=lead.flag_field)
        except Exception as e:
            logger.warning(
                f"{lead.key} reminder query failed, falling back to window-only query: {e}"
            )

        games = self.store.query_games_in_window(start, end)
        return [game for game in games if not lead.is_sent(game)]

    async def _remind(self, game: Game, lead: ReminderLead) -> bool:
        """Resolve recipients for one game and dispatch; True if anything was sent"""
        if lead.confirmed_only:
            recipient_ids = game.confirmed_user_ids()
            if not recipient_ids:
                logger.debug(f"Nobody confirmed for game {game.id}, skipping {lead.key} reminder")
                return False

        team = await asyncio.to_thread(fetch_team, self.store, game.team_id)
        if team is None:
            return False

        if not lead.confirmed_only:
            recipient_ids = team.member_ids

        tokens = await asyncio.to_thread(
            self.resolver.resolve_tokens, recipient_ids, NotificationCategory.GAME_REMINDERS
        )
        if not tokens:
            logger.debug(f"No devices to remind for game {game.id} ({lead.key})")
            return False

        result = await self.dispatcher.dispatch(tokens, lead.build_payload(game, team))
        return result is not None
