"""Shared fixtures: an in-memory store and a recording push client."""

from datetime import datetime

import pytest
import pytz

from gameday_notifier.services.dispatcher import NotificationDispatcher
from gameday_notifier.services.event_handlers import EventHandlers
from gameday_notifier.services.recipient_resolver import RecipientResolver
from gameday_notifier.services.reminder_service import ReminderService
from gameday_notifier.storage.models import DispatchResult, Game, Team, User

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=pytz.UTC)


class FakeStore:
    """Implements the Store interface over plain dicts, with Firestore query semantics."""

    def __init__(self):
        self.users = {}
        self.teams = {}
        self.games = {}
        self.user_reads = []
        self.queries = []
        self.flag_writes = []
        self.removed_tokens = []
        self.failing_users = set()
        self.fail_flag_queries = False
        self.fail_window_queries = set()
        self.fail_flag_writes = set()

    def add_user(self, user_id, tokens=(), preferences=None):
        self.users[user_id] = {"fcmTokens": list(tokens), "preferences": preferences or {}}

    def add_team(self, team_id, member_ids, admin_id=None, name="Falcons"):
        self.teams[team_id] = {"name": name, "memberIds": list(member_ids), "adminId": admin_id}

    def add_game(self, game_id, team_id, start, confirmations=None, is_active=True, **flags):
        data = {
            "teamId": team_id,
            "dateTime": start,
            "isActive": is_active,
            "confirmations": confirmations or {},
            "reminder24Sent": False,
            "reminder2hSent": False,
            "reminder1Sent": False,
        }
        data.update(flags)
        self.games[game_id] = data

    def get_user(self, user_id):
        self.user_reads.append(user_id)
        if user_id in self.failing_users:
            raise RuntimeError(f"lookup failed for {user_id}")
        data = self.users.get(user_id)
        return User.from_document(user_id, data) if data is not None else None

    def get_team(self, team_id):
        data = self.teams.get(team_id)
        return Team.from_document(team_id, data) if data is not None else None

    def get_game(self, game_id):
        data = self.games.get(game_id)
        return Game.from_document(game_id, data) if data is not None else None

    def query_games_in_window(self, start, end, unsent_flag=None):
        self.queries.append((start, end, unsent_flag))
        if unsent_flag and self.fail_flag_queries:
            raise RuntimeError("The query requires an index")
        if start in self.fail_window_queries:
            raise RuntimeError("store unavailable")

        games = []
        for game_id, data in self.games.items():
            if data.get("isActive") is not True:
                continue
            if not start <= data["dateTime"] < end:
                continue
            # Equality filters never match documents lacking the field
            if unsent_flag and data.get(unsent_flag) is not False:
                continue
            games.append(Game.from_document(game_id, data))
        return games

    def mark_reminder_sent(self, game_id, flag_field):
        if game_id in self.fail_flag_writes:
            raise RuntimeError("write rejected")
        self.flag_writes.append((game_id, {flag_field: True}))
        self.games.setdefault(game_id, {})[flag_field] = True

    def remove_tokens(self, tokens):
        self.removed_tokens.extend(tokens)
        updated = 0
        for data in self.users.values():
            before = len(data["fcmTokens"])
            data["fcmTokens"] = [t for t in data["fcmTokens"] if t not in tokens]
            if len(data["fcmTokens"]) != before:
                updated += 1
        return updated


class RecordingPushClient:
    """Stands in for PushClient and remembers every multicast."""

    def __init__(self):
        self.sent = []
        self.invalid_tokens = []
        self.error = None

    async def send_multicast(self, tokens, payload):
        if self.error is not None:
            raise self.error
        self.sent.append((list(tokens), payload))
        invalid = [t for t in tokens if t in self.invalid_tokens]
        return DispatchResult(
            success_count=len(tokens) - len(invalid),
            failure_count=len(invalid),
            invalid_tokens=invalid,
        )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def push_client():
    return RecordingPushClient()


@pytest.fixture
def dispatcher(push_client, store):
    return NotificationDispatcher(push_client, store)


@pytest.fixture
def resolver(store):
    return RecipientResolver(store)


@pytest.fixture
def handlers(store, resolver, dispatcher):
    return EventHandlers(store, resolver, dispatcher)


@pytest.fixture
def reminders(store, resolver, dispatcher):
    return ReminderService(store, resolver, dispatcher, interval_minutes=5)
