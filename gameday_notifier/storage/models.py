"""Data models for users, teams, games, chat messages and notifications"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.timezone import to_utc

CONFIRMED = "confirmed"
MASTER_PREFERENCE = "notificationsEnabled"


class NotificationCategory(Enum):
    """A class of notification a user can switch off independently"""
    TEAM_ANNOUNCEMENTS = "team_announcements"
    GAME_REMINDERS = "game_reminders"
    CHAT_MESSAGES = "chat_messages"

    @property
    def preference_field(self) -> str:
        """Key of this category inside a user's preferences map"""
        return _PREFERENCE_FIELDS[self]


_PREFERENCE_FIELDS = {
    NotificationCategory.TEAM_ANNOUNCEMENTS: "notificationsTeamAnnouncements",
    NotificationCategory.GAME_REMINDERS: "notificationsGameReminders",
    NotificationCategory.CHAT_MESSAGES: "notificationsChatMessages",
}


@dataclass
class User:
    """A user and the devices registered for push"""
    id: str
    tokens: List[str] = field(default_factory=list)
    preferences: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "User":
        return cls(
            id=doc_id,
            tokens=[t for t in data.get("fcmTokens") or [] if isinstance(t, str) and t],
            preferences=dict(data.get("preferences") or {}),
        )

    def accepts(self, category: NotificationCategory) -> bool:
        """
        Whether this user wants notifications of the given category

        Only an explicit False opts out; missing keys count as enabled.
        The master switch overrides every category.
        """
        if self.preferences.get(MASTER_PREFERENCE) is False:
            return False
        if self.preferences.get(category.preference_field) is False:
            return False
        return True


@dataclass
class Team:
    """A team roster"""
    id: str
    name: Optional[str] = None
    member_ids: List[str] = field(default_factory=list)
    admin_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Team":
        return cls(
            id=doc_id,
            name=data.get("name") or None,
            member_ids=list(data.get("memberIds") or []),
            admin_id=data.get("adminId") or None,
        )

    @property
    def display_name(self) -> str:
        return self.name or "your team"


@dataclass
class Game:
    """A scheduled game with attendance and reminder bookkeeping"""
    id: str
    team_id: Optional[str] = None
    start_time: Optional[datetime] = None
    is_active: bool = False
    confirmations: Dict[str, str] = field(default_factory=dict)
    reminder_24h_sent: bool = False
    reminder_2h_sent: bool = False
    reminder_1h_sent: bool = False

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Game":
        start = data.get("dateTime")
        return cls(
            id=doc_id,
            team_id=data.get("teamId") or None,
            start_time=to_utc(start) if isinstance(start, datetime) else None,
            is_active=data.get("isActive") is True,
            confirmations=dict(data.get("confirmations") or {}),
            reminder_24h_sent=data.get("reminder24Sent") is True,
            reminder_2h_sent=data.get("reminder2hSent") is True,
            reminder_1h_sent=data.get("reminder1Sent") is True,
        )

    def confirmed_user_ids(self) -> List[str]:
        """Users whose status is exactly "confirmed", in map order"""
        return [uid for uid, status in self.confirmations.items() if status == CONFIRMED]


@dataclass
class ChatMessage:
    """A message posted to a team's chat"""
    id: str
    team_id: str
    sender_id: Optional[str] = None
    text: str = ""

    @classmethod
    def from_document(cls, doc_id: str, team_id: str, data: Dict[str, Any]) -> "ChatMessage":
        text = data.get("text")
        return cls(
            id=doc_id,
            team_id=team_id,
            sender_id=data.get("senderId") or None,
            text=text if isinstance(text, str) else "",
        )


@dataclass
class NotificationPayload:
    """Title, body and data map handed to the push transport"""
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)

    @property
    def type(self) -> Optional[str]:
        return self.data.get("type")


@dataclass
class DispatchResult:
    """Outcome of one multicast dispatch"""
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: List[str] = field(default_factory=list)
