import dataclasses
import logging
import os
from collections.abc import Iterable
from datetime import date
from typing import Any, Protocol

import keyring
import requests
from fncli import cli
from keyring.errors import KeyringError

from . import config
from .core.models import DayTask, TimeOfDay

__all__ = [
    "NullNotifier",
    "Notifier",
    "RecordingNotifier",
    "ReminderRequest",
    "WebhookNotifier",
    "dispatch",
    "notifier_from_config",
    "reminders_for",
]

logger = logging.getLogger(__name__)

SERVICE = "daytoday-reminders"
TOKEN_KEY = "webhook_token"  # noqa: S105


@dataclasses.dataclass(frozen=True)
class ReminderRequest:
    instance_id: str
    routine_id: str | None
    title: str
    date: date
    time: TimeOfDay
    notification_type: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "routine_id": self.routine_id,
            "title": self.title,
            "date": self.date.isoformat(),
            "time": str(self.time),
            "notification_type": self.notification_type,
        }


class Notifier(Protocol):
    def schedule(self, request: ReminderRequest) -> None: ...


class NullNotifier:
    def schedule(self, request: ReminderRequest) -> None:
        logger.debug("no notifier configured, dropping reminder for %s", request.instance_id)


class RecordingNotifier:
    """Keeps every request in memory."""

    def __init__(self) -> None:
        self.requests: list[ReminderRequest] = []

    def schedule(self, request: ReminderRequest) -> None:
        self.requests.append(request)


class WebhookNotifier:
    """POSTs each reminder as JSON to an external scheduler."""

    def __init__(self, url: str, token: str | None = None, timeout: float = 10):
        self.url = url
        self.token = token
        self.timeout = timeout

    def schedule(self, request: ReminderRequest) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        resp = requests.post(
            self.url, json=request.to_payload(), headers=headers, timeout=self.timeout
        )
        resp.raise_for_status()


def _token() -> str | None:
    env = os.environ.get("DAYTODAY_WEBHOOK_TOKEN")
    if env:
        return env
    try:
        return keyring.get_password(SERVICE, TOKEN_KEY)
    except KeyringError:
        return None


def notifier_from_config() -> Notifier:
    url = config.get_reminder_webhook()
    if not url:
        return NullNotifier()
    return WebhookNotifier(url, token=_token())


def reminders_for(batch: Iterable[DayTask]) -> list[ReminderRequest]:
    return [
        ReminderRequest(
            instance_id=task.id,
            routine_id=task.routine_id,
            title=task.title,
            date=task.date,
            time=task.time,
            notification_type=task.notification_type,
        )
        for task in batch
        if task.time is not None
    ]


def dispatch(reminders: Iterable[ReminderRequest], notifier: Notifier) -> int:
    """Hand reminders to ``notifier``; failures are logged and dropped. Returns the number accepted."""
    sent = 0
    for reminder in reminders:
        try:
            notifier.schedule(reminder)
        except Exception as e:
            logger.warning(
                "reminder for %s on %s not scheduled: %s",
                reminder.instance_id,
                reminder.date.isoformat(),
                e,
            )
            continue
        sent += 1
    return sent


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("daytoday reminders", name="setup")
def setup(url: str, token: str | None = None) -> None:
    """Send reminders to a webhook"""
    config.set_reminder_webhook(url)
    if token:
        keyring.set_password(SERVICE, TOKEN_KEY, token)
    print(f"reminders → {url}")


@cli("daytoday reminders", name="off")
def off() -> None:
    """Stop sending reminders"""
    config.set_reminder_webhook(None)
    print("reminders off")
