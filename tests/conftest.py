"""
Shared fixtures.

Every test runs against a fresh InMemoryStorage and a recording push sender,
so nothing touches the network or the filesystem.
"""

import itertools
from decimal import Decimal

import pytest
from tenacity import wait_none

from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.push import NotificationDispatchError, PushSender
from expense_tracker.services.storage import InMemoryStorage


class RecordingPushSender(PushSender):
    """Push sender that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, token: str, title: str, body: str) -> None:
        if self.fail:
            raise NotificationDispatchError("device unreachable")
        self.sent.append((token, title, body))


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def push_sender():
    return RecordingPushSender()


@pytest.fixture
def components(storage, push_sender):
    return create_app_components(
        storage=storage,
        push_sender=push_sender,
        retarget_wait=wait_none(),
    )


@pytest.fixture
def register_user(components):
    """Async factory registering a user with an open first cycle."""
    counter = itertools.count(1)

    async def _register(salary="1000", push_token="ExponentPushToken[test]"):
        n = next(counter)
        return await components.registration.register(
            full_name=f"User {n}",
            email=f"user{n}@example.com",
            password_hash="hashed",
            salary=Decimal(salary),
            push_token=push_token,
        )

    return _register
