"""Shared fixtures: both ledger backends and a scriptable fake browser."""

import asyncio

import pytest

from cafe_credits.domain import Attendee
from cafe_credits.storage.db import Database
from cafe_credits.storage.flatfile import FlatFileLedger
from cafe_credits.storage.repository import SqlLedger

STATUS_URL = "https://cursor.com/api/dashboard/check-referral-code"


def referral_url(code: str) -> str:
    return f"https://cursor.com/referral?code={code}"


def attendee(first: str, last: str, email: str, **extra) -> Attendee:
    return Attendee(first_name=first, last_name=last, email=email, **extra)


def make_flatfile_ledger(tmp_path):
    return FlatFileLedger(tmp_path / "flat")


def make_sql_ledger(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'ledger.db'}")
    database.create_tables()
    return SqlLedger(database)


LEDGER_FACTORIES = {
    "flatfile": make_flatfile_ledger,
    "sql": make_sql_ledger,
}


@pytest.fixture(params=sorted(LEDGER_FACTORIES))
def ledger(request, tmp_path):
    """Each test using this fixture runs once per backend."""
    return LEDGER_FACTORIES[request.param](tmp_path)


# -- fake browser --


class FakeResponse:
    """Stands in for a Playwright response."""

    def __init__(self, url: str, status: int = 200, payload=None, json_error: Exception | None = None):
        self.url = url
        self.status = status
        self.payload = payload
        self.json_error = json_error

    async def json(self):
        if self.json_error is not None:
            raise self.json_error
        return self.payload


class FakePage:
    """Stands in for a Playwright page.

    ``goto`` fires the scripted responses for the URL at the registered
    ``response`` listeners, then either returns, raises ``goto_error`` or
    hangs until cancelled.
    """

    def __init__(self, responses=None, goto_error: Exception | None = None, hang: bool = False):
        self.responses = responses or {}
        self.goto_error = goto_error
        self.hang = hang
        self.listeners: dict[str, list] = {}
        self.visited: list[str] = []
        self.cancelled_navigations = 0

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def listener_count(self, event: str = "response") -> int:
        return len(self.listeners.get(event, []))

    async def goto(self, url, **kwargs):
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        for response in self.responses.get(url, []):
            for handler in list(self.listeners.get("response", [])):
                handler(response)
        if self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled_navigations += 1
                raise


class FakeSession:
    """Stands in for BrowserSession."""

    def __init__(self, page: FakePage | None = None):
        self._fake_page = page or FakePage()
        self.opened = False
        self.closed = False
        self.init_calls = 0

    @property
    def is_open(self) -> bool:
        return self.opened and not self.closed

    @property
    def page(self) -> FakePage:
        return self._fake_page

    async def init(self):
        self.init_calls += 1
        self.opened = True

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def status_response(payload=None, status: int = 200, **kwargs) -> FakeResponse:
    return FakeResponse(STATUS_URL, status=status, payload=payload, **kwargs)


def available_payload(amount=None) -> dict:
    payload = {"isValid": True, "userIsEligible": True, "metadata": {}}
    if amount is not None:
        payload["metadata"]["amount"] = amount
    return payload
