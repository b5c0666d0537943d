"""
tests/conftest.py

Shared doubles: a fake requests.Session, canned responses, a manual clock
and a manual scheduler. No test touches the network or sleeps.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import pytest
import requests
from apscheduler.jobstores.base import ConflictingIdError, JobLookupError

from shopgauge.cache import DashboardCache
from shopgauge.clients import ApiClients, build_api_clients
from shopgauge.config import ApiSettings, CacheSettings
from shopgauge.notifications import NotificationCenter

BASE_URL = "http://api.test"


def build_response(
    status: int = 200,
    body: Any = None,
    *,
    text: str | None = None,
    content_type: str | None = None,
    url: str = BASE_URL,
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")
        response.headers["Content-Type"] = content_type or "text/plain"
    else:
        response._content = json.dumps(body if body is not None else {}).encode("utf-8")
        response.headers["Content-Type"] = content_type or "application/json"
    return response


class FakeSession:
    """
    Stands in for requests.Session.

    Responses are served per route (`METHOD /api/path`) when one is
    registered, otherwise from a FIFO queue. A route with a single
    remaining response keeps serving it.
    """

    def __init__(self) -> None:
        self.cookies = requests.cookies.RequestsCookieJar()
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, Any]] = []
        self._queue: list[Any] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def queue(self, *items: Any) -> None:
        self._queue.extend(items)

    def route(self, method: str, path: str, *items: Any) -> None:
        self._routes[(method.upper(), path)] = list(items)

    def request(self, **kwargs: Any) -> requests.Response:
        self.calls.append(kwargs)
        method = kwargs["method"].upper()
        path = kwargs["url"][len(BASE_URL):]
        items = self._routes.get((method, path))
        if items:
            item = items.pop(0) if len(items) > 1 else items[0]
        elif self._queue:
            item = self._queue.pop(0)
        else:
            raise AssertionError(f"Unexpected request {method} {kwargs['url']}")
        if isinstance(item, BaseException):
            raise item
        return item

    def paths(self) -> list[str]:
        return [call["url"][len(BASE_URL):] for call in self.calls]


class ManualClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualJob:
    def __init__(self, id: str, func: Callable[[], None], trigger: str, trigger_args: dict[str, Any]) -> None:
        self.id = id
        self.func = func
        self.trigger = trigger
        self.trigger_args = trigger_args


class ManualScheduler:
    """
    Stands in for an APScheduler scheduler. Jobs are recorded, never run
    on their own; `run(job_id)` fires one.
    """

    def __init__(self) -> None:
        self.jobs: dict[str, ManualJob] = {}
        self.removed: list[str] = []

    def add_job(
        self,
        func: Callable[[], None],
        trigger: str,
        *,
        id: str,
        name: str | None = None,
        replace_existing: bool = False,
        **trigger_args: Any,
    ) -> ManualJob:
        if id in self.jobs and not replace_existing:
            raise ConflictingIdError(id)
        job = ManualJob(id, func, trigger, trigger_args)
        self.jobs[id] = job
        return job

    def get_job(self, job_id: str) -> ManualJob | None:
        return self.jobs.get(job_id)

    def get_jobs(self) -> list[ManualJob]:
        return list(self.jobs.values())

    def remove_job(self, job_id: str) -> None:
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]
        self.removed.append(job_id)

    def reschedule_job(self, job_id: str, *, trigger: str, **trigger_args: Any) -> ManualJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobLookupError(job_id)
        job.trigger = trigger
        job.trigger_args = trigger_args
        return job

    def run(self, job_id: str) -> None:
        job = self.jobs[job_id]
        if job.trigger == "date":
            del self.jobs[job_id]
        job.func()


@pytest.fixture()
def respond() -> Callable[..., requests.Response]:
    """Factory for canned responses."""
    return build_response


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def api_settings() -> ApiSettings:
    return ApiSettings(base_url=BASE_URL, api_prefix="/api", timeout_seconds=5.0)


@pytest.fixture()
def clients(api_settings: ApiSettings, session: FakeSession) -> ApiClients:
    return build_api_clients(api_settings, session=session)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def notifications() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture()
def cache(clock: ManualClock) -> DashboardCache:
    return DashboardCache(
        settings=CacheSettings(ttl_seconds=7200.0, warning_seconds=6000.0, version="2.1.0"),
        clock=clock,
    )
