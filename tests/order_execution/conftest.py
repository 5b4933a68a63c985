"""Fixtures wiring the order execution engine to in-memory collaborators."""

from datetime import datetime

import pytest

from app.schemas.work_order import Position
from app.services.order_execution.finalization import Finalizer
from app.services.order_execution.mutation_queue import MutationQueue
from app.services.order_execution.workflow import WorkflowController
from tests.order_execution.fakes import FIXED_NOW, FakeOrderStore, FakeScheduler


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def store() -> FakeOrderStore:
    return FakeOrderStore()


@pytest.fixture
def make_queue(store, scheduler):
    def _make(record, read_only=False):
        return MutationQueue(record, store, delay=2.0, scheduler=scheduler, read_only=read_only)
    return _make


@pytest.fixture
def make_controller(store, make_queue):
    """Build queue, finalizer and controller around a record."""

    def _make(record, geolocation=None, read_only=False, min_evidence=2):
        queue = make_queue(record, read_only=read_only)
        finalizer = Finalizer(
            queue,
            store,
            geolocation,
            clock=lambda: FIXED_NOW,
            geolocation_timeout=1,
            min_evidence=min_evidence,
        )
        return WorkflowController(queue, store, finalizer)
    return _make


@pytest.fixture
def here() -> Position:
    return Position(latitude=-12.0464, longitude=-77.0428)


@pytest.fixture
def now() -> datetime:
    """The time reported by the finalizer clock in these tests."""
    return FIXED_NOW
