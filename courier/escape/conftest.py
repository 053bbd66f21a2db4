import datetime as dt

import pytest

from courier.escape.clock import VirtualClock
from courier.escape.engine import EscapeEngine
from courier.escape.settings import EscapeSettings, parse_deadline
from courier.escape.storage import MemoryStorage, ProgressStore

DEADLINE = parse_deadline("2025-12-27T13:00:00-07:00")


@pytest.fixture
def settings():
    return EscapeSettings(deadline=DEADLINE)


@pytest.fixture
def clock():
    # three days out: urgency "full", nothing frozen
    return VirtualClock(DEADLINE - dt.timedelta(hours=72))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def engine(settings, storage, clock):
    return EscapeEngine(settings, ProgressStore(storage, key=settings.storage_key), clock=clock)


@pytest.fixture
def logged_in(engine):
    assert engine.authenticate("Ezra", "RCP-2025-XMAS-COURIER").accepted
    return engine


def solve_through(engine, phase_id):
    """Answer every checkpoint of phases 1..phase_id correctly."""
    s = engine.settings
    steps = {
        1: [("phase1", s.phase1_answer)],
        2: [("phase2", s.phase2_answer)],
        3: [("phase3A", s.phase3a_answer), ("phase3B", s.phase3b_answer), ("phase3C", s.phase3c_answer)],
        4: [("phase4", s.binding_code)],
        5: [("phase5A", s.shard_a), ("phase5B", s.shard_b), ("phase5C", s.shard_c)],
    }
    for pid in range(1, phase_id + 1):
        if pid == 6:
            verdict = engine.submit_answer("phase6", {"shards": dict(s.shards), "ordering": s.ordering_answer})
            assert verdict.accepted, verdict
            continue
        for key, answer in steps[pid]:
            verdict = engine.submit_answer(key, answer)
            assert verdict.accepted, (key, verdict)
    return engine


@pytest.fixture
def solve():
    return solve_through


@pytest.fixture
def app(clock):
    from courier import create_app

    app = create_app("testing", clock=clock)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
