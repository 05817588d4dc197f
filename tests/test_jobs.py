from datetime import date

import pytest
from apscheduler.triggers.cron import CronTrigger

from lottobot.collectors.base import DrawSourceError
from lottobot.db.models import (
    LottoRecommendation, LottoResult, PensionDraw, PensionRecommendation, RecommendationType,
)
from lottobot.scheduler import jobs
from lottobot.scheduler.jobs import (
    JobOutcome, JobState, LOTTO_GENERATE, LOTTO_SYNC, LOTTO_VERIFY,
    PENSION_GENERATE, PENSION_SYNC, PENSION_VERIFY, CycleJob, build_jobs, build_scheduler,
)
from lottobot.services.lotto import generator as lotto_generator
from lottobot.services.lotto.draw_sync import sync_lotto_draws
from lottobot.services.pension.draw_sync import sync_pension_draws
from tests.conftest import make_lotto_draw
from tests.fakes import FakeDrawSource, FakeRecommender


class Recorder:
    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, summary, *args, **kwargs):
        self.calls.append(summary)
        return self.result


@pytest.fixture
def cycle_jobs(session_factory):
    return build_jobs(session_factory)


@pytest.fixture
def no_network(monkeypatch):
    """AI / 동기화 / 텔레그램 호출을 가짜로 교체"""
    sets = [
        {'numbers': [1, 2, 3, 4, 5, 6], 'reasoning': 'AI 추천', 'is_fallback': False},
        {'numbers': [7, 8, 9, 10, 11, 12], 'reasoning': 'AI 추천', 'is_fallback': False},
    ]
    monkeypatch.setattr(lotto_generator, "AiRecommender", lambda rng=None: FakeRecommender(sets))
    monkeypatch.setattr(jobs, "sync_lotto_draws", lambda db: None)
    monkeypatch.setattr(jobs, "sync_pension_draws", lambda db: None)
    notifiers = {name: Recorder() for name in (
        "send_lotto_recommendation", "send_lotto_result",
        "send_pension_recommendation", "send_pension_result", "send_pension_sync",
    )}
    for name, recorder in notifiers.items():
        monkeypatch.setattr(jobs, name, recorder)
    return notifiers


def test_generate_twice_creates_one_batch(db, lotto_history, cycle_jobs, no_network):
    lotto_history(20)
    job = cycle_jobs[LOTTO_GENERATE]

    assert job() == JobOutcome.COMPLETED
    assert job.last_target == 21
    assert job() == JobOutcome.SKIPPED

    assert db.query(LottoRecommendation).filter_by(target_draw_no=21).count() == 5
    assert len(no_network["send_lotto_recommendation"].calls) == 1
    assert job.state == JobState.IDLE
    assert job.last_outcome == JobOutcome.SKIPPED


def test_generate_skips_pre_seeded_cycle(db, lotto_history, cycle_jobs, no_network):
    lotto_history(20)
    db.add(LottoRecommendation(
        target_draw_no=21, rec_type=RecommendationType.STATISTICAL, game_number=1,
        numbers=[1, 2, 3, 4, 5, 6],
    ))
    db.commit()

    assert cycle_jobs[LOTTO_GENERATE]() == JobOutcome.SKIPPED
    assert db.query(LottoRecommendation).count() == 1
    assert no_network["send_lotto_recommendation"].calls == []


def test_notification_failure_keeps_batch(db, lotto_history, cycle_jobs, no_network):
    lotto_history(20)
    no_network["send_lotto_recommendation"].result = False

    assert cycle_jobs[LOTTO_GENERATE]() == JobOutcome.COMPLETED
    assert db.query(LottoRecommendation).count() == 5


def test_exception_is_caught_at_trigger(db, lotto_history, cycle_jobs, no_network, monkeypatch):
    lotto_history(5)

    def boom(db, target):
        raise RuntimeError("db down")

    monkeypatch.setattr(jobs, "generate_lotto_recommendation", boom)
    job = cycle_jobs[LOTTO_GENERATE]

    assert job() == JobOutcome.FAILED
    assert job.state == JobState.IDLE
    assert job.status()['last_outcome'] == "FAILED"
    assert db.query(LottoRecommendation).count() == 0


def test_verify_flow(db, cycle_jobs, no_network):
    db.add(make_lotto_draw(10, [1, 2, 3, 4, 5, 6], 7))
    db.add(LottoRecommendation(
        target_draw_no=10, rec_type=RecommendationType.STATISTICAL, game_number=1,
        numbers=[1, 2, 3, 4, 5, 9],
    ))
    db.commit()
    job = cycle_jobs[LOTTO_VERIFY]

    assert job() == JobOutcome.COMPLETED
    assert job() == JobOutcome.SKIPPED

    sent = no_network["send_lotto_result"].calls
    assert len(sent) == 1
    assert sent[0]['best_rank'] == 3
    assert db.query(LottoResult).count() == 1


def test_verify_skips_when_sync_fails(db, cycle_jobs, no_network, monkeypatch):
    def unavailable(db):
        raise DrawSourceError("down", "test")

    monkeypatch.setattr(jobs, "sync_lotto_draws", unavailable)
    monkeypatch.setattr(jobs, "sync_pension_draws", unavailable)
    db.add(make_lotto_draw(10, [1, 2, 3, 4, 5, 6], 7))
    db.add(LottoRecommendation(
        target_draw_no=10, rec_type=RecommendationType.STATISTICAL, game_number=1,
        numbers=[40, 41, 42, 43, 44, 45],
    ))
    db.commit()

    assert cycle_jobs[LOTTO_VERIFY]() == JobOutcome.SKIPPED
    assert cycle_jobs[PENSION_VERIFY]() == JobOutcome.SKIPPED
    assert db.query(LottoResult).count() == 0
    assert no_network["send_lotto_result"].calls == []



def test_verify_without_data_skips(cycle_jobs, no_network):
    assert cycle_jobs[LOTTO_VERIFY]() == JobOutcome.SKIPPED
    assert cycle_jobs[PENSION_VERIFY]() == JobOutcome.SKIPPED


def test_pension_generate_then_verify(db, pension_history, cycle_jobs, no_network):
    pension_history(["112703", "992703"], group_no=3)

    assert cycle_jobs[PENSION_GENERATE]() == JobOutcome.COMPLETED
    assert cycle_jobs[PENSION_GENERATE]() == JobOutcome.SKIPPED
    recs = db.query(PensionRecommendation).filter_by(target_draw_no=3).all()
    assert len(recs) == 5

    db.add(PensionDraw(draw_no=3, group_no=2, digits=recs[0].digits))
    db.commit()

    assert cycle_jobs[PENSION_VERIFY]() == JobOutcome.COMPLETED
    summary = no_network["send_pension_result"].calls[0]
    assert summary['best_rank'] == 1
    assert cycle_jobs[PENSION_VERIFY]() == JobOutcome.SKIPPED


def test_build_scheduler_registers_all_jobs(cycle_jobs):
    scheduler = build_scheduler(cycle_jobs, tz="Asia/Seoul")

    registered = {job.id: job for job in scheduler.get_jobs()}
    assert set(registered) == {
        "lotto_generate", "lotto_verify", "pension_generate", "pension_verify",
        "lotto_sync", "pension_sync",
    }
    for job in registered.values():
        assert job.max_instances == 1
        assert job.coalesce is True
        assert isinstance(job.trigger, CronTrigger)
    assert registered["lotto_generate"].func is cycle_jobs[LOTTO_GENERATE]
    assert not scheduler.running
    assert registered["pension_sync"].func is cycle_jobs[PENSION_SYNC]


def test_run_in_progress_is_skipped(db, lotto_history, cycle_jobs, no_network):
    lotto_history(5)
    job = cycle_jobs[LOTTO_GENERATE]

    job._lock.acquire()
    try:
        assert job() == JobOutcome.SKIPPED
    finally:
        job._lock.release()

    assert db.query(LottoRecommendation).count() == 0
    assert no_network["send_lotto_recommendation"].calls == []


def test_session_failure_releases_lock():
    opened = []

    def broken_factory():
        opened.append(True)
        raise RuntimeError("no connection")

    job = CycleJob("broken", check=lambda db: (1, None), run=lambda db, t: JobOutcome.COMPLETED,
                   session_factory=broken_factory)

    assert job() == JobOutcome.FAILED
    assert job() == JobOutcome.FAILED
    assert len(opened) == 2
    assert job.state == JobState.IDLE


def _lotto(draw_no):
    info = {'draw_no': draw_no, 'draw_date': date(2025, 1, 4), 'bonus': 45}
    info.update({f"n{i}": draw_no + i for i in range(1, 7)})
    return info


def test_lotto_sync_picks_up_late_draws(db, cycle_jobs, no_network, monkeypatch):
    db.add(make_lotto_draw(1, [2, 3, 4, 5, 6, 7], 45))
    db.commit()
    source = FakeDrawSource({1: _lotto(1), 2: _lotto(2), 3: _lotto(3)})
    monkeypatch.setattr(jobs, "sync_lotto_draws", lambda db: sync_lotto_draws(db, source))
    job = cycle_jobs[LOTTO_SYNC]

    assert job() == JobOutcome.COMPLETED
    assert job.last_target == 2
    assert source.range_calls == [(2, 3)]
    assert job() == JobOutcome.SKIPPED


def test_lotto_sync_source_failure(cycle_jobs, no_network, monkeypatch):
    source = FakeDrawSource({}, fail=True)
    monkeypatch.setattr(jobs, "sync_lotto_draws", lambda db: sync_lotto_draws(db, source))

    assert cycle_jobs[LOTTO_SYNC]() == JobOutcome.FAILED


def test_pension_sync_notifies_every_run(db, cycle_jobs, no_network, monkeypatch):
    source = FakeDrawSource({
        1: {'draw_no': 1, 'group_no': 2, 'digits': "123456"},
        2: {'draw_no': 2, 'group_no': 5, 'digits': "654321"},
    })
    monkeypatch.setattr(jobs, "sync_pension_draws", lambda db: sync_pension_draws(db, source))
    job = cycle_jobs[PENSION_SYNC]

    assert job() == JobOutcome.COMPLETED
    assert db.query(PensionDraw).count() == 2
    assert job() == JobOutcome.SKIPPED

    sent = no_network["send_pension_sync"].calls
    assert [s['synced_count'] for s in sent] == [2, 0]
    assert sent[0]['new_draws'] == [1, 2]
    assert sent[1]['end_draw_no'] == 2
