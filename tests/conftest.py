import os
import random
from datetime import date, timedelta

os.environ.setdefault("SCHEDULER_ENABLED", "0")
os.environ.setdefault("TELEGRAM_DRY_RUN", "1")
os.environ.setdefault("AI_PROVIDER", "ollama")

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lottobot.db.models import LottoDraw, PensionDraw
from lottobot.db.session import build_engine, init_db


@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_lotto_draw(draw_no, numbers, bonus, draw_date=None):
    numbers = sorted(numbers)
    return LottoDraw(
        draw_no=draw_no,
        draw_date=draw_date or date(2002, 12, 7) + timedelta(weeks=draw_no - 1),
        n1=numbers[0], n2=numbers[1], n3=numbers[2],
        n4=numbers[3], n5=numbers[4], n6=numbers[5],
        bonus=bonus,
    )


@pytest.fixture
def lotto_history(db):
    """결정적 로또 이력 (기본 30회)"""
    def _add(count=30, seed=1234):
        rng = random.Random(seed)
        for draw_no in range(1, count + 1):
            picked = rng.sample(range(1, 46), 7)
            db.add(make_lotto_draw(draw_no, picked[:6], picked[6]))
        db.commit()
        return count
    return _add


@pytest.fixture
def pension_history(db):
    def _add(digit_rows, group_no=1):
        for draw_no, digits in enumerate(digit_rows, start=1):
            db.add(PensionDraw(
                draw_no=draw_no,
                draw_date=date(2020, 5, 7) + timedelta(weeks=draw_no - 1),
                group_no=group_no,
                digits=digits,
            ))
        db.commit()
        return len(digit_rows)
    return _add
