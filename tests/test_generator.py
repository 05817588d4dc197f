import random

import pytest
from sqlalchemy.exc import IntegrityError

from lottobot.config import settings
from lottobot.db.models import LottoRecommendation, PensionRecommendation, RecommendationType
from lottobot.db.repositories import LottoDrawRepository, LottoRecommendationRepository
from lottobot.services.lotto.generator import generate_lotto_recommendation, pick_random_numbers
from lottobot.services.lotto.stats_calculator import LottoStatsCalculator
from lottobot.services.pension.generator import generate_pension_recommendation
from tests.fakes import FakeRecommender

AI_SETS = [
    {'numbers': [3, 9, 17, 22, 38, 41], 'reasoning': '최근 출현 번호', 'is_fallback': False},
    {'numbers': [5, 12, 19, 27, 33, 44], 'reasoning': 'AI 추천', 'is_fallback': False},
]


def test_pick_random_numbers_from_pool():
    pool = list(range(10, 35))
    picked = pick_random_numbers(pool, 6, random.Random(7))

    assert len(picked) == 6
    assert picked == sorted(picked)
    assert set(picked) <= set(pool)
    assert picked == pick_random_numbers(pool, 6, random.Random(7))
    assert pool == list(range(10, 35))


def test_lotto_batch_layout(db, lotto_history):
    lotto_history(30)
    recommender = FakeRecommender(AI_SETS)

    summary = generate_lotto_recommendation(db, 31, rng=random.Random(3), ai_recommender=recommender)

    recs = LottoRecommendationRepository(db).find_by_draw_no(31)
    assert [r.game_number for r in recs] == [1, 2, 3, 4, 5]
    assert [r.rec_type for r in recs] == [RecommendationType.STATISTICAL] * 3 + [RecommendationType.AI] * 2

    draws = [d.to_dict() for d in LottoDrawRepository(db).find_all()]
    candidates = set(LottoStatsCalculator.get_candidate_numbers(draws, 20))
    for rec in recs[:3]:
        assert set(rec.numbers) <= candidates
        assert rec.numbers == sorted(rec.numbers)
        assert rec.ai_reasoning is None
    assert recs[3].numbers == AI_SETS[0]['numbers']
    assert recs[3].ai_reasoning == '최근 출현 번호'

    # AI에는 최근 10회차가 오래된 순으로 전달
    recent, count = recommender.calls[0]
    assert count == 2
    assert len(recent) == 10
    assert recent[-1]['numbers'] == LottoDrawRepository(db).find_latest().numbers

    assert summary['target_draw_no'] == 31
    assert len(summary['recommendations']) == 5
    assert len(summary['statistical']) == 3
    assert summary['ai'][1]['reasoning'] == 'AI 추천'


def test_lotto_game_counts_configurable(db, lotto_history, monkeypatch):
    lotto_history(5)
    monkeypatch.setattr(settings, "LOTTO_STATISTICAL_GAMES", 2)
    monkeypatch.setattr(settings, "LOTTO_AI_GAMES", 0)

    summary = generate_lotto_recommendation(db, 6, rng=random.Random(1), ai_recommender=FakeRecommender(AI_SETS))

    assert [r['game_number'] for r in summary['recommendations']] == [1, 2]
    assert summary['ai'] == []


def test_lotto_batch_is_atomic(db, lotto_history):
    lotto_history(10)
    db.add(LottoRecommendation(
        target_draw_no=11, rec_type=RecommendationType.AI, game_number=5,
        numbers=[1, 2, 3, 4, 5, 6],
    ))
    db.commit()

    with pytest.raises(IntegrityError):
        generate_lotto_recommendation(db, 11, rng=random.Random(1), ai_recommender=FakeRecommender(AI_SETS))

    assert db.query(LottoRecommendation).filter_by(target_draw_no=11).count() == 1


def test_lotto_ai_failure_saves_nothing(db, lotto_history):
    lotto_history(10)

    class Broken:
        def recommend(self, recent_draws, count=2):
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        generate_lotto_recommendation(db, 11, rng=random.Random(1), ai_recommender=Broken())

    assert db.query(LottoRecommendation).count() == 0


def test_lotto_without_history(db):
    summary = generate_lotto_recommendation(db, 1, rng=random.Random(5), ai_recommender=FakeRecommender(AI_SETS))

    assert summary['target_draw_no'] == 1
    assert len(summary['recommendations']) == 5


def test_pension_batch_layout(db, pension_history):
    pension_history(["112703", "992703", "112700", "345678"])

    summary = generate_pension_recommendation(db, 5, rng=random.Random(2), digit_ranks=2)

    recs = db.query(PensionRecommendation).order_by(PensionRecommendation.game_number).all()
    assert [r.game_number for r in recs] == list(range(1, 11))
    assert [r.group_no for r in recs] == [1, 2, 3, 4, 5] * 2
    assert {r.digits for r in recs[:5]} == {summary['digit_sets'][0]}
    assert {r.digits for r in recs[5:]} == {summary['digit_sets'][1]}
    assert summary['digit_sets'][0] == "112703"
    assert summary['digit_sets'][0] != summary['digit_sets'][1]
    assert all(r.rec_type == RecommendationType.STATISTICAL for r in recs)


def test_pension_default_tier(db, pension_history, monkeypatch):
    pension_history(["123456"])
    monkeypatch.setattr(settings, "PENSION_DIGIT_RANKS", 1)

    summary = generate_pension_recommendation(db, 2, rng=random.Random(2))

    assert len(summary['recommendations']) == 5
    assert summary['digit_sets'] == ["123456"]
