import random
from datetime import date

import pytest
from fastapi.testclient import TestClient

from lottobot.ai.recommender import AiRecommender, FALLBACK_REASONING
from lottobot.db.models import LottoRecommendation
from lottobot.db.session import get_db
from lottobot.main import app, get_ai_recommender, get_lotto_client, get_pension_client
from tests.conftest import make_lotto_draw
from tests.fakes import FakeDrawSource, FakeTextClient


def _lotto(draw_no):
    info = {'draw_no': draw_no, 'draw_date': date(2025, 1, 4), 'bonus': 45}
    info.update({f"n{i}": draw_no + i for i in range(1, 7)})
    return info


@pytest.fixture
def sources():
    return {
        'lotto': FakeDrawSource({1: _lotto(1), 2: _lotto(2)}),
        'pension': FakeDrawSource({
            1: {'draw_no': 1, 'draw_date': date(2025, 1, 2), 'group_no': 4, 'digits': "123456",
                'prizes': None, 'winners': None},
        }),
    }


@pytest.fixture
def client(session_factory, sources):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_recommender] = lambda: AiRecommender(
        client=FakeTextClient(available=False), rng=random.Random(1),
    )
    app.dependency_overrides[get_lotto_client] = lambda: sources['lotto']
    app.dependency_overrides[get_pension_client] = lambda: sources['pension']
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body['status'] == "ok"
    assert body['scheduler_running'] is False
    assert {job['name'] for job in body['jobs']} == {
        "lotto/generate", "lotto/verify", "pension/generate", "pension/verify",
        "lotto/sync", "pension/sync",
    }


def test_statistics_without_draws(client):
    body = client.get("/statistics").json()

    assert body['total_draws'] == 0
    assert body['frequencies'] == []


def test_candidates_exclude_least_frequent(client, lotto_history):
    lotto_history(30)

    body = client.get("/statistics/candidates", params={"exclude": 20}).json()

    assert body['candidate_count'] == 25
    assert body['candidates'] == sorted(body['candidates'])


def test_candidates_rejects_out_of_range(client):
    assert client.get("/statistics/candidates", params={"exclude": 46}).status_code == 422


def test_number_detail(client, db):
    db.add(make_lotto_draw(1, [1, 2, 3, 4, 5, 6], 7))
    db.commit()

    assert client.get("/statistics/numbers/3").json()['count'] == 1
    assert client.get("/statistics/numbers/46").status_code == 404


def test_latest_draw(client, db):
    assert client.get("/lotto/draws/latest").status_code == 404

    db.add(make_lotto_draw(5, [3, 1, 2, 6, 5, 4], 9))
    db.commit()

    response = client.get("/lotto/draws/latest")
    assert response.status_code == 200
    assert response.json()['draw_no'] == 5
    assert response.json()['n1'] == 1


def test_lotto_recommend_then_conflict(client, db, lotto_history):
    lotto_history(10)

    response = client.post("/lotto/recommend")
    assert response.status_code == 200
    body = response.json()
    assert body['target_draw_no'] == 11
    assert len(body['recommendations']) == 5
    assert [a['reasoning'] for a in body['ai']] == [FALLBACK_REASONING] * 2
    assert db.query(LottoRecommendation).count() == 5

    assert client.post("/lotto/recommend").status_code == 409
    assert client.get("/lotto/status").json()['next_draw_has_recommendations'] is True


def test_lotto_sync(client):
    response = client.post("/lotto/sync")

    assert response.status_code == 200
    assert response.json()['new_draws'] == [1, 2]
    assert client.get("/lotto/draws").json()['count'] == 2


def test_sync_source_failure_is_bad_gateway(client, sources):
    sources['lotto'].fail = True

    assert client.post("/lotto/sync").status_code == 502


def test_pension_sync_and_recommend(client):
    assert client.post("/pension/sync").json()['synced_count'] == 1
    assert client.get("/pension/draws/latest").json()['digits'] == "123456"

    body = client.post("/pension/recommend").json()
    assert body['target_draw_no'] == 2
    assert body['digit_sets'] == ["123456"]
    assert [r['group_no'] for r in body['recommendations']] == [1, 2, 3, 4, 5]

    assert client.post("/pension/recommend/send").status_code == 409


def test_pension_recommend_send_dry_run(client):
    body = client.post("/pension/recommend/send", params={"draw": 7}).json()

    assert body['target_draw_no'] == 7
    assert body['sent'] is False


def test_ai_status(client):
    assert client.get("/ai/status").json() == {
        'available': False,
        'message': "fake server is not available",
    }
