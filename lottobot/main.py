from datetime import date as date_type
from pathlib import Path
import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict

from lottobot.ai.recommender import AiRecommender
from lottobot.collectors.base import DrawSourceError
from lottobot.collectors.lotto.api_client import LottoAPIClient
from lottobot.collectors.pension.api_client import PensionAPIClient
from lottobot.config import settings
from lottobot.db.repositories import (
    LottoDrawRepository, LottoRecommendationRepository,
    PensionDrawRepository, PensionRecommendationRepository,
)
from lottobot.db.session import get_db, init_db
from lottobot.scheduler.jobs import build_jobs, build_scheduler
from lottobot.services.lotto.draw_sync import sync_lotto_draws
from lottobot.services.lotto.generator import generate_lotto_recommendation
from lottobot.services.lotto.stats_calculator import LottoStatsCalculator
from lottobot.services.notification_service import send_pension_recommendation
from lottobot.services.pension.draw_sync import sync_pension_draws
from lottobot.services.pension.generator import generate_pension_recommendation
from lottobot.services.pension.stats_calculator import PensionStatsCalculator

logger = logging.getLogger(__name__)

LOG_DIR = Path("logs")


def configure_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_path = LOG_DIR / "server.log"

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(log_path),
            ],
        )
    else:
        root_logger.setLevel(logging.INFO)
        root_logger.addHandler(logging.FileHandler(log_path))


app = FastAPI(title="Lotto Bot")
app.state.jobs = build_jobs()
app.state.scheduler = None


# ---- Pydantic 응답 모델 ----
class LottoDrawResponse(BaseModel):
    draw_no: int
    draw_date: date_type
    n1: int
    n2: int
    n3: int
    n4: int
    n5: int
    n6: int
    bonus: int
    prize_1st: Optional[int] = None
    winners_1st: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class PensionDrawResponse(BaseModel):
    draw_no: int
    draw_date: Optional[date_type] = None
    group_no: Optional[int] = None
    digits: Optional[str] = None
    prizes: Optional[List[Optional[int]]] = None

    model_config = ConfigDict(from_attributes=True)


class SyncResponse(BaseModel):
    synced_count: int
    start_draw_no: int
    end_draw_no: int
    new_draws: List[int]


class DrawStatusResponse(BaseModel):
    total_draws: int
    latest_draw_no: Optional[int] = None
    latest_draw_date: Optional[date_type] = None
    next_draw_no: int
    next_draw_has_recommendations: bool


class CandidatesResponse(BaseModel):
    excluded_count: int
    candidate_count: int
    candidates: List[int]


# ---- 의존성 (테스트에서 교체) ----
def get_lotto_client() -> LottoAPIClient:
    return LottoAPIClient()


def get_pension_client() -> PensionAPIClient:
    return PensionAPIClient()


def get_ai_recommender() -> AiRecommender:
    return AiRecommender()


# ---- 이벤트 & 헬스체크 ----
@app.on_event("startup")
def on_startup() -> None:
    """로그 설정, 테이블 생성, 스케줄러 시작"""
    configure_logging()
    init_db()

    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=0)")
        return

    scheduler = build_scheduler(app.state.jobs)
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("✅ Scheduler started")


@app.on_event("shutdown")
def on_shutdown() -> None:
    scheduler = app.state.scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        app.state.scheduler = None
        logger.info("Scheduler stopped")


@app.get("/health")
def health_check() -> dict:
    return {
        "status": "ok",
        "scheduler_running": app.state.scheduler is not None,
        "jobs": [job.status() for job in app.state.jobs.values()],
    }


# ---- 통계 ----
def _lotto_history(db: Session) -> list:
    return [d.to_dict() for d in LottoDrawRepository(db).find_all()]


@app.get("/statistics")
def get_statistics(db: Session = Depends(get_db)) -> dict:
    return LottoStatsCalculator.calculate_statistics(_lotto_history(db))


@app.get("/statistics/candidates", response_model=CandidatesResponse)
def get_candidates(
    exclude: int = Query(default=20, ge=0, le=45, description="제외할 저빈도 번호 수"),
    db: Session = Depends(get_db),
) -> CandidatesResponse:
    candidates = LottoStatsCalculator.get_candidate_numbers(_lotto_history(db), exclude)
    return CandidatesResponse(
        excluded_count=exclude,
        candidate_count=len(candidates),
        candidates=candidates,
    )


@app.get("/statistics/numbers/{number}")
def get_number_detail(number: int, db: Session = Depends(get_db)) -> dict:
    if not 1 <= number <= 45:
        raise HTTPException(status_code=404, detail="번호는 1~45")
    detail = LottoStatsCalculator.get_number_detail(_lotto_history(db), number)
    if detail is None:
        raise HTTPException(status_code=404, detail="통계 데이터 없음")
    return detail


@app.get("/statistics/pension")
def get_pension_statistics(db: Session = Depends(get_db)) -> dict:
    draws = [d.to_dict() for d in PensionDrawRepository(db).find_all()]
    return PensionStatsCalculator.calculate_digit_frequency(draws)


# ---- 로또 ----
@app.post("/lotto/sync", response_model=SyncResponse)
def lotto_sync(
    start: Optional[int] = Query(default=None, ge=1),
    end: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    client: LottoAPIClient = Depends(get_lotto_client),
) -> dict:
    logger.info(f"Lotto sync request: start={start}, end={end}")
    try:
        return sync_lotto_draws(db, client, start, end)
    except DrawSourceError as e:
        raise HTTPException(status_code=502, detail=f"{e} {e.detail}".strip())


@app.get("/lotto/draws")
def lotto_draws(db: Session = Depends(get_db)) -> dict:
    draws = LottoDrawRepository(db).find_all()
    return {
        "count": len(draws),
        "draws": [LottoDrawResponse.model_validate(d) for d in draws],
    }


@app.get("/lotto/draws/latest", response_model=LottoDrawResponse)
def lotto_latest_draw(db: Session = Depends(get_db)):
    latest = LottoDrawRepository(db).find_latest()
    if latest is None:
        raise HTTPException(status_code=404, detail="저장된 회차 없음")
    return latest


@app.get("/lotto/status", response_model=DrawStatusResponse)
def lotto_status(db: Session = Depends(get_db)) -> DrawStatusResponse:
    repo = LottoDrawRepository(db)
    latest = repo.find_latest()
    next_draw_no = (latest.draw_no if latest else 0) + 1
    return DrawStatusResponse(
        total_draws=repo.count(),
        latest_draw_no=latest.draw_no if latest else None,
        latest_draw_date=latest.draw_date if latest else None,
        next_draw_no=next_draw_no,
        next_draw_has_recommendations=LottoRecommendationRepository(db).exists_for_draw(next_draw_no),
    )


@app.post("/lotto/recommend")
def lotto_recommend(
    draw: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    ai_recommender: AiRecommender = Depends(get_ai_recommender),
) -> dict:
    target = draw or (LottoDrawRepository(db).get_max_draw_no() or 0) + 1
    if LottoRecommendationRepository(db).exists_for_draw(target):
        raise HTTPException(status_code=409, detail=f"{target}회 추천이 이미 있음")
    logger.info(f"Generating lotto recommendation for draw #{target}")
    return generate_lotto_recommendation(db, target, ai_recommender=ai_recommender)


# ---- 연금복권 ----
@app.post("/pension/sync", response_model=SyncResponse)
def pension_sync(
    start: Optional[int] = Query(default=None, ge=1),
    end: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    client: PensionAPIClient = Depends(get_pension_client),
) -> dict:
    try:
        return sync_pension_draws(db, client, start, end)
    except DrawSourceError as e:
        raise HTTPException(status_code=502, detail=f"{e} {e.detail}".strip())


@app.get("/pension/draws")
def pension_draws(db: Session = Depends(get_db)) -> dict:
    draws = PensionDrawRepository(db).find_all()
    return {
        "count": len(draws),
        "draws": [PensionDrawResponse.model_validate(d) for d in draws],
    }


@app.get("/pension/draws/latest", response_model=PensionDrawResponse)
def pension_latest_draw(db: Session = Depends(get_db)):
    latest = PensionDrawRepository(db).find_latest()
    if latest is None:
        raise HTTPException(status_code=404, detail="저장된 회차 없음")
    return latest


@app.get("/pension/status", response_model=DrawStatusResponse)
def pension_status(db: Session = Depends(get_db)) -> DrawStatusResponse:
    repo = PensionDrawRepository(db)
    latest = repo.find_latest()
    next_draw_no = (latest.draw_no if latest else 0) + 1
    return DrawStatusResponse(
        total_draws=repo.count(),
        latest_draw_no=latest.draw_no if latest else None,
        latest_draw_date=latest.draw_date if latest else None,
        next_draw_no=next_draw_no,
        next_draw_has_recommendations=PensionRecommendationRepository(db).exists_for_draw(next_draw_no),
    )


def _pension_recommend(db: Session, draw: Optional[int]) -> dict:
    target = draw or (PensionDrawRepository(db).get_max_draw_no() or 0) + 1
    if PensionRecommendationRepository(db).exists_for_draw(target):
        raise HTTPException(status_code=409, detail=f"{target}회 추천이 이미 있음")
    logger.info(f"Generating pension recommendation for draw #{target}")
    return generate_pension_recommendation(db, target)


@app.post("/pension/recommend")
def pension_recommend(
    draw: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> dict:
    return _pension_recommend(db, draw)


@app.post("/pension/recommend/send")
def pension_recommend_send(
    draw: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> dict:
    """추천 생성 후 텔레그램 전송 (수동 트리거)"""
    summary = _pension_recommend(db, draw)
    sent = send_pension_recommendation(summary)
    return {"ok": True, "target_draw_no": summary['target_draw_no'], "sent": sent}


# ---- AI ----
@app.get("/ai/status")
def ai_status(ai_recommender: AiRecommender = Depends(get_ai_recommender)) -> dict:
    return ai_recommender.check_status()
