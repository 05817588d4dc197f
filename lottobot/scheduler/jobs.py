"""주간 추천 생성 / 결과 확인 스케줄 (KST)"""
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from lottobot.collectors.base import DrawSourceError
from lottobot.config import settings
from lottobot.db.repositories import (
    LottoDrawRepository, LottoRecommendationRepository, LottoResultRepository,
    PensionDrawRepository, PensionRecommendationRepository, PensionResultRepository,
)
from lottobot.db.session import SessionLocal
from lottobot.services.lotto.draw_sync import sync_lotto_draws
from lottobot.services.lotto.generator import generate_lotto_recommendation
from lottobot.services.lotto.result_checker import check_lotto_results
from lottobot.services.notification_service import (
    send_lotto_recommendation, send_lotto_result,
    send_pension_recommendation, send_pension_result, send_pension_sync,
)
from lottobot.services.pension.draw_sync import sync_pension_draws
from lottobot.services.pension.generator import generate_pension_recommendation
from lottobot.services.pension.result_checker import check_pension_results

logger = logging.getLogger(__name__)

LOTTO_GENERATE = "lotto/generate"
LOTTO_VERIFY = "lotto/verify"
PENSION_GENERATE = "pension/generate"
PENSION_VERIFY = "pension/verify"
LOTTO_SYNC = "lotto/sync"
PENSION_SYNC = "pension/sync"


class JobState(str, Enum):
    IDLE = "IDLE"
    CHECK_EXISTING = "CHECK_EXISTING"
    SKIP = "SKIP"
    RUN = "RUN"


class JobOutcome(str, Enum):
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


# check(db) -> (대상 회차, 건너뛸 사유 또는 None)
CheckFn = Callable[[Session], Tuple[Optional[int], Optional[str]]]
RunFn = Callable[[Session, int], JobOutcome]


class CycleJob:
    """
    (복권 종류, 트리거) 한 쌍의 실행 단위

    IDLE → CHECK_EXISTING → SKIP | RUN → IDLE
    실행 중 예외는 여기서 잡아 로그만 남기고 FAILED로 끝낸다.
    """

    def __init__(self, name: str, check: CheckFn, run: RunFn,
                 session_factory: Callable[[], Session] = SessionLocal):
        self.name = name
        self.check = check
        self.run = run
        self.session_factory = session_factory

        self.state = JobState.IDLE
        self.last_target: Optional[int] = None
        self.last_outcome: Optional[JobOutcome] = None
        self.last_run_at: Optional[datetime] = None
        self._lock = threading.Lock()

    def __call__(self) -> JobOutcome:
        if not self._lock.acquire(blocking=False):
            logger.warning(f"⏭️ [{self.name}] 이전 실행이 아직 진행 중")
            return JobOutcome.SKIPPED

        outcome = JobOutcome.FAILED
        db = None
        try:
            db = self.session_factory()
            self.state = JobState.CHECK_EXISTING
            target, skip_reason = self.check(db)
            self.last_target = target

            if skip_reason:
                self.state = JobState.SKIP
                logger.info(f"⏭️ [{self.name}] {skip_reason}")
                outcome = JobOutcome.SKIPPED
            else:
                self.state = JobState.RUN
                logger.info(f"[{self.name}] {target}회 실행 시작")
                outcome = self.run(db, target)
                if outcome == JobOutcome.COMPLETED:
                    logger.info(f"✅ [{self.name}] {target}회 완료")
                else:
                    logger.info(f"⏭️ [{self.name}] {target}회 변경 없음")

        except Exception as e:
            logger.error(f"❌ [{self.name}] 실패: {e}", exc_info=True)
            if db is not None:
                db.rollback()
            outcome = JobOutcome.FAILED
        finally:
            if db is not None:
                db.close()
            self.state = JobState.IDLE
            self.last_outcome = outcome
            self.last_run_at = datetime.now(timezone.utc)
            self._lock.release()

        return outcome

    def status(self) -> Dict:
        return {
            'name': self.name,
            'state': self.state.value,
            'last_target': self.last_target,
            'last_outcome': self.last_outcome.value if self.last_outcome else None,
            'last_run_at': self.last_run_at.isoformat() if self.last_run_at else None,
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 로또
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def check_lotto_generate(db: Session) -> Tuple[int, Optional[str]]:
    target = (LottoDrawRepository(db).get_max_draw_no() or 0) + 1
    if LottoRecommendationRepository(db).exists_for_draw(target):
        return target, f"로또 {target}회 추천이 이미 있음"
    return target, None


def run_lotto_generate(db: Session, target: int) -> JobOutcome:
    summary = generate_lotto_recommendation(db, target)
    if not send_lotto_recommendation(summary):
        logger.warning(f"로또 {target}회 추천 알림 미전송 (추천은 저장됨)")
    return JobOutcome.COMPLETED


def check_lotto_verify(db: Session) -> Tuple[Optional[int], Optional[str]]:
    try:
        sync_lotto_draws(db)
    except DrawSourceError as e:
        logger.warning(f"로또 당첨 번호 동기화 실패: {e}")
        return None, "로또 당첨 번호 동기화 실패, 다음 주기에 다시 확인"

    latest = LottoDrawRepository(db).find_latest()
    if latest is None:
        return None, "저장된 로또 회차 없음"
    return latest.draw_no, _verify_skip_reason(
        "로또", latest.draw_no,
        LottoRecommendationRepository(db), LottoResultRepository(db),
    )


def run_lotto_verify(db: Session, draw_no: int) -> JobOutcome:
    summary = check_lotto_results(db, draw_no)
    if summary is None or summary['new_count'] == 0:
        return JobOutcome.SKIPPED
    if not send_lotto_result(summary):
        logger.warning(f"로또 {draw_no}회 결과 알림 미전송")
    return JobOutcome.COMPLETED


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 연금복권
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def check_pension_generate(db: Session) -> Tuple[int, Optional[str]]:
    target = (PensionDrawRepository(db).get_max_draw_no() or 0) + 1
    if PensionRecommendationRepository(db).exists_for_draw(target):
        return target, f"연금복권 {target}회 추천이 이미 있음"
    return target, None


def run_pension_generate(db: Session, target: int) -> JobOutcome:
    summary = generate_pension_recommendation(db, target)
    if not send_pension_recommendation(summary):
        logger.warning(f"연금복권 {target}회 추천 알림 미전송 (추천은 저장됨)")
    return JobOutcome.COMPLETED


def check_pension_verify(db: Session) -> Tuple[Optional[int], Optional[str]]:
    try:
        sync_pension_draws(db)
    except DrawSourceError as e:
        logger.warning(f"연금복권 당첨 번호 동기화 실패: {e}")
        return None, "연금복권 당첨 번호 동기화 실패, 다음 주기에 다시 확인"

    latest = PensionDrawRepository(db).find_latest()
    if latest is None:
        return None, "저장된 연금복권 회차 없음"
    return latest.draw_no, _verify_skip_reason(
        "연금복권", latest.draw_no,
        PensionRecommendationRepository(db), PensionResultRepository(db),
    )


def run_pension_verify(db: Session, draw_no: int) -> JobOutcome:
    summary = check_pension_results(db, draw_no)
    if summary is None or summary['new_count'] == 0:
        return JobOutcome.SKIPPED
    if not send_pension_result(summary):
        logger.warning(f"연금복권 {draw_no}회 결과 알림 미전송")
    return JobOutcome.COMPLETED


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 당첨 번호 주간 동기화 (늦게 발표된 회차 반영)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def check_lotto_sync(db: Session) -> Tuple[int, Optional[str]]:
    return (LottoDrawRepository(db).get_max_draw_no() or 0) + 1, None


def run_lotto_sync(db: Session, start: int) -> JobOutcome:
    result = sync_lotto_draws(db)
    if result["synced_count"] == 0:
        return JobOutcome.SKIPPED
    return JobOutcome.COMPLETED


def check_pension_sync(db: Session) -> Tuple[int, Optional[str]]:
    return (PensionDrawRepository(db).get_max_draw_no() or 0) + 1, None


def run_pension_sync(db: Session, start: int) -> JobOutcome:
    """동기화 결과는 변경이 없어도 알림"""
    result = sync_pension_draws(db)
    if not send_pension_sync(result):
        logger.warning("연금복권 동기화 알림 미전송")
    if result["synced_count"] == 0:
        return JobOutcome.SKIPPED
    return JobOutcome.COMPLETED


def _verify_skip_reason(label: str, draw_no: int, rec_repo, result_repo) -> Optional[str]:
    recommendations = rec_repo.find_by_draw_no(draw_no)
    if not recommendations:
        return f"{label} {draw_no}회 추천 없음"
    checked = result_repo.count_for_recommendations([r.id for r in recommendations])
    if checked >= len(recommendations):
        return f"{label} {draw_no}회 결과 확인 완료됨"
    return None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 스케줄러
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def build_jobs(session_factory: Callable[[], Session] = SessionLocal) -> Dict[str, CycleJob]:
    return {
        LOTTO_GENERATE: CycleJob(LOTTO_GENERATE, check_lotto_generate, run_lotto_generate, session_factory),
        LOTTO_VERIFY: CycleJob(LOTTO_VERIFY, check_lotto_verify, run_lotto_verify, session_factory),
        PENSION_GENERATE: CycleJob(PENSION_GENERATE, check_pension_generate, run_pension_generate, session_factory),
        PENSION_VERIFY: CycleJob(PENSION_VERIFY, check_pension_verify, run_pension_verify, session_factory),
        LOTTO_SYNC: CycleJob(LOTTO_SYNC, check_lotto_sync, run_lotto_sync, session_factory),
        PENSION_SYNC: CycleJob(PENSION_SYNC, check_pension_sync, run_pension_sync, session_factory),
    }


def job_crons() -> Dict[str, str]:
    return {
        LOTTO_GENERATE: settings.LOTTO_GENERATE_CRON,
        LOTTO_VERIFY: settings.LOTTO_VERIFY_CRON,
        PENSION_GENERATE: settings.PENSION_GENERATE_CRON,
        PENSION_VERIFY: settings.PENSION_VERIFY_CRON,
        LOTTO_SYNC: settings.LOTTO_SYNC_CRON,
        PENSION_SYNC: settings.PENSION_SYNC_CRON,
    }


def build_scheduler(jobs: Optional[Dict[str, CycleJob]] = None,
                    tz: Optional[str] = None) -> BackgroundScheduler:
    """
    잡 6개를 등록한 스케줄러 (시작은 호출한 쪽에서)

    같은 잡은 겹쳐 실행되지 않고(max_instances=1), 서로 다른 잡은 동시에 돌 수 있다.
    """
    jobs = jobs or build_jobs()
    tz = tz or settings.SCHEDULER_TIMEZONE
    scheduler = BackgroundScheduler(timezone=tz)

    for name, cron in job_crons().items():
        scheduler.add_job(
            jobs[name],
            CronTrigger.from_crontab(cron, timezone=tz),
            id=name.replace("/", "_"),
            name=name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Scheduled {name}: '{cron}' ({tz})")

    return scheduler
