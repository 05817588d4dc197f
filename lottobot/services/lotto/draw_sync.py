"""로또 당첨 번호 동기화 (동행복권 → DB)"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from lottobot.collectors.lotto.api_client import LottoAPIClient
from lottobot.db.models import LottoDraw
from lottobot.db.repositories import LottoDrawRepository

logger = logging.getLogger(__name__)

PRIZE_FIELDS = ("prize_1st", "winners_1st", "prize_2nd", "winners_2nd", "prize_3rd", "winners_3rd")


def sync_lotto_draws(
    db: Session,
    client: Optional[LottoAPIClient] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> Dict:
    """
    새 회차 저장 + 기존 회차의 비어있는 당첨금 정보 채우기

    Args:
        start: 기본값 DB 최대 회차 + 1 (없으면 1)
        end: 기본값 소스 최신 회차

    Raises:
        DrawSourceError: 소스에서 최신 회차를 확인할 수 없을 때
    """
    client = client or LottoAPIClient()
    repo = LottoDrawRepository(db)

    if start is None:
        start = (repo.get_max_draw_no() or 0) + 1
    if end is None:
        end = client.get_latest_draw_no()

    if start > end:
        logger.info(f"⏭️ 로또 동기화할 회차 없음 (DB {start - 1}회, 최신 {end}회)")
        return {'synced_count': 0, 'start_draw_no': start, 'end_draw_no': end, 'new_draws': []}

    logger.info(f"로또 {start}~{end}회 동기화 시작")
    fetched = client.get_draw_range(start, end)

    new_draws = []
    updated = 0
    try:
        for info in fetched:
            existing = repo.find_by_id(info['draw_no'])
            if existing is None:
                db.add(LottoDraw(**{k: info.get(k) for k in (
                    'draw_no', 'draw_date', 'n1', 'n2', 'n3', 'n4', 'n5', 'n6', 'bonus', *PRIZE_FIELDS,
                )}))
                new_draws.append(info['draw_no'])
            elif _fill_prizes(existing, info):
                updated += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ 로또 동기화 완료: 신규 {len(new_draws)}회, 당첨금 보완 {updated}회")
    return {
        'synced_count': len(new_draws),
        'start_draw_no': start,
        'end_draw_no': end,
        'new_draws': new_draws,
    }


def _fill_prizes(draw: LottoDraw, info: Dict) -> bool:
    changed = False
    for field in PRIZE_FIELDS:
        if getattr(draw, field) is None and info.get(field) is not None:
            setattr(draw, field, info[field])
            changed = True
    return changed
