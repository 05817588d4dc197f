"""연금복권 당첨 번호 동기화"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from lottobot.collectors.pension.api_client import PensionAPIClient
from lottobot.db.models import PensionDraw
from lottobot.db.repositories import PensionDrawRepository

logger = logging.getLogger(__name__)


def sync_pension_draws(
    db: Session,
    client: Optional[PensionAPIClient] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> Dict:
    client = client or PensionAPIClient()
    repo = PensionDrawRepository(db)

    if start is None:
        start = (repo.get_max_draw_no() or 0) + 1
    if end is None:
        end = client.get_latest_draw_no()

    if start > end:
        logger.info(f"⏭️ 연금복권 동기화할 회차 없음 (최신 {end}회)")
        return {'synced_count': 0, 'start_draw_no': start, 'end_draw_no': end, 'new_draws': []}

    fetched = client.get_draw_range(start, end)

    new_draws = []
    try:
        for info in fetched:
            existing = repo.find_by_id(info['draw_no'])
            if existing is None:
                db.add(PensionDraw(
                    draw_no=info['draw_no'],
                    draw_date=info.get('draw_date'),
                    group_no=info.get('group_no'),
                    digits=info.get('digits'),
                    prizes=info.get('prizes'),
                    winners=info.get('winners'),
                ))
                new_draws.append(info['draw_no'])
                continue
            # 당첨금은 늦게 발표될 수 있음
            if not any(existing.prizes or []) and any(info.get('prizes') or []):
                existing.prizes = info['prizes']
            if not any(existing.winners or []) and any(info.get('winners') or []):
                existing.winners = info['winners']
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"✅ 연금복권 동기화 완료: 신규 {len(new_draws)}회 ({start}~{end})")
    return {
        'synced_count': len(new_draws),
        'start_draw_no': start,
        'end_draw_no': end,
        'new_draws': new_draws,
    }
