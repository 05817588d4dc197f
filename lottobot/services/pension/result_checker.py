"""연금복권 추천 결과 확인"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from lottobot.db.models import PensionResult
from lottobot.db.repositories import (
    PensionDrawRepository, PensionRecommendationRepository, PensionResultRepository,
)
from lottobot.services.lotto.result_checker import best_rank

logger = logging.getLogger(__name__)


def calculate_pension_prize_rank(
    rec_group: int,
    rec_digits: Optional[str],
    win_group: Optional[int],
    win_digits: Optional[str],
) -> Optional[int]:
    """
    조 + 6자리 모두 일치 1등, 끝 5자리 2등, 4자리 3등, 3자리 4등, 2자리 5등, 1자리 7등
    """
    if not win_digits or len(win_digits) != 6:
        return None
    if not rec_digits or len(rec_digits) != 6:
        return None

    if rec_group == win_group and rec_digits == win_digits:
        return 1

    for length in range(5, 0, -1):
        if rec_digits[-length:] == win_digits[-length:]:
            # 6등은 판정 경로 없음
            return 7 if length == 1 else 7 - length
    return None


def check_pension_results(db: Session, draw_no: int) -> Optional[Dict]:
    """
    Returns:
        {draw_no, winning_group, winning_digits, results, new_count, total_recommendations, best_rank}
        당첨 번호나 추천이 없으면 None
    """
    draw = PensionDrawRepository(db).find_by_id(draw_no)
    if draw is None:
        logger.info(f"연금복권 {draw_no}회 당첨 번호 없음")
        return None

    recommendations = PensionRecommendationRepository(db).find_by_draw_no(draw_no)
    if not recommendations:
        logger.info(f"연금복권 {draw_no}회 추천 없음")
        return None

    result_repo = PensionResultRepository(db)
    results = []
    new_count = 0

    for rec in recommendations:
        existing = result_repo.find_by_recommendation_id(rec.id)
        if existing is not None:
            result, is_new = existing, False
        else:
            result = result_repo.save(PensionResult(
                recommendation_id=rec.id,
                prize_rank=calculate_pension_prize_rank(
                    rec.group_no, rec.digits, draw.group_no, draw.digits,
                ),
            ))
            is_new = True
            new_count += 1

        results.append({
            'recommendation_id': rec.id,
            'game_number': rec.game_number,
            'group_no': rec.group_no,
            'digits': rec.digits,
            'prize_rank': result.prize_rank,
            'is_new': is_new,
        })

    summary = {
        'draw_no': draw_no,
        'winning_group': draw.group_no,
        'winning_digits': draw.digits,
        'results': results,
        'new_count': new_count,
        'total_recommendations': len(recommendations),
        'best_rank': best_rank([r['prize_rank'] for r in results]),
    }
    logger.info(
        f"✅ 연금복권 {draw_no}회 결과 확인: 신규 {new_count}건 / 전체 {len(recommendations)}건"
    )
    return summary
