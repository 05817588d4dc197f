"""로또 추천 결과 확인 (등수 판정)"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from lottobot.db.models import LottoResult
from lottobot.db.repositories import (
    LottoDrawRepository, LottoRecommendationRepository, LottoResultRepository,
)

logger = logging.getLogger(__name__)


def calculate_prize_rank(matched_count: int, has_bonus: bool) -> Optional[int]:
    """
    6개 일치 1등, 5개+보너스 2등, 5개 3등, 4개 4등, 3개 5등, 나머지 낙첨(None)
    """
    if matched_count == 6:
        return 1
    if matched_count == 5:
        return 2 if has_bonus else 3
    if matched_count == 4:
        return 4
    if matched_count == 3:
        return 5
    return None


def best_rank(ranks: List[Optional[int]]) -> Optional[int]:
    """가장 높은 등수 (숫자가 가장 작은 값), 당첨 없으면 None"""
    won = [r for r in ranks if r is not None]
    return min(won) if won else None


def check_lotto_results(db: Session, draw_no: int) -> Optional[Dict]:
    """
    회차 추천 결과 확인

    이미 결과가 있는 추천은 다시 만들지 않고 저장된 결과를 그대로 포함한다.

    Returns:
        {draw_no, winning_numbers, bonus, results, new_count, total_recommendations, best_rank}
        당첨 번호나 추천이 없으면 None
    """
    draw = LottoDrawRepository(db).find_by_id(draw_no)
    if draw is None:
        logger.info(f"로또 {draw_no}회 당첨 번호 없음")
        return None

    recommendations = LottoRecommendationRepository(db).find_by_draw_no(draw_no)
    if not recommendations:
        logger.info(f"로또 {draw_no}회 추천 없음")
        return None

    result_repo = LottoResultRepository(db)
    winning = set(draw.numbers)
    results = []
    new_count = 0

    for rec in recommendations:
        existing = result_repo.find_by_recommendation_id(rec.id)
        if existing is not None:
            result, is_new = existing, False
        else:
            matched = sorted(n for n in rec.numbers if n in winning)
            has_bonus = draw.bonus in rec.numbers
            result = result_repo.save(LottoResult(
                recommendation_id=rec.id,
                matched_count=len(matched),
                matched_numbers=matched,
                has_bonus=has_bonus,
                prize_rank=calculate_prize_rank(len(matched), has_bonus),
            ))
            is_new = True
            new_count += 1

        results.append({
            'recommendation_id': rec.id,
            'game_number': rec.game_number,
            'rec_type': rec.rec_type,
            'numbers': list(rec.numbers),
            'matched_count': result.matched_count,
            'matched_numbers': list(result.matched_numbers),
            'has_bonus': result.has_bonus,
            'prize_rank': result.prize_rank,
            'is_new': is_new,
        })

    summary = {
        'draw_no': draw_no,
        'winning_numbers': draw.numbers,
        'bonus': draw.bonus,
        'results': results,
        'new_count': new_count,
        'total_recommendations': len(recommendations),
        'best_rank': best_rank([r['prize_rank'] for r in results]),
    }
    logger.info(
        f"✅ 로또 {draw_no}회 결과 확인: 신규 {new_count}건 / 전체 {len(recommendations)}건, "
        f"최고 등수 {summary['best_rank'] or '낙첨'}"
    )
    return summary
