"""연금복권 추천 생성 (순위별 6자리 x 조 1~5)"""
import logging
import random
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from lottobot.config import settings
from lottobot.db.models import PensionRecommendation, RecommendationType
from lottobot.db.repositories import PensionDrawRepository, PensionRecommendationRepository
from lottobot.services.pension.stats_calculator import PensionStatsCalculator
from lottobot.utils.random_source import get_rng

logger = logging.getLogger(__name__)

GROUPS = range(1, 6)


def generate_pension_recommendation(
    db: Session,
    target_draw_no: int,
    rng: Optional[random.Random] = None,
    digit_ranks: Optional[int] = None,
) -> Dict:
    """
    자리별 빈도 순위 6자리를 조 1~5에 각각 배정해 저장

    digit_ranks=2 → 1순위 6자리 게임 1~5, 2순위 6자리 게임 6~10
    """
    rng = rng or get_rng()
    ranks = max(1, digit_ranks if digit_ranks is not None else settings.PENSION_DIGIT_RANKS)

    draws = [d.to_dict() for d in PensionDrawRepository(db).find_all()]
    digit_sets = PensionStatsCalculator.get_ranked_digit_sets(draws, k=ranks, rng=rng)

    records: List[PensionRecommendation] = []
    game_number = 0
    for digits in digit_sets:
        for group_no in GROUPS:
            game_number += 1
            records.append(PensionRecommendation(
                target_draw_no=target_draw_no,
                rec_type=RecommendationType.STATISTICAL,
                game_number=game_number,
                group_no=group_no,
                digits=digits,
            ))

    PensionRecommendationRepository(db).save_many(records)
    logger.info(f"✅ 연금복권 {target_draw_no}회 추천 생성: {len(records)}게임 ({', '.join(digit_sets)})")
    return {
        'target_draw_no': target_draw_no,
        'recommendations': [r.to_dict() for r in records],
        'digit_sets': digit_sets,
    }
