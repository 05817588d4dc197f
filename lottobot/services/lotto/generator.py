"""로또 추천 번호 생성 (통계 3게임 + AI 2게임)"""
import logging
import random
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from lottobot.ai.recommender import AiRecommender, RECENT_DRAW_LIMIT
from lottobot.config import settings
from lottobot.db.models import LottoRecommendation, RecommendationType
from lottobot.db.repositories import LottoDrawRepository, LottoRecommendationRepository
from lottobot.services.lotto.stats_calculator import LottoStatsCalculator, NUMBER_RANGE
from lottobot.utils.random_source import get_rng

logger = logging.getLogger(__name__)


def pick_random_numbers(candidates: List[int], count: int, rng: random.Random) -> List[int]:
    """후보를 섞어(Fisher-Yates) 앞에서 count개 선택, 오름차순"""
    pool = list(candidates)
    rng.shuffle(pool)
    return sorted(pool[:count])


def generate_lotto_recommendation(
    db: Session,
    target_draw_no: int,
    rng: Optional[random.Random] = None,
    ai_recommender: Optional[AiRecommender] = None,
) -> Dict:
    """
    회차별 추천 생성 후 한 번에 저장

    통계 게임(1~3): 저빈도 번호를 제외한 후보에서 랜덤 6개
    AI 게임(4~5): 최근 10회차 기반 AI 추천 (실패 시 세트별 랜덤)
    """
    rng = rng or get_rng()
    draw_repo = LottoDrawRepository(db)
    draws = [d.to_dict() for d in draw_repo.find_all()]

    candidates = LottoStatsCalculator.get_candidate_numbers(draws, settings.LOTTO_EXCLUDE_COUNT)
    if len(candidates) < 6:
        logger.warning(f"후보 번호 {len(candidates)}개로 부족, 1~45 전체 사용")
        candidates = list(NUMBER_RANGE)

    records: List[LottoRecommendation] = []
    game_number = 0
    for _ in range(settings.LOTTO_STATISTICAL_GAMES):
        game_number += 1
        records.append(LottoRecommendation(
            target_draw_no=target_draw_no,
            rec_type=RecommendationType.STATISTICAL,
            game_number=game_number,
            numbers=pick_random_numbers(candidates, 6, rng),
        ))

    ai_count = settings.LOTTO_AI_GAMES
    if ai_count > 0:
        recommender = ai_recommender or AiRecommender(rng=rng)
        recent = [
            {'numbers': d.numbers, 'bonus': d.bonus}
            for d in draw_repo.find_recent(RECENT_DRAW_LIMIT)
        ]
        for ai_set in recommender.recommend(recent, ai_count):
            game_number += 1
            records.append(LottoRecommendation(
                target_draw_no=target_draw_no,
                rec_type=RecommendationType.AI,
                game_number=game_number,
                numbers=ai_set['numbers'],
                ai_reasoning=ai_set['reasoning'],
            ))

    LottoRecommendationRepository(db).save_many(records)

    statistical = [r for r in records if r.rec_type == RecommendationType.STATISTICAL]
    ai = [r for r in records if r.rec_type == RecommendationType.AI]
    logger.info(
        f"✅ 로또 {target_draw_no}회 추천 생성: 통계 {len(statistical)}게임, AI {len(ai)}게임"
    )
    return {
        'target_draw_no': target_draw_no,
        'recommendations': [r.to_dict() for r in records],
        'statistical': [r.numbers for r in statistical],
        'ai': [{'numbers': r.numbers, 'reasoning': r.ai_reasoning} for r in ai],
    }
