"""로또/연금복권 저장소 (SQLAlchemy)"""
from typing import List, Optional

from sqlalchemy.orm import Session

from lottobot.db.models import (
    LottoDraw, LottoRecommendation, LottoResult,
    PensionDraw, PensionRecommendation, PensionResult,
)


class _DrawRepository:
    model = None

    def __init__(self, db: Session):
        """
        Args:
            db: SQLAlchemy Session
        """
        self.db = db

    def find_by_id(self, draw_no: int):
        """회차로 조회"""
        return self.db.get(self.model, draw_no)

    def find_latest(self):
        """최신 회차 조회"""
        return self.db.query(self.model).order_by(self.model.draw_no.desc()).first()

    def find_all(self) -> list:
        """모든 회차 조회 (오름차순)"""
        return self.db.query(self.model).order_by(self.model.draw_no).all()

    def find_recent(self, n: int = 10) -> list:
        """최근 N개 회차 (오름차순으로 반환)"""
        rows = (
            self.db.query(self.model)
            .order_by(self.model.draw_no.desc())
            .limit(n)
            .all()
        )
        rows.reverse()
        return rows

    def get_max_draw_no(self) -> Optional[int]:
        """DB에 저장된 최대 회차 번호"""
        latest = self.find_latest()
        return latest.draw_no if latest else None

    def count(self) -> int:
        return self.db.query(self.model).count()

    def exists(self, draw_no: int) -> bool:
        return self.db.query(self.model.draw_no).filter(self.model.draw_no == draw_no).first() is not None

    def save(self, draw):
        self.db.add(draw)
        self.db.commit()
        return draw


class LottoDrawRepository(_DrawRepository):
    model = LottoDraw


class PensionDrawRepository(_DrawRepository):
    model = PensionDraw


class _RecommendationRepository:
    model = None

    def __init__(self, db: Session):
        self.db = db

    def find_by_draw_no(self, draw_no: int) -> list:
        """특정 회차의 추천 조회 (게임 번호순)"""
        return (
            self.db.query(self.model)
            .filter(self.model.target_draw_no == draw_no)
            .order_by(self.model.game_number, self.model.id)
            .all()
        )

    def exists_for_draw(self, draw_no: int) -> bool:
        return (
            self.db.query(self.model.id)
            .filter(self.model.target_draw_no == draw_no)
            .first()
        ) is not None

    def save(self, recommendation):
        return self.save_many([recommendation])[0]

    def save_many(self, recommendations: list) -> list:
        """여러 추천을 한 트랜잭션으로 저장 (실패 시 전체 롤백)"""
        try:
            self.db.add_all(recommendations)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return recommendations


class LottoRecommendationRepository(_RecommendationRepository):
    model = LottoRecommendation


class PensionRecommendationRepository(_RecommendationRepository):
    model = PensionRecommendation


class _ResultRepository:
    model = None

    def __init__(self, db: Session):
        self.db = db

    def find_by_recommendation_id(self, recommendation_id: int):
        return (
            self.db.query(self.model)
            .filter(self.model.recommendation_id == recommendation_id)
            .first()
        )

    def exists(self, recommendation_id: int) -> bool:
        return self.find_by_recommendation_id(recommendation_id) is not None

    def count_for_recommendations(self, recommendation_ids: List[int]) -> int:
        if not recommendation_ids:
            return 0
        return (
            self.db.query(self.model)
            .filter(self.model.recommendation_id.in_(recommendation_ids))
            .count()
        )

    def save(self, result):
        self.db.add(result)
        self.db.commit()
        return result


class LottoResultRepository(_ResultRepository):
    model = LottoResult


class PensionResultRepository(_ResultRepository):
    model = PensionResult
