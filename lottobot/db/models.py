from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, JSON,
    CheckConstraint, UniqueConstraint, Index,
)

from lottobot.db.session import Base


def utcnow():
    """타임존 aware UTC 시간 반환"""
    return datetime.now(timezone.utc)


class RecommendationType:
    """추천 타입"""
    STATISTICAL = "STATISTICAL"  # 통계 기반 (저빈도 번호 제외)
    AI = "AI"  # AI 기반


class LottoDraw(Base):
    """로또 6/45 당첨 번호 이력"""
    __tablename__ = "lotto_draws"

    draw_no = Column(Integer, primary_key=True, autoincrement=False)  # 회차
    draw_date = Column(Date, nullable=False, index=True)  # 추첨일
    n1 = Column(Integer, nullable=False)
    n2 = Column(Integer, nullable=False)
    n3 = Column(Integer, nullable=False)
    n4 = Column(Integer, nullable=False)
    n5 = Column(Integer, nullable=False)
    n6 = Column(Integer, nullable=False)
    bonus = Column(Integer, nullable=False)

    # 등위별 당첨금/당첨자 수 (참고용, 늦게 채워질 수 있음)
    prize_1st = Column(BigInteger, nullable=True)
    winners_1st = Column(Integer, nullable=True)
    prize_2nd = Column(BigInteger, nullable=True)
    winners_2nd = Column(Integer, nullable=True)
    prize_3rd = Column(BigInteger, nullable=True)
    winners_3rd = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint('draw_no > 0', name='lotto_draw_no_positive'),
        CheckConstraint('n1 BETWEEN 1 AND 45', name='n1_range'),
        CheckConstraint('n2 BETWEEN 1 AND 45', name='n2_range'),
        CheckConstraint('n3 BETWEEN 1 AND 45', name='n3_range'),
        CheckConstraint('n4 BETWEEN 1 AND 45', name='n4_range'),
        CheckConstraint('n5 BETWEEN 1 AND 45', name='n5_range'),
        CheckConstraint('n6 BETWEEN 1 AND 45', name='n6_range'),
        CheckConstraint('bonus BETWEEN 1 AND 45', name='bonus_range'),
    )

    @property
    def numbers(self) -> list:
        return [self.n1, self.n2, self.n3, self.n4, self.n5, self.n6]

    def to_dict(self) -> dict:
        return {
            'draw_no': self.draw_no,
            'draw_date': self.draw_date,
            'n1': self.n1, 'n2': self.n2, 'n3': self.n3,
            'n4': self.n4, 'n5': self.n5, 'n6': self.n6,
            'bonus': self.bonus,
        }


class PensionDraw(Base):
    """연금복권720+ 당첨 번호 이력"""
    __tablename__ = "pension_draws"

    draw_no = Column(Integer, primary_key=True, autoincrement=False)
    draw_date = Column(Date, nullable=True, index=True)
    group_no = Column(Integer, nullable=True)  # 1등 조 (1~5), 미발표 시 NULL
    digits = Column(String(6), nullable=True)  # 1등 6자리 (예: 112703)

    # 1~8등 당첨금/당첨자 수 (index 0 = 1등)
    prizes = Column(JSON, nullable=True)
    winners = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint('draw_no > 0', name='pension_draw_no_positive'),
        CheckConstraint('group_no IS NULL OR group_no BETWEEN 1 AND 5', name='pension_group_range'),
    )

    def to_dict(self) -> dict:
        return {
            'draw_no': self.draw_no,
            'draw_date': self.draw_date,
            'group_no': self.group_no,
            'digits': self.digits,
        }


class LottoRecommendation(Base):
    """로또 번호 추천 (회차별 게임 단위)"""
    __tablename__ = "lotto_recommendations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    target_draw_no = Column(Integer, nullable=False, index=True)
    rec_type = Column(String(20), nullable=False)  # STATISTICAL / AI
    game_number = Column(Integer, nullable=False)  # 1~5
    numbers = Column(JSON, nullable=False)  # 오름차순 6개
    ai_reasoning = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint('target_draw_no', 'rec_type', 'game_number', name='uix_lotto_rec_draw_type_game'),
        CheckConstraint("rec_type IN ('STATISTICAL', 'AI')", name='lotto_rec_type_check'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'target_draw_no': self.target_draw_no,
            'rec_type': self.rec_type,
            'game_number': self.game_number,
            'numbers': list(self.numbers),
            'ai_reasoning': self.ai_reasoning,
        }


class PensionRecommendation(Base):
    """연금복권 추천 (조 + 6자리)"""
    __tablename__ = "pension_recommendations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    target_draw_no = Column(Integer, nullable=False, index=True)
    rec_type = Column(String(20), nullable=False)
    game_number = Column(Integer, nullable=False)
    group_no = Column(Integer, nullable=False)
    digits = Column(String(6), nullable=False)
    ai_reasoning = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint('target_draw_no', 'rec_type', 'game_number', name='uix_pension_rec_draw_type_game'),
        CheckConstraint('group_no BETWEEN 1 AND 5', name='pension_rec_group_range'),
        CheckConstraint("rec_type IN ('STATISTICAL', 'AI')", name='pension_rec_type_check'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'target_draw_no': self.target_draw_no,
            'rec_type': self.rec_type,
            'game_number': self.game_number,
            'group_no': self.group_no,
            'digits': self.digits,
        }


class LottoResult(Base):
    """로또 추천 결과 (추천 1건당 1건)"""
    __tablename__ = "lotto_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recommendation_id = Column(
        Integer, ForeignKey("lotto_recommendations.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    matched_count = Column(Integer, nullable=False)
    matched_numbers = Column(JSON, nullable=False)
    has_bonus = Column(Boolean, default=False, nullable=False)
    prize_rank = Column(Integer, nullable=True)  # NULL = 낙첨
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_lotto_result_rank', 'prize_rank'),
    )


class PensionResult(Base):
    """연금복권 추천 결과"""
    __tablename__ = "pension_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recommendation_id = Column(
        Integer, ForeignKey("pension_recommendations.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    prize_rank = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
