from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool
from lottobot.config import settings

db_url = settings.DB_URL


def build_engine(url: str, **kwargs) -> Engine:
    """DB URL에 맞는 엔진 생성 (PostgreSQL은 풀링, SQLite는 스레드 체크 해제)"""
    if url.startswith("postgresql"):
        return create_engine(
            url,
            future=True,
            echo=False,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # 연결 유효성 검사
            **kwargs,
        )

    sqlite_engine = create_engine(
        url,
        future=True,
        echo=False,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
        **kwargs,
    )

    if "sqlite" in url:
        # SQLite는 기본적으로 FK 검사를 하지 않음
        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return sqlite_engine


engine = build_engine(db_url)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

Base = declarative_base()


def init_db(bind: Engine = None) -> None:
    """테이블 생성 (없는 테이블만)"""
    # 모델 등록을 위해 import
    from lottobot.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
