"""
데이터베이스 연결 및 세션 관리

SQLAlchemy 엔진과 세션 팩토리를 설정합니다.
알림 저장소는 세션 팩토리를 주입받아 사용합니다.
"""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import settings
from src.models.schema import Base


def build_engine(url: str | None = None) -> Engine:
    """DB 엔진 생성 (SQLite는 스레드 간 공유 허용)"""
    url = url or settings.database_url
    kwargs: dict[str, object] = {"echo": False, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        # 감시 루프가 워커 스레드에서 저장소를 호출함
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
            # 인메모리 DB는 모든 스레드가 같은 연결을 공유해야 함
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """세션 팩토리 생성"""
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """알림 테이블 생성 (존재하면 무시)"""
    Base.metadata.create_all(engine)
