"""
Alembic 마이그레이션 환경 설정

- 오프라인: SQL 스크립트만 생성 (DB 연결 불필요)
- 온라인: 실제 DB에 마이그레이션 적용

DB URL은 settings.database_url(DATABASE_URL 환경변수)에서 가져옵니다.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

# 프로젝트 루트를 sys.path에 추가
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config.settings import settings  # noqa: E402
from src.models.schema import Base  # noqa: E402

# Alembic Config 객체
config = context.config

# 로깅 설정
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# SQLAlchemy MetaData (autogenerate용)
target_metadata = Base.metadata


def get_url() -> str:
    """DB URL (alembic -x url=... 로 덮어쓸 수 있음)"""
    return context.get_x_argument(as_dictionary=True).get("url", settings.database_url)


def run_migrations_offline() -> None:
    """
    오프라인 모드: DB 연결 없이 SQL 스크립트를 생성합니다.

    사용법: alembic upgrade head --sql
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    온라인 모드: 실제 DB에 연결하여 마이그레이션을 적용합니다.
    """
    connectable = create_engine(
        get_url(),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite는 ALTER TABLE 지원이 제한적이므로 batch 모드 사용
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
