from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from push_contact.core.config import settings


def _engine_options(url: str) -> dict:
    # SQLite(로컬/테스트)은 커넥션 풀 옵션을 받지 않는다
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,               # 연결이 죽었는지 자동 체크
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


# 엔진 생성
engine = create_engine(settings.sqlalchemy_url, **_engine_options(settings.sqlalchemy_url))

# 세션 팩토리
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


# 의존성 주입 함수
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
