"""Pytest configuration and fixtures."""

import os
from io import BytesIO

# 로컬 .env 값과 무관하게 테스트가 돌도록 모듈 import 전에 고정
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["API_SECRET"] = ""
os.environ["WEBHOOK_URL"] = ""
os.environ["SHOPIFY_SHOP_DOMAIN"] = ""
os.environ["SHOPIFY_ACCESS_TOKEN"] = ""
os.environ["STORAGE_BACKEND"] = "local"

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import JSON, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fitting_portal.db import get_session
from fitting_portal.main import app
from fitting_portal.models import Base
from fitting_portal.services.rate_limiter import RateLimiter
from fitting_portal.services.storage_service import LocalStorage, get_local_storage, get_storage
from fitting_portal.services.webhook_dispatcher import WebhookDispatcher, get_webhook_dispatcher
from fitting_portal.session_factory import get_session_factory
from fitting_portal.settings import settings
from fitting_portal.shopify_client import get_shopify_client


# 테스트용 메모리 SQLite 엔진 (TestClient 스레드와 연결 공유)
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False  # 테스트 로그 줄이기
)

TestSessionLocal = sessionmaker(
    bind=test_engine,
    autoflush=False,
    expire_on_commit=False,
)


def _patch_jsonb_to_json(base):
    """
    SQLite에서 JSONB를 JSON으로 변경하여 컴파일 오류 방지.
    테스트용으로만 사용.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                # JSONB → JSON으로 변경 (SQLite 호환)
                column.type = JSON()


@pytest.fixture(scope="function")
def test_session() -> Session:
    """
    테스트용 데이터베이스 세션 fixture.
    각 테스트마다 새로운 메모리 DB 생성.
    """
    _patch_jsonb_to_json(Base)
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
        session.commit()  # 테스트 성공 시 commit
    except Exception:
        session.rollback()  # 실패 시 rollback
        raise
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db_session(test_session: Session):
    """
    test_session alias.
    API 테스트에서 요청 전 데이터를 넣을 때는 반드시 commit 할 것 (StaticPool 로 연결 공유).
    """
    yield test_session


def _override_get_session():
    with TestSessionLocal() as session:
        with session.begin():
            yield session


@pytest.fixture
def upload_storage(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture
def webhook_dispatcher() -> WebhookDispatcher:
    """기본은 비활성 웹훅 (URL 없음). 테스트에서 override 가능."""
    return WebhookDispatcher(url="")


@pytest.fixture
def client(test_session: Session, upload_storage: LocalStorage, webhook_dispatcher: WebhookDispatcher):
    """
    FastAPI TestClient.
    DB/저장소/웹훅/Shopify 의존성을 테스트용으로 교체하고, rate limiter 는 테스트마다 새로 만든다.
    """
    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_session_factory] = lambda: TestSessionLocal
    app.dependency_overrides[get_storage] = lambda: upload_storage
    app.dependency_overrides[get_local_storage] = lambda: upload_storage
    app.dependency_overrides[get_webhook_dispatcher] = lambda: webhook_dispatcher
    app.dependency_overrides[get_shopify_client] = lambda: None
    app.state.upload_rate_limiter = RateLimiter(
        max_requests=settings.upload_rate_limit,
        window_seconds=settings.upload_rate_window_seconds,
    )

    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def image_bytes() -> dict[str, bytes]:
    """업로드 테스트용 8x8 실제 이미지 바이트."""
    images = {}
    for key, fmt in (("jpeg", "JPEG"), ("png", "PNG"), ("webp", "WEBP")):
        buf = BytesIO()
        Image.new("RGB", (8, 8), (200, 120, 80)).save(buf, format=fmt)
        images[key] = buf.getvalue()
    return images


# 테스트 마커 정의
def pytest_configure(config):
    """Pytest 마커 등록."""
    config.addinivalue_line("markers", "unit: 단위 테스트 (DB 불필요)")
    config.addinivalue_line("markers", "integration: 통합 테스트 (API + 테스트 DB)")
    config.addinivalue_line("markers", "slow: 느린 테스트 (> 1분)")
