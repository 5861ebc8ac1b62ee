from collections.abc import Callable

from sqlalchemy.orm import Session

from fitting_portal.db import SessionLocal

SessionFactory = Callable[[], Session]


def session_factory() -> Session:
    return SessionLocal()


def get_session_factory() -> SessionFactory:
    """백그라운드 작업이 요청 세션과 별도로 세션을 열 때 사용하는 팩토리 (테스트에서 override)."""
    return session_factory
