import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()
os.environ.setdefault("OTEL_SDK_DISABLED", "true")

from enrollment_api.app import create_app  # noqa: E402
from enrollment_api.db.base import Base  # noqa: E402
from enrollment_api.db.session import create_engine, create_session_factory, get_session  # noqa: E402
from enrollment_api.observability.enrollment import get_enrollment_store  # noqa: E402
from enrollment_api.services.notifications import InMemoryNotificationPublisher  # noqa: E402


@pytest.fixture(autouse=True)
def reset_enrollment_store():
    get_enrollment_store().reset()
    yield
    get_enrollment_store().reset()


@pytest_asyncio.fixture
async def engine(tmp_path):
    # A file database: concurrent sessions need separate connections.
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'enrollment.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def publisher():
    return InMemoryNotificationPublisher()


@pytest_asyncio.fixture
async def app_with_db(session_factory, publisher):
    app = create_app()
    app.state.notification_publisher = publisher

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()
