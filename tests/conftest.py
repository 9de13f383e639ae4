import os
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture(scope="session", autouse=True)
def setup_test_db_url():
    test_db = Path("./test.db")
    if test_db.exists():
        test_db.unlink()
    os.environ["DATABASE_URL"] = "sqlite:///./test.db"
    os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/0"
    os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"
    os.environ["ENV"] = "test"
    os.environ["API_AUTH_ENABLED"] = "false"
    os.environ["CELERY_EAGER_MODE"] = "true"
    os.environ["NOTIFICATION_WEBHOOK_ENABLED"] = "false"

    from accu_lifecycle.core.config import get_settings
    from accu_lifecycle.db.session import reset_session_for_tests

    get_settings.cache_clear()
    reset_session_for_tests()

    yield

    reset_session_for_tests()
    if test_db.exists():
        test_db.unlink()


@pytest.fixture
def client(setup_test_db_url):
    from accu_lifecycle.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(setup_test_db_url):
    from accu_lifecycle import models  # noqa: F401
    from accu_lifecycle.db.base import Base
    from accu_lifecycle.db.session import _enable_sqlite_foreign_keys

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def methodology(db_session):
    from accu_lifecycle.models.entities import Methodology

    row = Methodology(
        id="m1",
        name="Carbon Reduction Methodology",
        version="1.0",
        max_units=Decimal("100000"),
        required_documents_count=2,
        review_period_days=90,
        active=True,
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def project(db_session):
    from accu_lifecycle.models.entities import Project, ProjectStatus

    row = Project(name="Riverina Soil Carbon", status=ProjectStatus.active, tenant_id="tenant-1", owner_id="owner-1")
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def add_documents(db_session):
    from accu_lifecycle.models.entities import ProjectDocument

    def _add(project_id: str, count: int) -> None:
        for index in range(count):
            db_session.add(ProjectDocument(project_id=project_id, name=f"evidence-{index}.pdf", category="evidence"))
        db_session.commit()

    return _add


@pytest.fixture
def controller(db_session, methodology):
    from accu_lifecycle.services.lifecycle import LifecycleController

    return LifecycleController(db_session, on_commit=None)


@pytest.fixture
def draft_application(controller, project):
    from accu_lifecycle.schemas import ApplicationCreate, ApplicationData

    return controller.create(
        ApplicationCreate(
            project_id=project.id,
            units=Decimal("1000"),
            methodology_id="m1",
            application_data=ApplicationData(description="Soil carbon sequestration across 4 paddocks"),
        ),
        actor_id="user-42",
    )
