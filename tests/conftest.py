from __future__ import annotations

from typing import List

import pytest

from src.chessacademy.domain.chess import ManualScheduler
from src.chessacademy.infrastructure.config import AppConfig
from src.chessacademy.infrastructure.persistence import (
    Base,
    RecordStore,
    create_engine_from_config,
    create_session_factory,
)
from src.chessacademy.interface.http.app import create_app


@pytest.fixture(scope="session")
def app_config() -> AppConfig:
    """Provide a configuration tuned for isolated tests."""
    return AppConfig(
        database_url="sqlite+pysqlite:///:memory:",
        flask_env="test",
        default_time_control="rapid",
        ai_reply_delay_seconds=0.5,
        additional={},
    )


@pytest.fixture
def engine(app_config: AppConfig):
    engine = create_engine_from_config(app_config)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(engine) -> RecordStore:
    return RecordStore(create_session_factory(engine=engine))


@pytest.fixture
def schedulers() -> List[ManualScheduler]:
    """Every scheduler handed to a live session, in creation order."""
    return []


@pytest.fixture
def app(app_config: AppConfig, store: RecordStore, schedulers: List[ManualScheduler]):
    def _scheduler_factory() -> ManualScheduler:
        scheduler = ManualScheduler()
        schedulers.append(scheduler)
        return scheduler

    flask_app = create_app(app_config, record_store=store, scheduler_factory=_scheduler_factory)
    flask_app.config.update(TESTING=True)
    try:
        yield flask_app
    finally:
        flask_app.extensions["session_registry"].close_all()


@pytest.fixture
def client(app):
    return app.test_client()
