from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import orderdesk.persistence.pg as pg
from orderdesk.domain.pricing.rates import CommissionRule, InMemoryRateBook, ShippingRate
from orderdesk.persistence.models import Base


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables(configure_test_engine):
    yield
    with pg.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def client(configure_test_engine):
    from orderdesk.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def china_rate_book() -> InMemoryRateBook:
    return InMemoryRateBook.from_rows(
        rates=[
            ShippingRate(
                country="China",
                base_rate=Decimal("25.00"),
                per_kg_rate=Decimal("8.00"),
                commission_rate=Decimal("0.18"),
            ),
            ShippingRate(
                country="UK",
                base_rate=Decimal("35.00"),
                per_kg_rate=Decimal("15.00"),
                commission_rate=Decimal("0.15"),
                currency="GBP",
            ),
        ],
        rules=[
            CommissionRule(
                country="China",
                min_value=Decimal("0"),
                max_value=Decimal("500"),
                percentage=Decimal("0.18"),
                rule_id="cn-small",
            ),
            CommissionRule(
                country="China",
                min_value=Decimal("500.01"),
                max_value=None,
                percentage=Decimal("0.10"),
                fixed_fee=Decimal("5.00"),
                rule_id="cn-large",
            ),
        ],
    )


@pytest.fixture()
def base_time() -> datetime:
    return datetime(2026, 1, 10, 8, 0, tzinfo=timezone.utc)


@pytest.fixture()
def hours():
    return lambda n: timedelta(hours=n)
