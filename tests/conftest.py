from __future__ import annotations

import pytest

from billing_plans import db
from factories import FakePriceProvider


@pytest.fixture()
def session(tmp_path):
    db.reset_engine(f"sqlite:///{tmp_path}/test.db")
    db.init_db()

    session = db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def price_provider() -> FakePriceProvider:
    return FakePriceProvider()


