"""Tests for the development management CLI."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from freightboard.auth.jwt import decode_token
from freightboard.cli import issue_token, list_users
from freightboard.database import Base
from freightboard.models import User, UserRole


@pytest.fixture
def sync_engine():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add_all([
            User(email="ops@acmefoods.test", full_name="Dana Shipper",
                 role=UserRole.SHIPPER, company_name="Acme Foods", is_active=True),
            User(email="gone@roadrunner.test", full_name="Former Carrier",
                 role=UserRole.CARRIER, is_active=False),
        ])
        session.commit()
    yield engine
    engine.dispose()


@pytest.mark.unit
class TestCli:
    def test_list_users(self, sync_engine):
        assert list_users(sync_engine) == [
            ("gone@roadrunner.test", "carrier", ""),
            ("ops@acmefoods.test", "shipper", "Acme Foods"),
        ]

    def test_issue_token(self, sync_engine):
        payload = decode_token(issue_token(sync_engine, "ops@acmefoods.test"))
        assert payload["role"] == "shipper"
        assert payload["type"] == "access"

    def test_inactive_user_gets_no_token(self, sync_engine):
        with pytest.raises(LookupError):
            issue_token(sync_engine, "gone@roadrunner.test")
