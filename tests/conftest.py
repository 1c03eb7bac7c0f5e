"""Shared fixtures: scripted gateway client and in-memory order store."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chargebridge.common.config import TransactionType
from chargebridge.common.db import Base
from chargebridge.services.payments.models import OrderRepository
from chargebridge.services.payments.service import AmazonPayProvider
from factories import RecordingRefundStore, ScriptedGateway, make_settings


@pytest.fixture
def refund_store():
    return RecordingRefundStore()


@pytest.fixture
def provider_factory(refund_store):
    def factory(*outcomes, transaction_type: TransactionType = TransactionType.AUTHORIZE):
        gateway = ScriptedGateway(*outcomes)
        provider = AmazonPayProvider(gateway, refund_store, settings=make_settings(transaction_type))
        return provider, gateway

    return factory


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(db_engine):
    session_factory = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    return OrderRepository(session_factory)
