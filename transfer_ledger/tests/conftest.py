import pytest
from sqlmodel import SQLModel

from ..core.db import create_engine_for_url
from ..services import InMemoryAccountStore, InMemoryTransferRecordStore, TransferLedger


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def record_store() -> InMemoryTransferRecordStore:
    return InMemoryTransferRecordStore()


@pytest.fixture
def ledger(account_store, record_store) -> TransferLedger:
    return TransferLedger(account_store, record_store)


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = create_engine_for_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()
