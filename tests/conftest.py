import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from src.storage.supabase_store import SupabaseStore
from fakes import FakeSupabaseClient


@pytest.fixture
def db_client():
    return FakeSupabaseClient()


@pytest.fixture
def store(db_client):
    return SupabaseStore(client=db_client)
