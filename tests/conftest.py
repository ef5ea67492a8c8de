from datetime import timedelta

import pytest

from auth.models import Session
from tests.helpers import CountingStore, make_session


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def fresh_session() -> Session:
    return make_session(access_in=timedelta(minutes=10))


@pytest.fixture
def stale_session() -> Session:
    return make_session(access_in=timedelta(seconds=1))
