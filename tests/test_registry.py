"""Unit tests for the process-wide store registry."""
import pytest

from app.modules.household import registry
from app.modules.household.store import GroupDataStore
from tests.conftest import GROUP_ID


@pytest.fixture
async def factory(service, cache):
    registry.set_store_factory(lambda: GroupDataStore(service, cache, refresh_interval=3600))
    yield
    await registry.close_all()
    registry.set_store_factory(None)


@pytest.mark.asyncio
async def test_one_store_per_group(factory, service):
    store, initial_fetch = registry.get_or_create(GROUP_ID)
    await initial_fetch

    again, second_fetch = registry.get_or_create(GROUP_ID)

    assert again is store
    assert second_fetch is None
    assert store.group.id == GROUP_ID
    assert service.called("get_group") == 1


@pytest.mark.asyncio
async def test_unregister_closes_store(factory):
    store, initial_fetch = registry.get_or_create(GROUP_ID)
    await initial_fetch

    await registry.unregister(GROUP_ID)

    assert store.closed is True
    replacement, replacement_fetch = registry.get_or_create(GROUP_ID)
    await replacement_fetch
    assert replacement is not store


@pytest.mark.asyncio
async def test_close_all(factory):
    store, initial_fetch = registry.get_or_create(GROUP_ID)
    await initial_fetch

    await registry.close_all()

    assert store.closed is True
