import pytest

from chatops.core.exceptions import BindingNotFoundError, ProjectNotFoundError
from chatops.models.database import ChannelBindingModel
from chatops.repositories.implementations.sql_channel_binding_repository import SQLChannelBindingRepository
from chatops.services.channel_registry import ChannelRegistry
from tests.conftest import PROJECT_ID, TEAM_ID, seed_directory


@pytest.fixture
def registry(db_session):
    seed_directory(db_session)
    return ChannelRegistry(SQLChannelBindingRepository(db_session))


@pytest.mark.asyncio
async def test_bind_then_resolve(registry):
    binding = await registry.bind("chan-1", TEAM_ID, PROJECT_ID, "admin@example.com")

    assert binding.project_id == PROJECT_ID
    assert binding.project_name == "Demo Project"
    assert await registry.resolve("chan-1") == PROJECT_ID


@pytest.mark.asyncio
async def test_resolve_unbound_channel_is_absent(registry):
    assert await registry.resolve("chan-unknown") is None
    assert await registry.resolve("") is None


@pytest.mark.asyncio
async def test_bind_to_missing_project_writes_nothing(registry, db_session):
    with pytest.raises(ProjectNotFoundError):
        await registry.bind("chan-1", TEAM_ID, "no-such-project", "admin@example.com")

    assert db_session.query(ChannelBindingModel).count() == 0
    assert await registry.resolve("chan-1") is None


@pytest.mark.asyncio
async def test_rebind_replaces_project(registry, db_session):
    await registry.bind("chan-1", TEAM_ID, PROJECT_ID, "admin@example.com")
    await registry.bind("chan-1", TEAM_ID, "proj-2", "lead@example.com")

    assert await registry.resolve("chan-1") == "proj-2"
    assert db_session.query(ChannelBindingModel).count() == 1
    binding = await registry.get("chan-1")
    assert binding.configured_by == "lead@example.com"


@pytest.mark.asyncio
async def test_unbind_then_resolve_is_absent(registry):
    await registry.bind("chan-1", TEAM_ID, PROJECT_ID, "admin@example.com")

    await registry.unbind("chan-1")

    assert await registry.resolve("chan-1") is None


@pytest.mark.asyncio
async def test_unbind_unknown_channel_raises(registry):
    with pytest.raises(BindingNotFoundError):
        await registry.unbind("chan-unknown")


@pytest.mark.asyncio
async def test_project_can_back_many_channels(registry):
    await registry.bind("chan-1", TEAM_ID, PROJECT_ID, "admin@example.com")
    await registry.bind("chan-2", TEAM_ID, PROJECT_ID, "admin@example.com")

    bindings = await registry.list_bindings()

    assert {b.channel_id for b in bindings} == {"chan-1", "chan-2"}
    assert all(b.project_id == PROJECT_ID for b in bindings)
