import pytest

from chatops.models.schemas import ExternalIdentity
from chatops.repositories.implementations.sql_user_directory import SQLUserDirectory
from chatops.services.identity_resolver import IdentityResolver
from tests.conftest import PROJECT_ID, seed_directory


@pytest.fixture
def resolver(db_session):
    seed_directory(db_session)
    return IdentityResolver(SQLUserDirectory(db_session))


@pytest.mark.asyncio
async def test_resolves_by_email(resolver):
    user = await resolver.resolve_identity(ExternalIdentity(object_id="aad-1", email="alice@example.com"))

    assert user.id == "user-alice"
    assert user.role_name == "TESTER"


@pytest.mark.asyncio
async def test_falls_back_to_principal_name(resolver):
    identity = ExternalIdentity(object_id="aad-1", email="alias@corp.example", principal_name="victor@example.com")

    user = await resolver.resolve_identity(identity)

    assert user.id == "user-victor"


@pytest.mark.asyncio
async def test_unknown_identity_is_absent(resolver):
    assert await resolver.resolve_identity(ExternalIdentity(object_id="aad-1", email="ghost@example.com")) is None
    assert await resolver.resolve_identity(ExternalIdentity(object_id="aad-1")) is None


@pytest.mark.asyncio
async def test_member_with_permission_has_access(resolver):
    assert await resolver.has_access("user-alice", PROJECT_ID)
    assert await resolver.has_access("user-alice", PROJECT_ID, "testcases:create")


@pytest.mark.asyncio
async def test_member_without_permission_is_denied(resolver):
    assert await resolver.has_access("user-victor", PROJECT_ID)
    assert not await resolver.has_access("user-victor", PROJECT_ID, "testcases:create")


@pytest.mark.asyncio
async def test_non_member_is_denied(resolver):
    assert not await resolver.has_access("user-olivia", PROJECT_ID)
    assert await resolver.get_project_role("user-olivia", PROJECT_ID) is None


@pytest.mark.asyncio
async def test_get_project_role(resolver):
    assert await resolver.get_project_role("user-victor", PROJECT_ID) == "VIEWER"
