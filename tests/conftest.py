import pytest
from typing import List, Optional
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from chatops.config.settings import Settings
from chatops.core.cache import MessageCache
from chatops.core.database import build_engine, get_database
from chatops.core.exceptions import DomainServiceError
from chatops.models.database import (
    Base, ChannelBindingModel, PermissionModel, ProjectMemberModel, ProjectModel,
    RoleModel, RolePermissionModel, UserModel,
)
from chatops.models.domain import DefectSummary, TestCaseDetail, TestCasePage, TestCaseSummary, TestStep
from chatops.models.schemas import ChatActivity
from chatops.repositories.interfaces.domain_service import IDomainService
from chatops.repositories.implementations.sql_channel_binding_repository import SQLChannelBindingRepository
from chatops.repositories.implementations.sql_user_directory import SQLUserDirectory
from chatops.services.channel_registry import ChannelRegistry
from chatops.services.dispatcher import CommandDispatcher
from chatops.services.identity_resolver import IdentityResolver

# Test database
engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CHANNEL_ID = "19:qa-channel@thread.tacv2"
TEAM_ID = "19:team@thread.tacv2"
PROJECT_ID = "proj-1"


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_database] = override_get_db


def seed_directory(db):
    """Project proj-1 with a tester (can create), a viewer (cannot) and a non-member."""
    db.add_all([
        ProjectModel(id=PROJECT_ID, name="Demo Project", key="DEMO"),
        ProjectModel(id="proj-2", name="Other Project", key="OTHER"),
        PermissionModel(id="perm-create", name="testcases:create"),
        PermissionModel(id="perm-read", name="testcases:read"),
        RoleModel(id="role-tester", name="TESTER", keyword="tester"),
        RoleModel(id="role-viewer", name="VIEWER", keyword="viewer"),
    ])
    db.flush()
    db.add_all([
        RolePermissionModel(role_id="role-tester", permission_id="perm-create"),
        RolePermissionModel(role_id="role-tester", permission_id="perm-read"),
        RolePermissionModel(role_id="role-viewer", permission_id="perm-read"),
        UserModel(id="user-alice", email="alice@example.com", name="Alice", role_id="role-tester"),
        UserModel(id="user-victor", email="victor@example.com", name="Victor", role_id="role-viewer"),
        UserModel(id="user-olivia", email="olivia@example.com", name="Olivia", role_id="role-tester"),
    ])
    db.flush()
    db.add_all([
        ProjectMemberModel(id="pm-1", project_id=PROJECT_ID, user_id="user-alice"),
        ProjectMemberModel(id="pm-2", project_id=PROJECT_ID, user_id="user-victor"),
    ])
    db.commit()


def bind_channel(db, channel_id: str = CHANNEL_ID, project_id: str = PROJECT_ID):
    db.add(ChannelBindingModel(
        id=f"binding-{channel_id}",
        channel_id=channel_id,
        team_id=TEAM_ID,
        project_id=project_id,
        configured_by="admin@example.com",
    ))
    db.commit()


def make_activity(
    text: str,
    channel_id: str = CHANNEL_ID,
    email: Optional[str] = "alice@example.com",
    sender_id: str = "aad-alice",
    activity_type: str = "message",
) -> ChatActivity:
    return ChatActivity.model_validate({
        "type": activity_type,
        "id": "activity-1",
        "text": text,
        "from": {"id": "29:teams-user", "aadObjectId": sender_id, "name": "Chat User", "email": email},
        "conversation": {"id": f"{channel_id};messageid=1"},
        "channelData": {"channel": {"id": channel_id}, "team": {"id": TEAM_ID}},
    })


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDomainService(IDomainService):
    """In-memory domain API that records every call"""

    def __init__(self, test_cases: Optional[List[TestCaseDetail]] = None):
        self.test_cases: List[TestCaseDetail] = list(test_cases or [])
        self.defects: List[DefectSummary] = []
        self.links: List[tuple] = []
        self.calls: List[str] = []
        self.fail_on: set = set()

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise DomainServiceError(operation, "upstream exploded: secret-internal-detail", status_code=500)

    async def create_test_case(self, project_id, user_id, title, description=None, priority=None, status=None):
        self._record("create_test_case")
        number = 100 + len(self.test_cases) + 1
        tc = TestCaseDetail(
            id=f"tc-{number}", short_id=f"TC-{number}", title=title,
            description=description, priority=priority, status=status,
        )
        self.test_cases.append(tc)
        return TestCaseSummary.model_validate(tc.model_dump(exclude={"expected_result", "test_steps"}))

    async def list_test_cases(self, project_id, user_id, page=1, limit=10):
        self._record("list_test_cases")
        start = (page - 1) * limit
        items = [
            TestCaseSummary.model_validate(tc.model_dump(exclude={"expected_result", "test_steps"}))
            for tc in self.test_cases[start:start + limit]
        ]
        return TestCasePage(items=items, page=page, limit=limit, total=len(self.test_cases))

    async def get_test_case(self, test_case_id, user_id):
        self._record("get_test_case")
        return next((tc for tc in self.test_cases if tc.id == test_case_id), None)

    async def create_defect(self, project_id, user_id, title, description=None, severity=None, priority=None, status=None):
        self._record("create_defect")
        number = len(self.defects) + 1
        defect = DefectSummary(
            id=f"def-{number}", short_id=f"DEF-{number}", title=title, description=description,
            severity=severity, priority=priority, status=status,
        )
        self.defects.append(defect)
        return defect

    async def link_defect_to_test_case(self, defect_id, test_case_id, user_id):
        self._record("link_defect_to_test_case")
        self.links.append((defect_id, test_case_id))
        return True


def sample_test_case() -> TestCaseDetail:
    return TestCaseDetail(
        id="tc-101",
        short_id="TC-101",
        title="Login with valid credentials",
        description="Happy path login",
        priority="HIGH",
        status="ACTIVE",
        expected_result="User lands on the dashboard",
        test_steps=[TestStep(step_number=1, action="Open login page"), TestStep(step_number=2, action="Submit form")],
    )


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_db(db_session):
    seed_directory(db_session)
    bind_channel(db_session)
    return db_session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MessageCache(ttl_seconds=600, sweep_interval_seconds=300, clock=clock)


@pytest.fixture
def domain_service():
    return FakeDomainService(test_cases=[sample_test_case()])


@pytest.fixture
def test_settings():
    return Settings(app_base_url="https://eztest.example.com", short_id_lookup_limit=100, list_page_size=10)


@pytest.fixture
def dispatcher(seeded_db, cache, domain_service, test_settings):
    return CommandDispatcher(
        cache=cache,
        channel_registry=ChannelRegistry(SQLChannelBindingRepository(seeded_db)),
        identity_resolver=IdentityResolver(SQLUserDirectory(seeded_db)),
        domain_service=domain_service,
        settings=test_settings,
    )


@pytest.fixture
def test_client():
    """Synchronous test client for simple tests"""
    return TestClient(app)
