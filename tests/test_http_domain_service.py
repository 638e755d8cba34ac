import json

import httpx
import pytest

from chatops.core.exceptions import DomainServiceError
from chatops.repositories.implementations.http_domain_service import HttpDomainService


def make_service(handler, token="bot-token"):
    return HttpDomainService(
        base_url="http://eztest.test",
        api_token=token,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_create_test_case_posts_payload_and_unwraps():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"data": {"id": "tc-1", "tcId": "TC-1", "title": "Login works"}})

    service = make_service(handler)
    tc = await service.create_test_case("proj-1", "user-1", "Login works", priority="HIGH", status="ACTIVE")

    assert seen["method"] == "POST"
    assert seen["path"] == "/api/teams/testcases"
    assert seen["auth"] == "Bearer bot-token"
    assert seen["body"]["projectId"] == "proj-1"
    assert seen["body"]["userId"] == "user-1"
    assert seen["body"]["priority"] == "HIGH"
    assert tc.id == "tc-1"
    assert tc.short_id == "TC-1"


@pytest.mark.asyncio
async def test_list_test_cases_reads_pagination():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["projectId"] == "proj-1"
        assert request.url.params["limit"] == "2"
        return httpx.Response(200, json={
            "data": [
                {"id": "tc-1", "tcId": "TC-1", "title": "One"},
                {"id": "tc-2", "tcId": "TC-2", "title": "Two"},
            ],
            "pagination": {"page": 1, "limit": 2, "total": 7},
        })

    page = await make_service(handler).list_test_cases("proj-1", "user-1", page=1, limit=2)

    assert [tc.short_id for tc in page.items] == ["TC-1", "TC-2"]
    assert page.total == 7


@pytest.mark.asyncio
async def test_get_test_case_not_found_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Test case not found"})

    assert await make_service(handler).get_test_case("tc-404", "user-1") is None


@pytest.mark.asyncio
async def test_get_test_case_detail_with_double_wrapping():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"data": {
            "id": "tc-1",
            "tcId": "TC-1",
            "title": "One",
            "expectedResult": "It works",
            "testSteps": [{"stepNumber": 1, "action": "Click"}],
        }}})

    tc = await make_service(handler).get_test_case("tc-1", "user-1")

    assert tc.expected_result == "It works"
    assert tc.test_steps[0].text == "Click"


@pytest.mark.asyncio
async def test_error_status_raises_domain_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "Forbidden"})

    with pytest.raises(DomainServiceError) as exc_info:
        await make_service(handler).create_defect("proj-1", "user-1", "Broken")

    assert exc_info.value.status_code == 403
    assert exc_info.value.detail == "Forbidden"


@pytest.mark.asyncio
async def test_transport_error_raises_domain_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DomainServiceError):
        await make_service(handler).list_test_cases("proj-1", "user-1")


@pytest.mark.asyncio
async def test_link_defect_posts_test_case_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    assert await make_service(handler, token=None).link_defect_to_test_case("def-1", "tc-1", "user-1")
    assert seen["path"] == "/api/teams/defects/def-1/link-testcase"
    assert seen["body"] == {"userId": "user-1", "testCaseId": "tc-1"}
