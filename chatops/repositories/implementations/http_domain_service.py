import httpx
from typing import Any, Dict, Optional
import structlog
from pydantic import ValidationError
from chatops.repositories.interfaces.domain_service import IDomainService
from chatops.models.domain import DefectSummary, TestCaseDetail, TestCasePage, TestCaseSummary
from chatops.core.exceptions import DomainServiceError
from chatops.config.settings import settings

logger = structlog.get_logger()


def _unwrap(payload: Any) -> Any:
    """EZTest controllers answer with either the entity, {data: entity} or {data: {data: entity}}."""
    if isinstance(payload, dict) and "data" in payload:
        inner = payload["data"]
        if isinstance(inner, dict) and "data" in inner:
            return inner["data"]
        return inner
    return payload


class HttpDomainService(IDomainService):
    """Calls the EZTest internal bot endpoints (/api/teams/...) over HTTP"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.domain_api_base_url).rstrip("/")
        self.api_token = api_token if api_token is not None else settings.domain_api_token
        self.timeout = timeout if timeout is not None else settings.domain_api_timeout_seconds
        self._transport = transport

    async def create_test_case(
        self,
        project_id: str,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TestCaseSummary:
        payload = {
            "userId": user_id,
            "projectId": project_id,
            "title": title,
            "description": description,
            "priority": priority,
            "status": status,
        }
        data = await self._request("create_test_case", "POST", "/api/teams/testcases", json=payload)
        test_case = self._parse(TestCaseSummary, _unwrap(data), "create_test_case")
        logger.info("Test case created via domain API", test_case_id=test_case.id, short_id=test_case.short_id)
        return test_case

    async def list_test_cases(self, project_id: str, user_id: str, page: int = 1, limit: int = 10) -> TestCasePage:
        params = {"userId": user_id, "projectId": project_id, "page": page, "limit": limit}
        data = await self._request("list_test_cases", "GET", "/api/teams/testcases", params=params)
        rows = _unwrap(data)
        if not isinstance(rows, list):
            rows = []
        total = None
        if isinstance(data, dict):
            pagination = data.get("pagination")
            if pagination is None and isinstance(data.get("data"), dict):
                pagination = data["data"].get("pagination")
            if isinstance(pagination, dict):
                total = pagination.get("total")
        items = [self._parse(TestCaseSummary, row, "list_test_cases") for row in rows]
        return TestCasePage(items=items, page=page, limit=limit, total=total)

    async def get_test_case(self, test_case_id: str, user_id: str) -> Optional[TestCaseDetail]:
        data = await self._request(
            "get_test_case",
            "GET",
            f"/api/teams/testcases/{test_case_id}",
            params={"userId": user_id},
            allow_not_found=True,
        )
        if data is None:
            return None
        return self._parse(TestCaseDetail, _unwrap(data), "get_test_case")

    async def create_defect(
        self,
        project_id: str,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        severity: Optional[str] = None,
        priority: Optional[str] = None,
        status: Optional[str] = None,
    ) -> DefectSummary:
        payload = {
            "userId": user_id,
            "projectId": project_id,
            "title": title,
            "description": description,
            "severity": severity,
            "priority": priority,
            "status": status,
        }
        data = await self._request("create_defect", "POST", "/api/teams/defects", json=payload)
        defect = self._parse(DefectSummary, _unwrap(data), "create_defect")
        logger.info("Defect created via domain API", defect_id=defect.id, short_id=defect.short_id)
        return defect

    async def link_defect_to_test_case(self, defect_id: str, test_case_id: str, user_id: str) -> bool:
        await self._request(
            "link_defect_to_test_case",
            "POST",
            f"/api/teams/defects/{defect_id}/link-testcase",
            json={"userId": user_id, "testCaseId": test_case_id},
        )
        return True

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("Domain API request failed", operation=operation, path=path, error=str(e))
            raise DomainServiceError(operation, str(e)) from e

        if allow_not_found and response.status_code == 404:
            return None

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(
                "Domain API returned an error",
                operation=operation,
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
            raise DomainServiceError(operation, detail, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise DomainServiceError(operation, "response is not JSON", status_code=response.status_code) from e

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("error") or body.get("message") or f"HTTP {response.status_code}")
        return f"HTTP {response.status_code}"

    @staticmethod
    def _parse(model, data: Any, operation: str):
        if not isinstance(data, dict):
            raise DomainServiceError(operation, "unexpected response shape")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise DomainServiceError(operation, f"invalid response: {e.error_count()} errors") from e
