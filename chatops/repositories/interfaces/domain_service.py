from abc import ABC, abstractmethod
from typing import Optional
from chatops.models.domain import DefectSummary, TestCaseDetail, TestCasePage, TestCaseSummary


class IDomainService(ABC):
    """Interface for the EZTest test case / defect API.

    Implementations raise DomainServiceError when a call fails.
    """

    @abstractmethod
    async def create_test_case(
        self,
        project_id: str,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TestCaseSummary:
        pass

    @abstractmethod
    async def list_test_cases(self, project_id: str, user_id: str, page: int = 1, limit: int = 10) -> TestCasePage:
        pass

    @abstractmethod
    async def get_test_case(self, test_case_id: str, user_id: str) -> Optional[TestCaseDetail]:
        """Return None when the test case does not exist"""
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def link_defect_to_test_case(self, defect_id: str, test_case_id: str, user_id: str) -> bool:
        pass
