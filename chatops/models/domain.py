from typing import List, Optional
from pydantic import BaseModel, Field


class TestCaseSummary(BaseModel):
    id: str
    short_id: Optional[str] = Field(None, alias="tcId")
    title: str
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None

    class Config:
        populate_by_name = True

    @property
    def display_id(self) -> str:
        return self.short_id or self.id


class TestStep(BaseModel):
    step_number: Optional[int] = Field(None, alias="stepNumber")
    action: Optional[str] = None
    description: Optional[str] = None
    expected_result: Optional[str] = Field(None, alias="expectedResult")

    class Config:
        populate_by_name = True

    @property
    def text(self) -> str:
        return self.description or self.action or ""


class TestCaseDetail(TestCaseSummary):
    expected_result: Optional[str] = Field(None, alias="expectedResult")
    test_steps: List[TestStep] = Field(default_factory=list, alias="testSteps")


class TestCasePage(BaseModel):
    items: List[TestCaseSummary] = Field(default_factory=list)
    page: int = 1
    limit: int = 10
    total: Optional[int] = None


class DefectSummary(BaseModel):
    id: str
    short_id: Optional[str] = Field(None, alias="defectId")
    title: str
    description: Optional[str] = None
    severity: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None

    class Config:
        populate_by_name = True

    @property
    def display_id(self) -> str:
        return self.short_id or self.id
