from pydantic import BaseModel, Field
from typing import List, Optional


class TestCaseDraft(BaseModel):
    """Test case parsed from a chat message, not yet persisted."""
    title: Optional[str] = None
    description: Optional[str] = None
    preconditions: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    expected_result: List[str] = Field(default_factory=list)
    priority: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class DefectDraft(BaseModel):
    """Defect parsed from a chat message, not yet persisted."""
    title: Optional[str] = None
    description: Optional[str] = None
    environment: Optional[str] = None
    steps_to_reproduce: List[str] = Field(default_factory=list)
    actual_result: List[str] = Field(default_factory=list)
    expected_result: List[str] = Field(default_factory=list)
    severity: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    linked_ids: List[str] = Field(default_factory=list)

    @property
    def linked_test_case(self) -> Optional[str]:
        return self.linked_ids[0] if self.linked_ids else None


class ValidationResult(BaseModel):
    errors: List[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors
