"""
Hierarchy reconciliation schemas
"""
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class ManagerChangeRequest(BaseModel):
    new_manager_id: Optional[int] = Field(None, description="New reporting manager; null clears the link")


class TransferApprovalsRequest(BaseModel):
    from_user_id: int
    to_user_id: int

    @model_validator(mode="after")
    def check_distinct(self) -> "TransferApprovalsRequest":
        if self.from_user_id == self.to_user_id:
            raise ValueError("from_user_id and to_user_id must differ")
        return self


class TransferResult(BaseModel):
    transferred: int


class PendingApprovalsSummary(BaseModel):
    total_pending_approvals: int
    affected_requests: int
    affected_users: List[int]
