"""
Reporting hierarchy endpoints - manager changes and approval transfers
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db, require_roles
from app.models.employee import Employee, Role
from app.schemas.hierarchy import (
    ManagerChangeRequest,
    PendingApprovalsSummary,
    TransferApprovalsRequest,
    TransferResult,
)
from app.services.hierarchy_transfer_service import (
    change_reporting_manager,
    get_pending_approvals_summary,
    transfer_all_pending_approvals,
)
from app.services.org_directory_service import get_employee

router = APIRouter()


@router.put("/employees/{employee_id}/manager", response_model=TransferResult)
async def change_manager_endpoint(
    employee_id: int,
    change: ManagerChangeRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR))
):
    """
    Assign a new reporting manager (HR / ADMIN)
    
    Pending approvals of the employee and their direct reports are moved to
    the new manager. Returns how many approval rows were moved or created.
    """
    return change_reporting_manager(db, employee_id, change.new_manager_id, actor_id=current_user.id)


@router.post("/transfer-approvals", response_model=TransferResult)
async def transfer_approvals_endpoint(
    transfer: TransferApprovalsRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR))
):
    """Move every pending approval from one approver to another (position / role changes)"""
    get_employee(db, transfer.from_user_id)
    get_employee(db, transfer.to_user_id)
    return transfer_all_pending_approvals(
        db, transfer.from_user_id, transfer.to_user_id, actor_id=current_user.id
    )


@router.get("/employees/{employee_id}/pending-approvals", response_model=PendingApprovalsSummary)
async def pending_approvals_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.MANAGER))
):
    """Preview of the pending approvals a manager change would touch"""
    return get_pending_approvals_summary(db, get_employee(db, employee_id))
