"""
Org directory lookups: reporting lines, positions and departments
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.models.employee import Employee

logger = logging.getLogger(__name__)


def get_employee(db: Session, employee_id: int) -> Employee:
    """
    Raises:
        HTTPException: 404 if the employee does not exist
    """
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Employee with id {employee_id} not found"
        )
    return employee


def get_manager_id(db: Session, employee_id: int) -> Optional[int]:
    row = db.query(Employee.reporting_manager_id).filter(Employee.id == employee_id).first()
    return row[0] if row else None


def get_direct_report_ids(db: Session, manager_id: int, active_only: bool = True) -> List[int]:
    """Employees reporting directly to manager_id, in id order"""
    query = db.query(Employee.id).filter(Employee.reporting_manager_id == manager_id)
    if active_only:
        query = query.filter(Employee.active == True)
    rows = query.order_by(Employee.id).all()
    return [employee_id for (employee_id,) in rows]


def find_first_active_with_role(db: Session, role: str) -> Optional[Employee]:
    return db.query(Employee).filter(
        Employee.role == role,
        Employee.active == True
    ).order_by(Employee.id).first()


def would_create_cycle(db: Session, employee_id: int, new_manager_id: int) -> bool:
    """
    True if making new_manager_id the manager of employee_id closes a loop
    in the reporting chain.
    """
    current_id: Optional[int] = new_manager_id
    seen = set()
    while current_id is not None and current_id not in seen:
        if current_id == employee_id:
            return True
        seen.add(current_id)
        current_id = get_manager_id(db, current_id)
    return False
