"""
Request dependencies: database session, authenticated employee, role guards
"""
from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.core.security import decode_token
from app.models.employee import Employee, Role


bearer_scheme = HTTPBearer()


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _employee_id_from_token(token: str) -> int:
    # Tokens are issued by the HR platform; "sub" carries the employee id
    try:
        payload = decode_token(token)
    except ValueError:
        raise _unauthorized("Invalid authentication credentials")
    try:
        return int(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise _unauthorized("Token does not identify an employee")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Employee:
    """
    Resolve the bearer token to an active employee

    Raises:
        HTTPException: 401 for a bad token or unknown employee, 403 if inactive
    """
    employee_id = _employee_id_from_token(credentials.credentials)

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise _unauthorized(f"Employee {employee_id} not found")
    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Employee account is inactive"
        )
    return employee


def require_roles(*allowed_roles: Role):
    """
    Guard factory for HR / manager operations; ADMIN passes every guard

    Usage:
        @router.post("/{pto_request_id}/override-decision")
        async def decide(user: Employee = Depends(require_roles(Role.HR))):
            ...
    """
    allowed = (Role.ADMIN, *allowed_roles)

    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of the roles: {sorted(r.value for r in allowed)}"
            )
        return current_user
    return role_checker
