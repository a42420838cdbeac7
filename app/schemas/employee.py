"""
Employee schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class EmployeeOut(BaseModel):
    """Compact employee representation embedded in PTO responses"""
    id: int
    emp_code: str
    name: str
    role: str
    reporting_manager_id: Optional[int] = None
    position_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
