from typing import Any, Dict, Optional
from pydantic import BaseModel
from .base import TimeStampedModel

class AdminAction(BaseModel):
    """A privileged mutation to be written to the audit trail"""
    admin_id: str
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

class AdminLogEntry(AdminAction, TimeStampedModel):
    id: int
