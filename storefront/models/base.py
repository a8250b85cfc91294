from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

class TimeStampedModel(BaseModel):
    """Base model with timestamp fields"""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RequestModel(BaseModel):
    """Base model for JSON request bodies (accepts camelCase aliases)"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)
