"""Request and response bodies for the connections API (camelCase on the wire)."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mediareaper.models import ConnectionStatus, ConnectionType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConnectionCreate(CamelModel):
    name: str
    type: str
    url: str
    api_key: str = Field(repr=False)


class ConnectionUpdate(CamelModel):
    """Every field is optional; an omitted ``apiKey`` keeps the stored one."""

    name: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    enabled: Optional[bool] = None


class ConnectionTestRequest(CamelModel):
    type: str
    url: str
    api_key: str = Field(repr=False)


class ConnectionOut(CamelModel):
    id: str
    name: str
    type: ConnectionType
    url: str
    masked_api_key: str
    enabled: bool
    status: ConnectionStatus
    last_checked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TestResult(CamelModel):
    """Outcome of a single probe. Failures are data, not errors."""

    __test__ = False

    success: bool
    message: Optional[str] = None
    app_name: Optional[str] = None
    version: Optional[str] = None


class ErrorBody(BaseModel):
    error: str
