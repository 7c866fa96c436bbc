"""API Models for MultiAuth Endpoints

Request and response schemas for the source selection API.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from multiauth_service.domain.models.context import ErrorInfo


class SourceOption(BaseModel):
    """Selectable source as shown on the selection page"""
    source: str
    text: Dict[str, str]
    css_class: str = ""
    label: str


class SelectSourceResponse(BaseModel):
    """Data needed to render the source selection page"""
    auth_state: str
    broker: str
    sources: List[SourceOption]
    preselected: Optional[str] = Field(
        None, description="Source remembered from a previous login, if this attempt offers it"
    )


class SelectSourceRequest(BaseModel):
    """Choice submitted from the selection page"""
    auth_state: str = Field(..., alias="AuthState")
    source: str
    remember: bool = False

    model_config = {"populate_by_name": True}


class AuthenticationResult(BaseModel):
    """Outcome of a completed authentication attempt"""
    authenticated: bool = True
    auth_id: str
    source: Optional[str] = None
    attributes: Dict[str, List[str]] = Field(default_factory=dict)


class AuthenticationFailure(BaseModel):
    """Error response for a failed authentication attempt"""
    error: str
    message: str
    details: Optional[ErrorInfo] = None


class LogoutResult(BaseModel):
    """Logout confirmation"""
    message: str
    auth_id: str
