"""
Pydantic request models for the auth and account endpoints.
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class BuilderIdStartRequest(BaseModel):
    """Start a device-code login"""
    region: Optional[str] = None


class SocialStartRequest(BaseModel):
    """Start a deep-link login in the external browser"""
    provider: Literal["Google", "Github"]
    open_browser: bool = Field(default=True, alias="openBrowser")

    model_config = {"populate_by_name": True}


class SocialCallbackRequest(BaseModel):
    """Either the raw redirect URL or its code/state pair"""
    url: Optional[str] = None
    code: Optional[str] = None
    state: Optional[str] = None


class WebOAuthStartRequest(BaseModel):
    provider: Literal["Google", "Github"]


class WebOAuthWaitRequest(BaseModel):
    timeout: Optional[float] = None


class SsoImportRequest(BaseModel):
    """x-amz-sso_authn bearer token of a signed-in access portal session"""
    bearer_token: str = Field(alias="bearerToken")
    region: Optional[str] = None

    model_config = {"populate_by_name": True}


class CredentialsRequest(BaseModel):
    """camelCase credential bundle (accessToken, refreshToken, authMethod, ...)"""
    credentials: Dict[str, Any]


class ImportRequest(BaseModel):
    accounts: List[Dict[str, Any]]
