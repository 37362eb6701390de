"""
Login flow endpoints: Builder ID device code, social deep link,
embedded web login and SSO token import.
"""
from fastapi import APIRouter, Depends

from accounts import AccountAuthService
from utils.errors import ConfigurationError
from ..dependencies import get_service
from ..models import (
    BuilderIdStartRequest,
    SocialCallbackRequest,
    SocialStartRequest,
    SsoImportRequest,
    WebOAuthStartRequest,
    WebOAuthWaitRequest,
)

router = APIRouter(prefix="/auth")


@router.post("/builder-id/start")
async def builder_id_start(request: BuilderIdStartRequest, service: AccountAuthService = Depends(get_service)):
    return await service.start_builder_id_login(request.region)


@router.post("/builder-id/poll")
async def builder_id_poll(service: AccountAuthService = Depends(get_service)):
    return await service.poll_builder_id_login()


@router.post("/builder-id/cancel")
async def builder_id_cancel(service: AccountAuthService = Depends(get_service)):
    return await service.cancel_builder_id_login()


@router.post("/social/start")
async def social_start(request: SocialStartRequest, service: AccountAuthService = Depends(get_service)):
    return await service.start_social_login(request.provider, request.open_browser)


@router.post("/social/callback")
async def social_callback(request: SocialCallbackRequest, service: AccountAuthService = Depends(get_service)):
    if request.url:
        return await service.handle_social_callback_url(request.url)
    if request.code and request.state:
        return await service.complete_social_login(request.code, request.state)
    return {"success": False, "error": ConfigurationError("Either url or code and state are required").to_dict()}


@router.post("/social/cancel")
async def social_cancel(service: AccountAuthService = Depends(get_service)):
    return await service.cancel_social_login()


@router.post("/web-oauth/start")
async def web_oauth_start(request: WebOAuthStartRequest, service: AccountAuthService = Depends(get_service)):
    return await service.start_web_oauth_login(request.provider)


@router.post("/web-oauth/wait")
async def web_oauth_wait(request: WebOAuthWaitRequest, service: AccountAuthService = Depends(get_service)):
    return await service.wait_web_oauth_login(request.timeout)


@router.post("/web-oauth/cancel")
async def web_oauth_cancel(service: AccountAuthService = Depends(get_service)):
    return await service.cancel_web_oauth_login()


@router.post("/sso-import")
async def sso_import(request: SsoImportRequest, service: AccountAuthService = Depends(get_service)):
    return await service.import_from_sso_token(request.bearer_token, request.region)
