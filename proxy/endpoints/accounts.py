"""
Endpoints operating on existing account credentials.
"""
from fastapi import APIRouter, Depends

from accounts import AccountAuthService
from ..dependencies import get_service
from ..models import CredentialsRequest, ImportRequest

router = APIRouter(prefix="/accounts")


@router.post("/refresh")
async def refresh_account(request: CredentialsRequest, service: AccountAuthService = Depends(get_service)):
    """Refresh the access token of one account"""
    return await service.refresh_account_token(request.credentials)


@router.post("/status")
async def account_status(request: CredentialsRequest, service: AccountAuthService = Depends(get_service)):
    """Verify one account, refreshing once if its token expired"""
    return await service.check_account_status(request.credentials)


@router.post("/verify")
async def verify_account(request: CredentialsRequest, service: AccountAuthService = Depends(get_service)):
    """Refresh then verify credentials before adding the account"""
    return await service.verify_account_credentials(request.credentials)


@router.post("/import")
async def import_accounts(request: ImportRequest, service: AccountAuthService = Depends(get_service)):
    """Verify many credentials concurrently"""
    return await service.import_accounts(request.accounts)
