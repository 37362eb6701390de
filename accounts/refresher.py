"""Token refresh dispatcher over the three authentication schemes"""

import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from builder_id_oauth.token_refresh import refresh_oidc_token
from headers.user_agent import UserAgentProvider
from portal import PortalClient
from social_oauth.token_refresh import refresh_social_token
from utils.errors import AccountBannedError, ConfigurationError, ProtocolError, RefreshError
from web_oauth.token_refresh import refresh_web_oauth_token
from .models import AuthMethod, CredentialBundle, RefreshedTokens

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


class RefreshStrategy:
    """One refresh scheme; ``validate`` runs before any network call"""

    auth_method: AuthMethod

    def validate(self, bundle: CredentialBundle):
        if not bundle.refresh_token:
            raise ConfigurationError("Missing refresh token")

    async def refresh(self, bundle: CredentialBundle) -> Dict[str, Any]:
        raise NotImplementedError


class OidcRefreshStrategy(RefreshStrategy):
    auth_method = AuthMethod.OIDC

    def __init__(self, user_agent: UserAgentProvider, http_client: Optional[httpx.AsyncClient] = None):
        self.user_agent = user_agent
        self.http_client = http_client

    def validate(self, bundle: CredentialBundle):
        super().validate(bundle)
        if not bundle.client_id or not bundle.client_secret:
            raise ConfigurationError("OIDC refresh requires clientId and clientSecret")

    async def refresh(self, bundle: CredentialBundle) -> Dict[str, Any]:
        return await refresh_oidc_token(
            bundle.refresh_token,
            bundle.client_id,
            bundle.client_secret,
            bundle.region,
            self.user_agent.get_user_agent(),
            self.http_client,
        )


class SocialRefreshStrategy(RefreshStrategy):
    auth_method = AuthMethod.SOCIAL

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.http_client = http_client

    async def refresh(self, bundle: CredentialBundle) -> Dict[str, Any]:
        return await refresh_social_token(bundle.refresh_token, self.http_client)


class WebOAuthRefreshStrategy(RefreshStrategy):
    auth_method = AuthMethod.WEB_OAUTH

    def __init__(self, portal: PortalClient):
        self.portal = portal

    def validate(self, bundle: CredentialBundle):
        super().validate(bundle)
        if not bundle.csrf_token or not bundle.access_token or not bundle.provider:
            raise ConfigurationError("Web OAuth refresh requires csrfToken, accessToken and provider")

    async def refresh(self, bundle: CredentialBundle) -> Dict[str, Any]:
        return await refresh_web_oauth_token(
            self.portal,
            bundle.access_token,
            bundle.csrf_token,
            bundle.refresh_token,
            bundle.idp,
        )


class TokenRefresher:
    """Dispatches purely on ``bundle.auth_method``; never falls back to another scheme"""

    def __init__(
        self,
        portal: Optional[PortalClient] = None,
        user_agent: Optional[UserAgentProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        strategies: Optional[Iterable[RefreshStrategy]] = None,
    ):
        user_agent = user_agent or (portal.user_agent if portal else UserAgentProvider())
        portal = portal or PortalClient(user_agent=user_agent, http_client=http_client)
        if strategies is None:
            strategies = (
                OidcRefreshStrategy(user_agent, http_client),
                SocialRefreshStrategy(http_client),
                WebOAuthRefreshStrategy(portal),
            )
        self._strategies = {strategy.auth_method: strategy for strategy in strategies}

        missing = [method.value for method in AuthMethod if method not in self._strategies]
        if missing:
            raise ConfigurationError(f"No refresh strategy for: {', '.join(missing)}")

    def strategy_for(self, bundle: CredentialBundle) -> RefreshStrategy:
        return self._strategies[bundle.auth_method]

    def validate(self, bundle: CredentialBundle):
        """Raise ConfigurationError if the bundle lacks a field its scheme needs"""
        self.strategy_for(bundle).validate(bundle)

    async def refresh(self, bundle: CredentialBundle) -> RefreshedTokens:
        """Obtain a fresh access token for ``bundle``

        Raises:
            ConfigurationError: Required field missing (no network call made)
            AccountBannedError: Account suspended
            RefreshError: The strategy failed; its message is preserved
        """
        strategy = self.strategy_for(bundle)
        strategy.validate(bundle)

        logger.info(f"Refreshing token (authMethod: {bundle.auth_method.value})...")
        try:
            data = await strategy.refresh(bundle)
        except AccountBannedError:
            raise
        except ProtocolError as e:
            logger.error(f"Token refresh failed ({bundle.auth_method.value}): {e.message}")
            raise RefreshError(e.message) from e

        return RefreshedTokens(
            access_token=data["accessToken"],
            refresh_token=data.get("refreshToken") or bundle.refresh_token,
            expires_in=data.get("expiresIn") or DEFAULT_EXPIRES_IN,
            csrf_token=data.get("csrfToken"),
            profile_arn=data.get("profileArn"),
        )
