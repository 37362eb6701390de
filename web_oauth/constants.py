"""
Embedded (incognito window) web login constants
"""
import settings

REDIRECT_URI = settings.WEB_OAUTH_REDIRECT_URI

INITIATE_LOGIN_OPERATION = "InitiateLogin"
EXCHANGE_TOKEN_OPERATION = "ExchangeToken"
REFRESH_TOKEN_OPERATION = "RefreshToken"

# Cookies set by ExchangeToken
SESSION_COOKIE = "RefreshToken"
ACCESS_TOKEN_COOKIE = "AccessToken"
IDP_COOKIE = "Idp"

WINDOW_WIDTH = 500
WINDOW_HEIGHT = 700
