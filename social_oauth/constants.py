"""
Social (Google / GitHub) login constants
"""
import settings

LOGIN_URL = f"{settings.KIRO_AUTH_ENDPOINT}/login"
TOKEN_URL = f"{settings.KIRO_AUTH_ENDPOINT}/oauth/token"
REFRESH_URL = f"{settings.KIRO_AUTH_ENDPOINT}/refreshToken"
REDIRECT_URI = settings.SOCIAL_REDIRECT_URI

SOCIAL_PROVIDERS = ("Google", "Github")

# Verifier entropy (bytes) for the two login variants
DEEP_LINK_VERIFIER_BYTES = 64
EMBEDDED_VERIFIER_BYTES = 32
STATE_BYTES = 32
