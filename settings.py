from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# HTTP facade configuration
PORT = config.get("PORT", 8090)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "127.0.0.1")
LOG_FILE = config.get("LOG_FILE", "kiro_auth_debug.log")

# Identification embedded in the x-amz-user-agent header
KIRO_APP_VERSION = config.get("KIRO_APP_VERSION", "1.0.0")
MACHINE_ID_FILE = config.get("MACHINE_ID_FILE", str(Path.home() / ".kiro-account-auth" / "machine_id"))

# Networking
DEFAULT_REGION = config.get("DEFAULT_REGION", "us-east-1")
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 30.0)
# Empty string means "no explicit proxy" (httpx still honours HTTPS_PROXY etc.)
HTTP_PROXY_URL = config.get("HTTP_PROXY_URL", "")

# Device authorization (Builder ID)
DEVICE_SESSION_TTL = config.get("DEVICE_SESSION_TTL", 600)
DEVICE_POLL_INTERVAL = config.get("DEVICE_POLL_INTERVAL", 5)
SSO_IMPORT_TIMEOUT = config.get("SSO_IMPORT_TIMEOUT", 120)

# Batch import
BATCH_CONCURRENCY = config.get("BATCH_CONCURRENCY", 8)

# Optional browser-automation hand-off (BitBrowser local API)
BITBROWSER_PORT = config.get("BITBROWSER_PORT", 0)
BITBROWSER_ID = config.get("BITBROWSER_ID", "")

# Embedded login window (Playwright Chromium channel, e.g. "chrome" or "msedge")
WEB_OAUTH_BROWSER_CHANNEL = config.get("WEB_OAUTH_BROWSER_CHANNEL", "")

# Backend endpoints (hardcoded - not user configurable)
KIRO_API_BASE = "https://app.kiro.dev/service/KiroWebPortalService/operation"
KIRO_AUTH_ENDPOINT = "https://prod.us-east-1.auth.desktop.kiro.dev"
OIDC_BASE_TEMPLATE = "https://oidc.{region}.amazonaws.com"
SSO_PORTAL_BASE = "https://portal.sso.us-east-1.amazonaws.com"
SSO_START_URL = "https://view.awsapps.com/start"

# OAuth redirect targets (hardcoded - registered with the backend)
SOCIAL_REDIRECT_URI = "kiro://kiro.kiroAgent/authenticate-success"
WEB_OAUTH_REDIRECT_URI = "https://app.kiro.dev/signin/oauth"
