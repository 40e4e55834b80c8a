"""
Service-account credentials shared by the analytics and Search Console clients.

Authentication: GA4_SERVICE_ACCOUNT_JSON holds the full service account JSON.
"""

import json
import logging

import httplib2
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account
from googleapiclient.discovery import build

from config import require_env
from errors import ConfigurationError

logger = logging.getLogger(__name__)

ANALYTICS_SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]
SEARCH_CONSOLE_SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]

# Failures below the HTTP layer: sockets, timeouts, token refresh.
TRANSPORT_ERRORS = (OSError, httplib2.HttpLib2Error, auth_exceptions.GoogleAuthError)


def load_credentials(scopes: list, env_var: str = "GA4_SERVICE_ACCOUNT_JSON"):
    raw = require_env(env_var)
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{env_var} is not valid JSON") from exc
    return service_account.Credentials.from_service_account_info(info, scopes=scopes)


def build_service(api: str, version: str, scopes: list):
    """Build an authenticated discovery client for a Google API."""
    creds = load_credentials(scopes)
    logger.debug("Building Google API client %s %s", api, version)
    return build(api, version, credentials=creds, cache_discovery=False)
