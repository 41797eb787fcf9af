"""Discord OAuth2 client: authorization-code exchange and identity lookup."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from .config_manager import BridgeConfig
from .utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api"
DISCORD_AUTHORIZE_URL = "https://discord.com/oauth2/authorize"


class DiscordOAuthClient:
    """Client for the Discord OAuth2 authorization-code flow."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: int = 30,
        base_url: str = DISCORD_API_BASE,
        scope: str = "identify",
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client with the application's OAuth2 credentials."""
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.scope = scope
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "DiscordOAuthClient":
        return cls(
            client_id=config.discord_client_id,
            client_secret=config.discord_client_secret,
            redirect_uri=config.redirect_uri,
            timeout=config.http_timeout,
        )

    def build_authorize_url(self, state: str) -> str:
        """Build the URL that starts the authorization-code flow for ``state``."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }
        return f"{DISCORD_AUTHORIZE_URL}?{urlencode(params)}"

    def _json(self, response: requests.Response, operation: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            logger.error(
                f"{operation}: non-JSON response (status {response.status_code}): "
                f"{response.text[:200]}"
            )
            raise ProviderError(
                f"{operation} returned a non-JSON response",
                error_code="invalid_response",
            )
        if not isinstance(data, dict):
            raise ProviderError(
                f"{operation} returned an unexpected payload",
                error_code="invalid_response",
            )
        return data

    def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token.

        Raises:
            ProviderError: on transport failure or when no access token is returned
        """
        token_url = f"{self.base_url}/oauth2/token"
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }

        try:
            response = self.session.post(
                token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Token exchange request failed: {e}")
            raise ProviderError(
                f"Token exchange request failed: {e}", error_code="token_exchange"
            )

        token_data = self._json(response, "Token exchange")
        access_token = token_data.get("access_token")
        if not access_token:
            # Discord reports failures as {"error": ..., "error_description": ...}
            logger.error(
                f"Token error (status {response.status_code}): "
                f"{token_data.get('error')} {token_data.get('error_description', '')}".rstrip()
            )
            raise ProviderError(
                "Discord did not return an access token", error_code="token_exchange"
            )

        return access_token

    def fetch_identity(self, access_token: str) -> Dict[str, Any]:
        """Fetch ``users/@me`` for the bearer token.

        Raises:
            ProviderError: on transport failure or when the payload has no ``id``
        """
        try:
            response = self.session.get(
                f"{self.base_url}/users/@me",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Identity request failed: {e}")
            raise ProviderError(
                f"Identity request failed: {e}", error_code="identity_fetch"
            )

        user = self._json(response, "Identity fetch")
        if not user.get("id"):
            logger.error(f"users/@me error (status {response.status_code}): {user}")
            raise ProviderError(
                "Discord did not return a user id", error_code="identity_fetch"
            )

        return user
