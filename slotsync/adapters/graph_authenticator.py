"""
Microsoft Graph API authentication using MSAL (client credentials flow).

The sync runs unattended from a scheduler, so it authenticates as the app
registration itself rather than as a signed-in user.
"""

from __future__ import annotations

import logging
from pathlib import Path

import msal

from ..domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class GraphAuthenticator:
    """
    Acquires app-only access tokens for Microsoft Graph.

    Tokens are kept in a file-backed MSAL cache so that frequent delta runs
    reuse a still-valid token instead of requesting a new one each time.
    """

    SCOPES = ["https://graph.microsoft.com/.default"]

    def __init__(
        self,
        client_id: str,
        tenant_id: str,
        client_secret: str,
        authority_url: str | None = None,
        cache_file: Path | None = None
    ):
        """
        Args:
            client_id: Application (client) ID of the app registration
            tenant_id: Directory (tenant) ID
            client_secret: Client secret of the app registration
            authority_url: Overrides the default login.microsoftonline.com authority
            cache_file: Where to persist the token cache; in memory only when omitted

        Raises:
            AuthenticationError: If no client secret is given
        """
        if not client_secret:
            raise AuthenticationError("No Graph client secret configured")

        self.authority = authority_url or f"https://login.microsoftonline.com/{tenant_id}"
        self.cache_file = cache_file
        self.token_cache = msal.SerializableTokenCache()
        self._restore_token_cache()

        self.app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=self.authority,
            token_cache=self.token_cache
        )

    def _restore_token_cache(self) -> None:
        if self.cache_file is None or not self.cache_file.exists():
            return
        try:
            self.token_cache.deserialize(self.cache_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable token cache %s: %s", self.cache_file, exc)

    def _persist_token_cache(self) -> None:
        if self.cache_file is None or not self.token_cache.has_state_changed:
            return
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.cache_file.with_suffix(".tmp")
            tmp_path.write_text(self.token_cache.serialize(), encoding="utf-8")
            tmp_path.chmod(0o600)
            tmp_path.replace(self.cache_file)
        except OSError as exc:
            logger.warning("Token cache %s not written: %s", self.cache_file, exc)

    def get_access_token(self) -> str:
        """
        Return an app-only Graph token, from the cache while it is valid.

        Raises:
            AuthenticationError: If MSAL returns no token
        """
        result = self.app.acquire_token_for_client(scopes=self.SCOPES)

        if not result or "access_token" not in result:
            error = (result or {}).get("error_description", "Unknown error")
            raise AuthenticationError(f"Token request for {self.authority} failed: {error}")

        self._persist_token_cache()
        return result["access_token"]
