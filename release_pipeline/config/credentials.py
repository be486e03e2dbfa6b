"""Access token lookup for the release pipeline.

The token comes from the GITHUB_TOKEN environment variable on CI
runners. On workstations it may instead be kept in the system keyring
(Windows Credential Manager, macOS Keychain, Linux Secret Service).
"""

import logging
import os
from typing import Mapping, Optional

import keyring
from keyring.errors import KeyringError

from release_pipeline.errors import ConfigurationError

logger = logging.getLogger("release_pipeline.credentials")

TOKEN_ENV_VAR = "GITHUB_TOKEN"


class CredentialManager:
    """Resolves the GitHub access token from the environment or keyring."""

    SERVICE_NAME = "release-pipeline"
    USERNAME = "github-token"

    def __init__(self, environ: Optional[Mapping[str, str]] = None, use_keyring: bool = True):
        """
        Initialize the credential manager.

        Args:
            environ: Environment mapping (default os.environ)
            use_keyring: Fall back to the system keyring when the variable is unset
        """
        self._environ = os.environ if environ is None else environ
        self._use_keyring = use_keyring

    def get_token(self) -> Optional[str]:
        """
        Look up the access token.

        Returns:
            Token string or None if not found
        """
        token = (self._environ.get(TOKEN_ENV_VAR) or "").strip()
        if token:
            return token

        if not self._use_keyring:
            return None

        try:
            token = keyring.get_password(self.SERVICE_NAME, self.USERNAME)
        except KeyringError as e:
            logger.debug(f"Keyring unavailable: {e}")
            return None

        if token:
            logger.debug("Using access token from system keyring")
        return token or None

    def require_token(self) -> str:
        """
        Look up the access token, failing fast when there is none.

        Returns:
            Token string

        Raises:
            ConfigurationError: If no token is configured
        """
        token = self.get_token()
        if not token:
            raise ConfigurationError(
                f"No GitHub access token configured. Set the {TOKEN_ENV_VAR} "
                f"environment variable or store one with 'release-pipeline token set'"
            )
        return token

    def save_token(self, token: str) -> bool:
        """
        Save the access token in the system keyring.

        Args:
            token: Token to save

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            keyring.set_password(self.SERVICE_NAME, self.USERNAME, token)
            return True
        except KeyringError:
            return False

    def delete_token(self) -> bool:
        """
        Remove the saved access token.

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            keyring.delete_password(self.SERVICE_NAME, self.USERNAME)
            return True
        except KeyringError:
            return False
