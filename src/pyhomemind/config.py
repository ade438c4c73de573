"""Client configuration for pyhomemind."""

from __future__ import annotations

import dataclasses
import json
import os
from typing import Any

from pyhomemind._constants import DEFAULT_APP_ID, DEFAULT_DATABASE
from pyhomemind.exceptions import HomeMindConfigError

_PLACEHOLDER_KEYS = frozenset({"", "placeholder"})


@dataclasses.dataclass(frozen=True)
class HomeMindConfig:
    """Client configuration.

    Parameters
    ----------
    api_key : str
        Firebase Web API key. Required to reach the identity provider.
    project_id : str
        Google Cloud project hosting the Firestore database.
    app_id : str
        Application namespace used as the second path segment of every
        document path (``artifacts/{app_id}/...``).
    auth_domain : str or None
        Firebase auth domain. Used as ``requestUri`` for federated sign-in.
    database : str
        Firestore database id.
    initial_auth_token : str or None
        Custom token to sign in with. When unset the client signs in
        anonymously.
    poll_interval : float
        Seconds between document polls for the Firestore change subscription.
    request_timeout : float
        Total timeout in seconds for each HTTP request.
    max_image_bytes : int
        Largest image file accepted by the image setters.
    session_ttl_margin : float
        Refresh the id token this many seconds before it expires.
    """

    api_key: str = ""
    project_id: str = ""
    app_id: str = DEFAULT_APP_ID
    auth_domain: str | None = None
    database: str = DEFAULT_DATABASE
    initial_auth_token: str | None = None
    poll_interval: float = 2.0
    request_timeout: float = 15.0
    max_image_bytes: int = 5 * 1024 * 1024
    session_ttl_margin: float = 60.0

    @property
    def is_configured(self) -> bool:
        """Whether backend credentials are present and not placeholders."""
        return self.api_key.strip() not in _PLACEHOLDER_KEYS and bool(self.project_id.strip())

    def validate(self) -> None:
        """Raise :class:`HomeMindConfigError` unless the backend is configured."""
        if self.api_key.strip() in _PLACEHOLDER_KEYS:
            raise HomeMindConfigError("A valid Firebase API key is required (set HOMEMIND_API_KEY)")
        if not self.project_id.strip():
            raise HomeMindConfigError("A Firebase project id is required (set HOMEMIND_PROJECT_ID)")
        if not self.app_id.strip():
            raise HomeMindConfigError("app_id must be non-empty")
        if self.poll_interval <= 0:
            raise HomeMindConfigError("poll_interval must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> HomeMindConfig:
        """Create configuration from environment variables.

        Reads ``HOMEMIND_API_KEY``, ``HOMEMIND_PROJECT_ID`` and the optional
        ``HOMEMIND_*`` variables below. When the API key is not set
        individually, ``HOMEMIND_FIREBASE_CONFIG`` may hold the Firebase web
        config as a JSON object (``apiKey``, ``projectId``, ``authDomain``).
        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        blob = env.get("HOMEMIND_FIREBASE_CONFIG")
        if blob and not env.get("HOMEMIND_API_KEY"):
            try:
                firebase = json.loads(blob)
            except json.JSONDecodeError as exc:
                raise HomeMindConfigError(f"HOMEMIND_FIREBASE_CONFIG is not valid JSON: {exc}") from exc
            if not isinstance(firebase, dict):
                raise HomeMindConfigError("HOMEMIND_FIREBASE_CONFIG must be a JSON object")
            _BLOB_MAP = {"apiKey": "api_key", "projectId": "project_id", "authDomain": "auth_domain"}
            for blob_key, field_name in _BLOB_MAP.items():
                val = firebase.get(blob_key)
                if isinstance(val, str):
                    config_kwargs[field_name] = val

        _ENV_CONFIG_MAP = {
            "HOMEMIND_API_KEY": "api_key",
            "HOMEMIND_PROJECT_ID": "project_id",
            "HOMEMIND_APP_ID": "app_id",
            "HOMEMIND_AUTH_DOMAIN": "auth_domain",
            "HOMEMIND_DATABASE": "database",
            "HOMEMIND_AUTH_TOKEN": "initial_auth_token",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        poll_env = env.get("HOMEMIND_POLL_INTERVAL")
        if poll_env is not None and "poll_interval" not in overrides:
            config_kwargs["poll_interval"] = float(poll_env)

        timeout_env = env.get("HOMEMIND_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        max_image_env = env.get("HOMEMIND_MAX_IMAGE_BYTES")
        if max_image_env is not None and "max_image_bytes" not in overrides:
            config_kwargs["max_image_bytes"] = int(max_image_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
