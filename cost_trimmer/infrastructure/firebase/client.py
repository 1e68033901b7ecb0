"""Firestore client construction from service-account settings.

Uses FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) if set, otherwise
FIREBASE_SERVICE_ACCOUNT_PATH (file path). Uses the Firestore REST API
with google-auth.
"""

import json
import logging
from pathlib import Path

from cost_trimmer.core.config import Settings, get_settings
from cost_trimmer.domain.exceptions import ConfigurationError
from cost_trimmer.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)


def _load_key_dict(settings: Settings) -> dict | None:
    """Return service account dict from env key or file path."""
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                "FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON",
                setting="firebase_service_account_key",
            ) from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            raise ConfigurationError(
                f"FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: {resolved}",
                setting="firebase_service_account_path",
            )
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def create_firestore_client(settings: Settings | None = None) -> FirestoreRESTClient:
    """Build a Firestore REST client from service-account settings.

    Raises:
        ConfigurationError: If no credentials are configured or they lack project_id.
    """
    settings = settings or get_settings()
    key_dict = _load_key_dict(settings)
    if not key_dict:
        raise ConfigurationError(
            "Set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) or "
            "FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file), or pass a fetcher.",
            setting="firebase_service_account_key",
        )
    project_id = key_dict.get("project_id")
    if not project_id:
        raise ConfigurationError(
            "Firebase service account JSON missing 'project_id'",
            setting="firebase_service_account_key",
        )
    client = FirestoreRESTClient(
        project_id,
        _get_credentials(key_dict),
        timeout=settings.fetch_timeout_seconds,
    )
    logger.info("Firestore REST client initialized for project %s", project_id)
    return client
