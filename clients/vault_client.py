"""
HashiCorp Vault access for the scheduler's three secrets.

    scheduler/database  url          PostgreSQL DSN
    scheduler/jwt       signing_key  HS256 key for access tokens
    scheduler/openai    api_key      speech-to-text and chat-completion key

AppRole credentials come from the environment. Every read is scoped to
the 'scheduler/' mount path, and each secret is fetched at most once per
process. Missing configuration or secrets stop startup.
"""

import logging
import os
import threading
from typing import Dict

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "scheduler"

# Process-wide client and secrets, keyed by path relative to the prefix
_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, Dict[str, str]] = {}
_lock = threading.Lock()


class VaultClient:
    """AppRole-authenticated reader for secrets under scheduler/."""

    def __init__(
        self,
        vault_addr: str | None = None,
        role_id: str | None = None,
        secret_id: str | None = None,
        namespace: str | None = None,
    ):
        """
        Authenticate against Vault.

        Arguments default to VAULT_ADDR, VAULT_ROLE_ID, VAULT_SECRET_ID and
        VAULT_NAMESPACE.

        Raises:
            ValueError: If the address or AppRole credentials are missing
            PermissionError: If Vault rejects the credentials
        """
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        role_id = role_id or os.getenv("VAULT_ROLE_ID")
        secret_id = secret_id or os.getenv("VAULT_SECRET_ID")
        namespace = namespace or os.getenv("VAULT_NAMESPACE")

        if not vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        if namespace:
            self.client = hvac.Client(url=vault_addr, namespace=namespace)
        else:
            self.client = hvac.Client(url=vault_addr)

        try:
            login = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error(f"AppRole authentication failed: {e}")
            raise PermissionError(f"AppRole authentication failed: {e}")
        self.client.token = login["auth"]["client_token"]

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")
        logger.info(f"Vault client authenticated against {vault_addr}")

    def read_secret(self, path: str) -> Dict[str, str]:
        """
        All fields of the latest version of scheduler/<path>.

        Raises:
            PermissionError: Path missing, deleted, or not readable by this role
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath:
            logger.error(f"Secret path not found: {full_path}")
            raise PermissionError(f"Secret path '{full_path}' not found in Vault")
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}: {e}")
            raise PermissionError(f"Access denied to secret '{full_path}': {e}")
        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of scheduler/<path>.

        Raises:
            PermissionError: See read_secret
            KeyError: Field not present in the secret
        """
        return _require_fields(path, self.read_secret(path), [field])[field]


def _require_fields(path: str, secret: Dict[str, str], fields: list[str]) -> Dict[str, str]:
    missing = [field for field in fields if field not in secret]
    if missing:
        raise KeyError(
            f"Field(s) {', '.join(missing)} not found in secret '{_SECRET_PREFIX}/{path}'. "
            f"Available: {', '.join(secret)}"
        )
    return {field: secret[field] for field in fields}


def _get_fields(path: str, fields: list[str]) -> Dict[str, str]:
    """Fields of one secret, reading Vault only on first use."""
    global _vault_client_instance
    with _lock:
        if path not in _secret_cache:
            if _vault_client_instance is None:
                _vault_client_instance = VaultClient()
            _secret_cache[path] = _vault_client_instance.read_secret(path)
        secret = _secret_cache[path]
    return _require_fields(path, secret, fields)


def get_database_url() -> str:
    """PostgreSQL DSN."""
    return _get_fields("database", ["url"])["url"]


def get_jwt_config() -> Dict[str, str]:
    """Access-token signing configuration: {"signing_key": ...}."""
    return _get_fields("jwt", ["signing_key"])


def get_openai_config() -> Dict[str, str]:
    """Speech-to-text / chat-completion credentials: {"api_key": ...}."""
    return _get_fields("openai", ["api_key"])
