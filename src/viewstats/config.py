"""
Configuration for viewstats.
"""
import hashlib
import logging
import os
import secrets
import warnings
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Passkey security constants
MIN_PASSKEY_LENGTH = 16
PBKDF2_ITERATIONS = 100_000

DEFAULT_DB_PATH = "data/viewstats.db"


class PasskeyTooShortError(ValueError):
    """Raised when a passkey doesn't meet minimum length requirements."""
    pass


def validate_passkey_strength(passkey: str) -> None:
    """Validate passkey meets security requirements.

    Raises:
        PasskeyTooShortError: If passkey is shorter than MIN_PASSKEY_LENGTH
    """
    if len(passkey) < MIN_PASSKEY_LENGTH:
        raise PasskeyTooShortError(
            f"Passkey must be at least {MIN_PASSKEY_LENGTH} characters. "
            f"Got {len(passkey)} characters."
        )


def hash_passkey(passkey: str, validate: bool = True) -> str:
    """Hash a passkey using PBKDF2-SHA256.

    Returns a string in format: pbkdf2:iterations:salt_hex:hash_hex

    Use the output as VIEWSTATS_PASSKEY to protect the stats endpoint:

        from viewstats.config import hash_passkey
        print(hash_passkey("your-secret-passkey"))
    """
    if validate:
        validate_passkey_strength(passkey)

    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", passkey.encode(), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2:{PBKDF2_ITERATIONS}:{salt.hex()}:{dk.hex()}"


def verify_passkey(stored: str, provided: str) -> bool:
    """Verify a passkey using timing-safe comparison.

    Handles both hashed (pbkdf2:...) and plaintext passkeys.
    """
    if stored.startswith("pbkdf2:"):
        try:
            _, iterations_str, salt_hex, hash_hex = stored.split(":")
            iterations = int(iterations_str)
            salt = bytes.fromhex(salt_hex)
            expected_hash = bytes.fromhex(hash_hex)
        except (ValueError, TypeError):
            return False

        dk = hashlib.pbkdf2_hmac("sha256", provided.encode(), salt, iterations)
        return secrets.compare_digest(dk, expected_hash)

    return secrets.compare_digest(stored.encode(), provided.encode())


@dataclass
class AnalyticsConfig:
    """Configuration for one viewstats instance."""

    # Local storage
    db_path: str = DEFAULT_DB_PATH

    # Cloudflare D1 storage (used instead of db_path when all three are set)
    d1_database_id: str | None = None
    cf_account_id: str | None = None
    cf_api_token: str | None = None

    # Protects the stats endpoint; hashed (pbkdf2:...) or plaintext
    passkey: str | None = None

    # Skip recording when the browser sends "DNT: 1"
    respect_dnt: bool = True

    # Public URL prefix of the routes, used by the tracking script
    base_url: str = ""

    @classmethod
    def from_env(cls, prefix: str = "VIEWSTATS_") -> "AnalyticsConfig":
        """Build a config from environment variables (VIEWSTATS_DB_PATH, ...)."""

        def env(name: str) -> str | None:
            return os.environ.get(prefix + name) or None

        return cls(
            db_path=env("DB_PATH") or DEFAULT_DB_PATH,
            d1_database_id=env("D1_DATABASE_ID"),
            cf_account_id=env("CF_ACCOUNT_ID"),
            cf_api_token=env("CF_API_TOKEN"),
            passkey=env("PASSKEY"),
            respect_dnt=(env("RESPECT_DNT") or "true").lower() not in ("0", "false", "no"),
            base_url=env("BASE_URL") or "",
        )

    @property
    def use_d1(self) -> bool:
        """Check if D1 storage is fully configured."""
        return bool(self.d1_database_id and self.cf_account_id and self.cf_api_token)

    @property
    def has_auth(self) -> bool:
        """Check if the stats endpoint is protected."""
        return bool(self.passkey)

    @property
    def is_passkey_hashed(self) -> bool:
        """Check if the passkey is properly hashed."""
        return bool(self.passkey and self.passkey.startswith("pbkdf2:"))

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        self._validate_passkey()

    def _validate_passkey(self) -> None:
        """Warn about plaintext or short passkeys."""
        if not self.passkey:
            return

        if self.is_passkey_hashed:
            logger.debug("Using hashed passkey")
            return

        warnings.warn(
            "Using a plaintext passkey is deprecated. "
            "Use hash_passkey() to generate a hashed passkey:\n"
            "  from viewstats.config import hash_passkey\n"
            "  print(hash_passkey('your-passkey'))",
            DeprecationWarning,
            stacklevel=3,
        )
        if len(self.passkey) < MIN_PASSKEY_LENGTH:
            logger.warning(
                f"Passkey is shorter than recommended {MIN_PASSKEY_LENGTH} characters"
            )
