"""
core/config.py -- TaskFlow settings, read once from the environment.

Every tunable (signing key, lockout policy, bcrypt cost, storage URLs, the
bootstrap admin) is a field on Settings. Other modules ask get_settings() for
the shared instance; nothing else reads os.environ.

get_settings() is wrapped in lru_cache, so the environment and any .env file
are read on first use only. Env var names are the upper-cased field names
(lockout_minutes -> LOCKOUT_MINUTES). List fields take JSON.

SECRET_KEY signs session tokens. It must be at least 32 characters, and
changing it logs every user out. Outside DEBUG mode a missing key stops
startup.

Layer rule: core/ is the kernel. This module may not import from api/, auth/
or tasks/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("taskflow.config")


class Settings(BaseSettings):
    """TaskFlow configuration. Defaults suit local development."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = 24 * 3600
    bcrypt_rounds: int = 12
    lockout_threshold: int = 5
    lockout_minutes: int = 15

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # JSON lists in the environment, e.g. ALLOWED_HOSTS='["taskflow.example.com"]'
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Storage (empty string means "use the store's default file")
    # ------------------------------------------------------------------

    auth_db_url: str = ""
    tasks_db_url: str = ""

    # ------------------------------------------------------------------
    # Bootstrap administrator
    # ------------------------------------------------------------------

    admin_email: str = "admin@taskflow.com"
    admin_name: str = "System Administrator"
    # No default password. When empty, the first admin must be created with
    # `python main.py create-admin`.
    admin_password: str = ""

    @model_validator(mode="after")
    def check_signing_key(self) -> "Settings":
        """Check the signing key and bcrypt cost.

        With DEBUG=true a missing key is replaced by a random one, so tokens
        die with the process. Without DEBUG a missing key is fatal.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("SECRET_KEY not set; generated a throwaway key. Tokens are lost on restart.")
            else:
                raise ValueError("SECRET_KEY is not set. Provide one (32+ characters) or set DEBUG=true for local use.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the shared Settings instance.

    Tests that change the environment must call get_settings.cache_clear().
    """
    return Settings()
