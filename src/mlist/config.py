"""Server configuration loaded from environment, .env and a TOML file."""
import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

DEFAULT_CONTENT_SECURITY_POLICY = (
    "default-src 'self'; img-src 'self' data: blob:; media-src 'self' blob:; "
    "object-src 'none'; frame-ancestors 'self'; script-src 'self'; "
    "style-src 'self' 'unsafe-inline';"
)


def config_file_path() -> Path:
    """Location of the optional TOML config file (``MLIST_CONFIG``)."""
    return Path(os.environ.get("MLIST_CONFIG", "config.toml"))


class Settings(BaseSettings):
    """Server configuration.

    Values come from init arguments, ``MLIST_*`` environment variables,
    a ``.env`` file and the TOML file named by ``MLIST_CONFIG``, in that
    order of precedence.

    Attributes:
        root_dir: Directory tree to serve. Canonicalized on load.
        host: Bind address for the server.
        port: Port number for the server.
        debug: Enable debug logging and API documentation.
        session_ttl_seconds: Lifetime of a login session and its cookie.
        secure_cookies: Set the ``Secure`` flag on the session cookie.
        login_max_failures: Failed logins allowed before a block.
        login_block_seconds: Length of a login block.
        content_security_policy: Value of the Content-Security-Policy header.
        frontend_dir: Built frontend assets served at ``/`` when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="MLIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    root_dir: Path = Field(default=Path("/tmp/mlist-files"), validate_default=True)
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False

    session_ttl_seconds: int = Field(default=1800, gt=0)
    secure_cookies: bool = False
    login_max_failures: int = Field(default=5, ge=1)
    login_block_seconds: int = Field(default=60, ge=1)

    content_security_policy: str = DEFAULT_CONTENT_SECURITY_POLICY
    frontend_dir: Path = Path("frontend-dist")

    @field_validator("root_dir")
    @classmethod
    def canonicalize_root(cls, v: Path) -> Path:
        """Require an absolute, existing directory and resolve symlinks.

        Returns:
            Canonical root path.
        """
        if not v.is_absolute():
            raise ValueError("root_dir must be an absolute path.")
        try:
            canonical = Path(os.path.realpath(v, strict=True))
        except OSError as e:
            raise ValueError(f"Failed to canonicalize root_dir {v}: {e}") from e
        if not canonical.is_dir():
            raise ValueError(f"Configured root_dir {canonical} is not a directory.")
        return canonical

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Add the TOML config file below environment sources."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_file_path()),
        )
