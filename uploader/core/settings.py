"""Unified settings for robyn-stream-uploader."""

import tomllib
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from uploader.transfer.buffer import DEFAULT_BUFFER_SIZE
from uploader.transfer.cipher import CipherSpec
from uploader.transfer.config import DEFAULT_TOKEN_FIELD, TransferConfig


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict."""
    if not pyproject_path.exists():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(base_dir: Path) -> str:
    """Get version from git tags or fallback to package metadata."""
    try:
        import git

        repo = git.Repo(base_dir, search_parent_directories=True)
        latest_tag = max(repo.tags, key=lambda t: t.commit.committed_datetime, default=None)
        return str(latest_tag) if latest_tag else "0.0.0"
    except Exception:
        try:
            import importlib.metadata

            return importlib.metadata.version("robyn-stream-uploader")
        except Exception:
            return "0.0.0"


class Settings(BaseSettings):
    """Unified settings for robyn-stream-uploader service."""

    DEBUG: bool = True
    ENVIRONMENT: Literal["DEV", "PROD"] = "DEV"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    API_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "robyn-stream-uploader")
    API_DESCRIPTION: ClassVar[str] = PROJECT.get("project", {}).get("description", "Streaming file uploader")
    API_VERSION: ClassVar[str] = get_version(BASE_DIR)

    # Server
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 6060

    # Storage
    ROOT_DIR: Path = Path("/tmp/uploader")

    # Transfer
    UPLOAD_COOKIE: str = "y0UMayUpL0Ad"
    TOKEN_FIELD: str = DEFAULT_TOKEN_FIELD
    BUFFER_SIZE: int = DEFAULT_BUFFER_SIZE

    # Cipher, hex encoded; both or neither
    CIPHER_KEY: str | None = None
    CIPHER_IV: str | None = None

    # Admission, 0 means unbounded
    MAX_SESSIONS: int = 0

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("BUFFER_SIZE")
    @classmethod
    def _positive_buffer(cls, value: int) -> int:
        if value < 1:
            raise ValueError("BUFFER_SIZE must be positive")
        return value

    @model_validator(mode="after")
    def _cipher_pair(self) -> "Settings":
        if bool(self.CIPHER_KEY) != bool(self.CIPHER_IV):
            raise ValueError("CIPHER_KEY and CIPHER_IV must be set together")
        if self.CIPHER_KEY and self.CIPHER_IV:
            CipherSpec.from_hex(self.CIPHER_KEY, self.CIPHER_IV)
        return self

    @property
    def api_url(self) -> str:
        return f"http://{self.API_HOST}:{self.API_PORT}"

    def cipher_spec(self) -> CipherSpec | None:
        if self.CIPHER_KEY and self.CIPHER_IV:
            return CipherSpec.from_hex(self.CIPHER_KEY, self.CIPHER_IV)
        return None

    def transfer_config(self) -> TransferConfig:
        """Build the immutable configuration handed to the transfer core."""
        return TransferConfig(
            root=self.ROOT_DIR,
            token=self.UPLOAD_COOKIE.encode(),
            token_field=self.TOKEN_FIELD,
            buffer_size=self.BUFFER_SIZE,
            cipher=self.cipher_spec(),
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()  # type: ignore
