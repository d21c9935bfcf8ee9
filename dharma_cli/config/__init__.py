"""
Application Settings
Load from environment variables
"""

from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DATA_DIR = Path.home() / ".dharma"


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Local storage
    # ======================
    # Unset paths live under DATA_DIR
    DATA_DIR: Path = DEFAULT_DATA_DIR
    WALLET_PATH: Optional[Path] = None
    AUTH_TOKEN_PATH: Optional[Path] = None

    # ======================
    # Blockchain node
    # ======================
    CHAIN_RPC_URL: str = "http://localhost:8546"
    MIN_BALANCE_WEI: int = 10_000_000_000_000_000  # 0.01 ether
    CONFIRMATION_POLL_INTERVAL_SECONDS: float = 1.0
    CONFIRMATION_TIMEOUT_SECONDS: Optional[float] = 300.0

    # ======================
    # Lending service
    # ======================
    LENDING_API_URL: str = "http://localhost:8080/api"
    AUTH_URL: str = "http://localhost:8080/api/authenticate"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # ======================
    # Wallet prompts
    # ======================
    # None keeps re-prompting until the user gets it right
    SECRET_MAX_ATTEMPTS: Optional[int] = None

    # ======================
    # Investor dashboard
    # ======================
    MAX_LOG_ENTRIES: int = 100
    DAEMON_POLL_INTERVAL_SECONDS: float = 5.0
    DAEMON_RECONNECT_DELAY_SECONDS: float = 5.0
    DAEMON_MAX_FAILURES: int = 5
    EXIT_GRACE_SECONDS: float = 0.2

    # ======================
    # Logging
    # ======================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None
    LOG_MAX_BYTES: int = 10_485_760
    LOG_BACKUP_COUNT: int = 5

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DHARMA_",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        if self.WALLET_PATH is None:
            self.WALLET_PATH = self.DATA_DIR / "wallet.json"
        if self.AUTH_TOKEN_PATH is None:
            self.AUTH_TOKEN_PATH = self.DATA_DIR / "auth.json"
        if self.LOG_FILE is None:
            self.LOG_FILE = self.DATA_DIR / "logs" / "dharma.log"
        return self


settings = Settings()
