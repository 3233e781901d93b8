from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpakit.logging_config import LogMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RPAKIT_",
        extra="ignore",
    )

    archive_dir: Path = Path("")
    output_dir: Path = Path("")
    log_mode: LogMode = LogMode.NORMAL
    host: str = "127.0.0.1"
    port: int = 8426

    @model_validator(mode="after")
    def _resolve_archive_dir(self) -> "Settings":
        self.archive_dir = self.archive_dir.expanduser().resolve()
        if self.output_dir != Path(""):
            self.output_dir = self.output_dir.expanduser().resolve()
        return self


settings = Settings()
