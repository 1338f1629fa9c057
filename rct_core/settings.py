import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    # Mode: dry_run | live
    mode: str

    # Deployment log, alarm state and metrics (DuckDB file)
    db_path: str

    # Root of artifacts/<version>/artifact.zip
    artifacts_root: str

    log_level: str
    log_dir: Optional[str]

    # SMTP for email notifications (optional)
    smtp_host: Optional[str]
    smtp_port: int
    smtp_user: Optional[str]
    smtp_password: Optional[str]
    smtp_from: Optional[str]

    @property
    def live(self) -> bool:
        return self.mode == "live"

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


def get_settings() -> Settings:
    load_dotenv()  # reads .env if present

    mode = os.getenv("RCT_MODE", "dry_run").strip().lower()
    log_dir = os.getenv("RCT_LOG_DIR", "logs").strip()

    return Settings(
        mode=mode,
        db_path=os.getenv("RCT_DB_PATH", "./rollback.duckdb"),
        artifacts_root=os.getenv("RCT_ARTIFACTS_ROOT", "./artifacts_store"),
        log_level=os.getenv("RCT_LOG_LEVEL", "INFO"),
        log_dir=log_dir or None,
        smtp_host=os.getenv("RCT_SMTP_HOST"),
        smtp_port=int(os.getenv("RCT_SMTP_PORT", "587")),
        smtp_user=os.getenv("RCT_SMTP_USER"),
        smtp_password=os.getenv("RCT_SMTP_PASSWORD"),
        smtp_from=os.getenv("RCT_SMTP_FROM"),
    )
