import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///qrgen.db"
    log_level: str = "INFO"
    enforce_plan_limits: bool = True
    default_free_plan_limit: int = 10
    qr_box_size: int = 10
    qr_border: int = 2
    db_pool_timeout: int = 5
    db_statement_timeout_ms: int = 5000
    cors_allow_origin: str = "*"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.
        A `.env` file in the working directory is loaded first if present;
        real environment variables take precedence over it.
        """
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            enforce_plan_limits=_env_flag("ENFORCE_PLAN_LIMITS", cls.enforce_plan_limits),
            default_free_plan_limit=int(
                os.getenv("DEFAULT_FREE_PLAN_LIMIT", str(cls.default_free_plan_limit))
            ),
            qr_box_size=int(os.getenv("QR_BOX_SIZE", str(cls.qr_box_size))),
            qr_border=int(os.getenv("QR_BORDER", str(cls.qr_border))),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", str(cls.db_pool_timeout))),
            db_statement_timeout_ms=int(
                os.getenv("DB_STATEMENT_TIMEOUT_MS", str(cls.db_statement_timeout_ms))
            ),
            cors_allow_origin=os.getenv("CORS_ALLOW_ORIGIN", cls.cors_allow_origin),
            port=int(os.getenv("PORT", str(cls.port))),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
