import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env from the project root (reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

REQUIRED = ("DATABASE_URL", "JWT_SECRET", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET")


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    stripe_secret_key: str
    stripe_webhook_secret: str
    jwt_expires_days: int = 7
    payment_currency: str = "usd"
    stripe_timeout_seconds: float = 10.0
    stripe_max_network_retries: int = 2
    db_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, env_path: Path = ENV_PATH) -> "Settings":
        load_dotenv(dotenv_path=env_path)

        missing = [name for name in REQUIRED if not os.getenv(name)]
        if missing:
            raise RuntimeError(
                f"Missing environment variables: {', '.join(missing)}. Check your .env file."
            )

        return cls(
            database_url=os.environ["DATABASE_URL"],
            jwt_secret=os.environ["JWT_SECRET"],
            stripe_secret_key=os.environ["STRIPE_SECRET_KEY"],
            stripe_webhook_secret=os.environ["STRIPE_WEBHOOK_SECRET"],
            jwt_expires_days=int(os.getenv("JWT_EXPIRES_DAYS", "7")),
            payment_currency=os.getenv("PAYMENT_CURRENCY", "usd").lower(),
            stripe_timeout_seconds=float(os.getenv("STRIPE_TIMEOUT_SECONDS", "10")),
            stripe_max_network_retries=int(os.getenv("STRIPE_MAX_NETWORK_RETRIES", "2")),
            db_timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", "5")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_flag(os.getenv("LOG_JSON", "false")),
        )
