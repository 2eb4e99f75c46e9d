from dataclasses import dataclass
import os
from dotenv import load_dotenv


load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, ""))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_base_url: str = os.getenv("REPORTCARD_API_BASE_URL", "")
    api_token: str = os.getenv("REPORTCARD_API_TOKEN", "")
    http_timeout: float = _float_env("REPORTCARD_HTTP_TIMEOUT", 15.0)
    fetch_timeout: float = _float_env("REPORTCARD_FETCH_TIMEOUT", 20.0)

    # "scale" derives gpa/letter from score at read time, "stored" trusts the backend
    gpa_source: str = os.getenv("REPORTCARD_GPA_SOURCE", "scale").strip().lower() or "scale"

    log_level: str = os.getenv("REPORTCARD_LOG_LEVEL", "INFO").upper()

    cors_allowed_origins: tuple[str, ...] = _split_csv(
        os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )


settings = Settings()
