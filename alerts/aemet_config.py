"""
AEMET OpenData configuration.

Environment Variables:
    AEMET_API_KEY: OpenData API key (required)
    AEMET_BASE_URL: API root (default: https://opendata.aemet.es/opendata)
    AEMET_ALERTS_AREA: CAP alerts area code (default: esp, whole country)
    AEMET_TIMEOUT_SECONDS: HTTP timeout per request (default: 30)
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://opendata.aemet.es/opendata"
DEFAULT_ALERTS_AREA = "esp"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class AemetSettings:
    """Credentials and endpoint for the AEMET alerts feed."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    alerts_area: str = DEFAULT_ALERTS_AREA
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@lru_cache(maxsize=1)
def get_aemet_settings() -> AemetSettings:
    api_key = os.getenv("AEMET_API_KEY")
    if not api_key:
        raise RuntimeError("No AEMET API key found")

    return AemetSettings(
        api_key=api_key,
        base_url=(os.getenv("AEMET_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        alerts_area=os.getenv("AEMET_ALERTS_AREA") or DEFAULT_ALERTS_AREA,
        timeout_seconds=float(os.getenv("AEMET_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
    )
