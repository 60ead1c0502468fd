from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


#
# Shared theme tokens (Skutopia styling)
# - Centralized here so components never hardcode colors.
#
THEME = {
    # Backgrounds
    "bg_primary": "#F5F7FB",     # page background
    "bg_secondary": "#FFFFFF",   # sidebar / top surfaces
    "bg_card": "#FFFFFF",        # card surface
    # Accents (Skutopia green + deep blue)
    "accent_primary": "#16A34A",
    "accent_secondary": "#22C55E",  # hover
    "navy_900": "#0F1E3D",
    "navy_800": "#1E3A8A",
    # Text + borders
    "text_primary": "#111827",
    "text_secondary": "rgba(17, 24, 39, 0.72)",
    "border_color": "#E5E7EB",
    "grid": "rgba(17, 24, 39, 0.10)",
    "shadow": "0 1px 3px rgba(16,24,40,0.08)",
    "radius_px": 10,
    # Status colors
    "success": "#067647",
    "warning": "#F59E0B",
    "danger": "#B42318",
}


@dataclass(frozen=True)
class AppConfig:
    # Required for "real data" mode (Supabase project)
    supabase_url: str
    supabase_anon_key: Optional[str]

    # Admin-only key used by scripts/seed_demo_data.py; never sent from views.
    supabase_service_key: Optional[str]

    # Ask Muzanga (Hugging Face inference)
    hf_api_key: Optional[str]
    hf_model_url: str

    # OAuth redirect target
    site_url: str

    # Mentorship calendar
    mentorship_time_zone: str
    local_bookings_dir: str

    # Behaviour
    cache_ttl_seconds: int
    request_timeout: int
    log_level: str
    log_file: Optional[str]

    # Defaults
    default_use_mock: bool

    @property
    def is_supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/rest/v1"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name, default)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        return default


def get_config() -> AppConfig:
    """
    Centralized config: this is the ONLY place env vars are read.
    - Loads `.env` if present (local dev)
    - Works with any host that injects env vars (Streamlit Cloud, containers)
    """
    load_dotenv(override=False)

    return AppConfig(
        supabase_url=_getenv("SUPABASE_URL") or "",
        supabase_anon_key=_getenv("SUPABASE_ANON_KEY"),
        supabase_service_key=_getenv("SUPABASE_SERVICE_ROLE_KEY"),
        hf_api_key=_getenv("HF_API_KEY"),
        hf_model_url=_getenv(
            "HF_MODEL_URL",
            "https://api-inference.huggingface.co/models/mistralai/Mistral-7B-Instruct-v0.1",
        )
        or "",
        site_url=_getenv("SITE_URL", "http://localhost:8501") or "http://localhost:8501",
        mentorship_time_zone=_getenv("MENTORSHIP_TIME_ZONE", "Asia/Kolkata") or "Asia/Kolkata",
        local_bookings_dir=_getenv("LOCAL_BOOKINGS_DIR", ".skutopia/bookings") or ".skutopia/bookings",
        cache_ttl_seconds=_getint("CACHE_TTL_SECONDS", 60),
        request_timeout=_getint("REQUEST_TIMEOUT", 30),
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        log_file=_getenv("LOG_FILE"),
        default_use_mock=(_getenv("USE_MOCK_DATA", "true") or "true").lower() == "true",
    )
