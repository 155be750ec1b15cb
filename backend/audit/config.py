from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    # Target site
    scan_url: str = "https://foresight.flowninja.com/app/scanning"
    front_door_url: str = "https://foresight.flowninja.com"
    target_api_marker: str = "web-stagingv2"  # substring of the backend API host

    # Phase timeouts (seconds)
    page_load_timeout: float = 60
    scan_timeout: float = 300
    scan_poll_interval: float = 5
    settle_delay: float = 5
    popup_form_timeout: float = 10
    generic_form_timeout: float = 5
    navigation_timeout: float = 60
    report_timeout: float = 180
    report_poll_interval: float = 2

    # Browser identity
    headless: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36"
    )
    viewport_width: int = 1920
    viewport_height: int = 1080

    # Branding
    company_name: str = "Sun Skill Techs"
    logo_url: str = "https://via.placeholder.com/300x100/6366f1/ffffff?text=Sun+Skill+Techs"
    primary_color: str = "#6366f1"
    secondary_color: str = "#4f46e5"
    accent_color: str = "#818cf8"
    font_family: str = "'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif"

    # Ordered (pattern, replacement) pairs; "{company}" expands to company_name
    rebrand_rules: list[tuple[str, str]] = [
        (r"AI written flow or ninja", "{company} Team"),
        (r"Flow\s*Ninja", "{company}"),
        (r"Foresight™", "{company}"),
        (r"Foresight", "{company}"),
        (r"Your Company Name", "{company}"),
        (r"Uros Mikic", "{company} Team"),
        (r"Mihajlo Djokic", "{company} Team"),
        (r"Lucija Jaksic", "{company} Team"),
    ]

    # Lead form defaults, used for any field the caller leaves empty
    default_full_name: str = "Website Audit User"
    default_email: str = "audit@example.com"
    default_job_title: str = "Marketing Manager"

    # Diagnostics
    debug_dir: str = "."
    diagnostics_enabled: bool = True

    # PDF
    pdf_format: str = "A4"
    pdf_print_background: bool = True
    pdf_margin: dict[str, str] = {
        "top": "20px",
        "right": "20px",
        "bottom": "20px",
        "left": "20px",
    }

    # Server
    port: int = 3001
    cors_origin: str = "*"

    class Config:
        # Look for .env in the repo root (two levels up from backend/audit/)
        _env_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        env_prefix = "AUDIT_"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
