"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # amx/
_PROJECT_ROOT = _THIS_DIR.parent                     # project root
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Render backend (accepts generation requests, calls back with status)
    amx_render_base_url: str = "http://localhost:9100"
    amx_render_api_key: str | None = None
    amx_default_template_id: str = "default"
    amx_default_output_format: str = "mp4"

    # Media proxy used to fetch previews without cross-origin restrictions
    amx_media_proxy_url: str | None = None

    # Distribution (social publishing) service
    amx_distribution_base_url: str = "http://localhost:9200"
    amx_distribution_api_key: str | None = None

    # Scoring service; unset means the heuristic fallback scorer is used
    amx_scoring_base_url: str | None = None

    # Timeout for every outbound HTTP call, in seconds
    amx_http_timeout: float = 30.0

    # Upper bound on render submissions in flight at once
    amx_max_concurrent_renders: int = 5

    # generate-all policy: redo_completed re-renders finished combinations too
    amx_generate_all_policy: Literal["redo_completed", "skip_completed"] = "redo_completed"

    # Data directory for the file store and saved exports
    amx_data_dir: str = "./data"

    # Combination store backend: "memory" (default) or "file"
    amx_store_backend: Literal["memory", "file"] = "memory"

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origin_regex: str | None = None

    port: int = 8000

    @property
    def data_dir(self) -> Path:
        """Data directory as Path; relative paths resolve against the project root."""
        p = Path(self.amx_data_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def combinations_dir(self) -> Path:
        return self.data_dir / "combinations"

    @property
    def exports_dir(self) -> Path:
        return self.data_dir / "exports"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def ensure_dirs(self) -> None:
        """Ensure all data directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.exports_dir.mkdir(parents=True, exist_ok=True)
        if self.amx_store_backend == "file":
            self.combinations_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_dirs()
    return settings
