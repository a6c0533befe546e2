"""
Configuration Module

Loads settings from environment variables and .env file.
Covers blob sizing, the color palette, sessions, and the server.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_PATH = PROJECT_ROOT / "config" / ".env"
load_dotenv(dotenv_path=ENV_PATH)

from .layout import LayoutOptions

DEFAULT_PALETTE = ["#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd", "#8c564b"]


@dataclass
class Config:
    """
    Application configuration.

    All settings are loaded from environment variables.
    See config/.env.example for available options.
    """

    # === Blob Layout Settings ===
    min_diameter: float = 2.0
    max_diameter: float = 24.0
    packing_factor: float = 0.7
    spacing: float = 4.0
    default_diameter: float = 20.0
    render_cap: int = 500            # Max blobs drawn in total
    max_per_term: int = 0            # Max blobs drawn per term (0 = uncapped)
    palette: List[str] = field(default_factory=lambda: list(DEFAULT_PALETTE))

    # === Session Settings ===
    session_timeout: float = 1800.0  # Seconds of inactivity before a session is dropped

    # === Server Settings ===
    host: str = "127.0.0.1"
    port: int = 8765
    allowed_cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost",
        "http://127.0.0.1",
    ])

    # === Logging Settings ===
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> "Config":
        """
        Load configuration from environment variables.

        Environment variables override defaults.
        """
        def get_bool(key: str, default: bool) -> bool:
            """Helper to parse boolean env vars."""
            value = os.getenv(key, str(default)).lower()
            return value in ("true", "1", "yes")

        def get_float(key: str, default: float) -> float:
            """Helper to parse float env vars."""
            try:
                return float(os.getenv(key, default))
            except ValueError:
                return default

        def get_int(key: str, default: int) -> int:
            """Helper to parse int env vars."""
            try:
                return int(os.getenv(key, default))
            except ValueError:
                return default

        def get_list(key: str, default: List[str]) -> List[str]:
            """Helper to parse comma-separated env vars."""
            raw = os.getenv(key)
            if not raw:
                return list(default)
            return [item.strip() for item in raw.split(",") if item.strip()]

        return cls(
            # Layout
            min_diameter=get_float("BLOB_MIN_DIAMETER", 2.0),
            max_diameter=get_float("BLOB_MAX_DIAMETER", 24.0),
            packing_factor=get_float("BLOB_PACKING_FACTOR", 0.7),
            spacing=get_float("BLOB_SPACING", 4.0),
            default_diameter=get_float("BLOB_DEFAULT_DIAMETER", 20.0),
            render_cap=get_int("BLOB_RENDER_CAP", 500),
            max_per_term=get_int("BLOB_MAX_PER_TERM", 0),
            palette=get_list("PALETTE", DEFAULT_PALETTE),

            # Sessions
            session_timeout=get_float("SESSION_TIMEOUT", 1800.0),

            # Server
            host=os.getenv("HOST", "127.0.0.1"),
            port=get_int("PORT", 8765),
            allowed_cors_origins=get_list(
                "ALLOWED_CORS_ORIGINS", ["http://localhost", "http://127.0.0.1"]
            ),

            # Logging
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=get_bool("LOG_JSON", True),
        )

    def validate(self) -> List[str]:
        """
        Validate the configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.min_diameter <= 0:
            errors.append("BLOB_MIN_DIAMETER must be positive")

        if self.max_diameter < self.min_diameter:
            errors.append("BLOB_MAX_DIAMETER must be at least BLOB_MIN_DIAMETER")

        if not 0 < self.packing_factor <= 1:
            errors.append("BLOB_PACKING_FACTOR must be in (0, 1]")

        if self.spacing < 0:
            errors.append("BLOB_SPACING must not be negative")

        if self.default_diameter <= 0:
            errors.append("BLOB_DEFAULT_DIAMETER must be positive")

        if self.render_cap <= 0:
            errors.append("BLOB_RENDER_CAP must be positive")

        if self.max_per_term < 0:
            errors.append("BLOB_MAX_PER_TERM must not be negative")

        if not self.palette:
            errors.append("PALETTE must name at least one color")

        if self.session_timeout <= 0:
            errors.append("SESSION_TIMEOUT must be positive")

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level.upper() not in valid_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_levels)}")

        return errors

    def __post_init__(self):
        """Validate after initialization."""
        errors = self.validate()
        if errors:
            raise ValueError(f"Configuration errors: {errors}")

    def layout_options(self) -> LayoutOptions:
        """Build the LayoutOptions these settings describe."""
        return LayoutOptions(
            min_diameter=self.min_diameter,
            max_diameter=self.max_diameter,
            packing_factor=self.packing_factor,
            spacing=self.spacing,
            default_diameter=self.default_diameter,
            render_cap=self.render_cap,
        )

    @property
    def per_term_cap(self) -> Optional[int]:
        return self.max_per_term or None


# === Convenience function ===

def load_config() -> Config:
    """
    Load configuration from environment.

    Usage:
        from blobcalc.config import load_config
        config = load_config()
    """
    return Config.from_env()


# === For testing/debugging ===

if __name__ == "__main__":
    # Run this file directly to see current config
    config = load_config()
    print("Current Configuration:")
    print(f"  Diameter: {config.min_diameter}..{config.max_diameter}")
    print(f"  Packing Factor: {config.packing_factor}")
    print(f"  Render Cap: {config.render_cap}")
    print(f"  Palette: {', '.join(config.palette)}")
    print(f"  Server: {config.host}:{config.port}")
