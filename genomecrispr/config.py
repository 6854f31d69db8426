"""
Configuration system for GenomeCRISPR.

Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class PaginationConfig(BaseSettings):
    """Page size bounds for listings and exports."""
    default_page_size: int = 25
    max_page_size: int = 1000

    # Exports fetch far more rows than an interactive page
    default_export_size: int = 10000
    max_export_size: int = 50000


class GenomeCrisprConfig(BaseSettings):
    """Main configuration for GenomeCRISPR."""

    model_config = SettingsConfigDict(
        env_prefix="GENOMECRISPR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Path("~/.genomecrispr").expanduser()
    db_path: Path = Path("~/.genomecrispr/genome_crispr.db").expanduser()

    # Sub-configs
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_config() -> GenomeCrisprConfig:
    """Get cached configuration singleton."""
    config = GenomeCrisprConfig()
    config.ensure_directories()
    return config
