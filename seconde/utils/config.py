"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the Seconde discovery backend.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import ConfigFileNotFoundError


class DatabaseConfig(BaseModel):
    """Configuration for the SQLAlchemy document store."""

    url: str = Field(default="sqlite:///./data/seconde.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL statements to the log")
    transaction_retries: int = Field(default=3, ge=1, le=10, description="Attempts for a transaction before giving up")


class VectorStoreConfig(BaseModel):
    """Configuration for the chromadb embedding store."""

    persist_directory: Optional[str] = Field(default="./data/chroma", description="Directory for chromadb persistence, None for in-memory")
    collection_name: str = Field(default="embeddings", description="chromadb collection name")
    embedding_dim: int = Field(default=512, ge=1, description="Dimension of stored image embeddings")
    distance_metric: str = Field(default="cosine", description="Distance metric for the collection")
    scan_page_size: int = Field(default=500, ge=1, description="Embeddings read per page of a similarity scan")

    @field_validator('distance_metric')
    @classmethod
    def validate_distance_metric(cls, v: str) -> str:
        """Validate distance metric."""
        valid_metrics = ["cosine", "ip"]
        if v not in valid_metrics:
            raise ValueError(f"Invalid distance metric. Choose from: {valid_metrics}")
        return v


class SimilarityConfig(BaseModel):
    """Limits and score floors for the similarity entry points."""

    similar_limit: int = Field(default=10, ge=1, description="Default result count for similar products")
    similar_min_score: float = Field(default=0.40, ge=-1.0, le=1.0, description="Score floor for similar products")
    visual_limit: int = Field(default=20, ge=1, description="Default result count for visual search")
    visual_min_score: float = Field(default=0.45, ge=-1.0, le=1.0, description="Score floor for visual search")
    moment_limit: int = Field(default=20, ge=1, description="Default result count per moment")
    moment_min_score: float = Field(default=0.5, ge=-1.0, le=1.0, description="Score floor for moment matching")
    max_results: int = Field(default=50, ge=1, description="Hard cap on any similarity result list")
    fallback_limit: int = Field(default=10, ge=1, description="Result count for the same-category fallback")


class PopularityConfig(BaseModel):
    """Weights for the engagement and recency decay terms."""

    view_weight: float = Field(default=0.1, ge=0.0, description="Score contributed by each view")
    like_weight: float = Field(default=2.0, ge=0.0, description="Score contributed by each like")
    decay_days: float = Field(default=30.0, gt=0.0, description="Time constant of the exponential decay, in days")
    persist_epsilon: float = Field(default=0.1, ge=0.0, description="Minimum change before a score is rewritten")

    @model_validator(mode='after')
    def validate_like_weight(self) -> 'PopularityConfig':
        """Likes must weigh more than views."""
        if self.like_weight <= self.view_weight:
            raise ValueError(
                f"like_weight must exceed view_weight, got {self.like_weight} <= {self.view_weight}"
            )
        return self


class JobsConfig(BaseModel):
    """Configuration for scheduled maintenance jobs."""

    batch_limit: int = Field(default=500, ge=1, le=500, description="Maximum writes per committed batch")
    popularity_interval_hours: float = Field(default=6.0, gt=0.0, description="Popularity recompute cadence")
    prune_interval_hours: float = Field(default=24.0, gt=0.0, description="Index pruning cadence")
    swap_party_interval_minutes: float = Field(default=5.0, gt=0.0, description="Swap party status cadence")


class TimeoutConfig(BaseModel):
    """Time budgets for callable entry points, in seconds."""

    client_budget: float = Field(default=90.0, gt=0.0, description="Client-side budget for long AI flows")
    server_budget: float = Field(default=120.0, gt=0.0, description="Server-side budget for long AI flows")
    similar_products: float = Field(default=30.0, gt=0.0, description="Budget for similar products")
    visual_search: float = Field(default=60.0, gt=0.0, description="Budget for visual search")
    default: float = Field(default=30.0, gt=0.0, description="Budget for every other callable")

    @model_validator(mode='after')
    def validate_budgets(self) -> 'TimeoutConfig':
        """The client must give up before the server does."""
        if self.client_budget > self.server_budget:
            raise ValueError("client_budget must not exceed server_budget")
        return self


class GeoConfig(BaseModel):
    """Configuration for proximity discovery."""

    default_max_distance_km: float = Field(default=25.0, gt=0.0, description="Default search radius")
    geohash_precision: int = Field(default=7, ge=1, le=12, description="Geohash length stored on index entries")
    scan_limit: int = Field(default=100, ge=1, description="Recent entries scanned per nearby query")


class EncoderConfig(BaseModel):
    """Configuration for the image embedding model."""

    clip_model: str = Field(default="ViT-B/32", description="CLIP model variant")
    device: str = Field(default="auto", description="Device selection: cuda, cpu, or auto")

    @field_validator('clip_model')
    @classmethod
    def validate_clip_model(cls, v: str) -> str:
        """Validate CLIP model name."""
        valid_models = ["ViT-B/32", "ViT-B/16", "ViT-L/14", "ViT-L/14@336px"]
        if v not in valid_models:
            raise ValueError(f"Invalid CLIP model. Choose from: {valid_models}")
        return v

    @field_validator('device')
    @classmethod
    def validate_device(cls, v: str) -> str:
        """Validate and normalize device configuration."""
        valid_devices = ["cuda", "cpu", "auto"]
        v_lower = v.lower()
        if v_lower not in valid_devices:
            raise ValueError(f"Invalid device. Choose from: {valid_devices}")
        return v_lower


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    popularity: PopularityConfig = Field(default_factory=PopularityConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    geo: GeoConfig = Field(default_factory=GeoConfig)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper


# Singleton pattern for configuration
_config: Optional[AppConfig] = None


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration file. Defaults to config/config.yaml
                    relative to project root, or SECONDE_CONFIG env var

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If configuration is invalid
    """
    if config_path is None:
        env_config_path = os.environ.get('SECONDE_CONFIG')
        if env_config_path:
            config_path = Path(env_config_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        example_path = config_path.parent / "config.example.yaml"
        raise ConfigFileNotFoundError(
            f"Configuration file not found: {config_path}. "
            f"Copy {example_path} to {config_path} or set SECONDE_CONFIG.",
            path=str(config_path),
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        config_dict = yaml.safe_load(f) or {}

    return AppConfig.model_validate(config_dict)


def get_config(config_path: Optional[Path | str] = None, reload: bool = False) -> AppConfig:
    """Get configuration instance (singleton pattern).

    Args:
        config_path: Path to configuration file (only used on first call or if reload=True)
        reload: Force reload of configuration

    Returns:
        Cached or newly loaded AppConfig instance
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config


def reset_config() -> None:
    """Reset cached configuration (useful for testing)."""
    global _config
    _config = None
