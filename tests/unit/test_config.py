"""Unit tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from seconde.utils.config import (
    AppConfig,
    EncoderConfig,
    JobsConfig,
    PopularityConfig,
    TimeoutConfig,
    VectorStoreConfig,
    get_config,
    load_config,
    reset_config,
)
from seconde.utils.exceptions import ConfigFileNotFoundError


class TestPopularityConfig:
    """Test popularity weight validation."""

    def test_defaults(self):
        config = PopularityConfig()
        assert config.view_weight == 0.1
        assert config.like_weight == 2.0
        assert config.decay_days == 30.0

    def test_likes_must_outweigh_views(self):
        """Test a like weight below the view weight is rejected."""
        with pytest.raises(ValueError, match="like_weight must exceed"):
            PopularityConfig(view_weight=1.0, like_weight=0.5)

    def test_decay_must_be_positive(self):
        with pytest.raises(ValueError):
            PopularityConfig(decay_days=0)


class TestTimeoutConfig:
    """Test time budget validation."""

    def test_client_gives_up_first(self):
        config = TimeoutConfig()
        assert config.client_budget < config.server_budget

    def test_client_budget_above_server_rejected(self):
        with pytest.raises(ValueError, match="client_budget"):
            TimeoutConfig(client_budget=200, server_budget=120)


class TestJobsConfig:
    """Test maintenance job limits."""

    def test_batch_limit_capped(self):
        """Test batches cannot exceed the 500 write limit."""
        with pytest.raises(ValidationError):
            JobsConfig(batch_limit=501)


class TestEncoderConfig:
    """Test encoder configuration."""

    def test_device_normalized(self):
        assert EncoderConfig(device="CPU").device == "cpu"

    def test_invalid_model(self):
        with pytest.raises(ValueError, match="Invalid CLIP model"):
            EncoderConfig(clip_model="resnet50")

    def test_invalid_distance_metric(self):
        with pytest.raises(ValueError, match="Invalid distance metric"):
            VectorStoreConfig(distance_metric="l2")


class TestAppConfig:
    """Test root configuration."""

    def test_default_config(self):
        config = AppConfig()
        assert config.vector_store.embedding_dim == 512
        assert config.similarity.similar_limit == 10
        assert config.log_level == "INFO"

    def test_log_level_normalized(self):
        assert AppConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            AppConfig(log_level="VERBOSE")

    def test_load_from_yaml(self, tmp_path: Path):
        """Test partial YAML overrides keep the other defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            yaml.safe_dump({
                "similarity": {"similar_min_score": 0.6},
                "geo": {"default_max_distance_km": 10},
                "log_level": "WARNING",
            }),
            encoding="utf-8",
        )

        config = load_config(config_file)

        assert config.similarity.similar_min_score == 0.6
        assert config.similarity.visual_min_score == 0.45
        assert config.geo.default_max_distance_km == 10
        assert config.log_level == "WARNING"

    def test_empty_yaml_gives_defaults(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("", encoding="utf-8")
        assert load_config(config_file) == AppConfig()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigFileNotFoundError, match="config.example.yaml"):
            load_config(tmp_path / "missing.yaml")

    def test_env_var_path(self, tmp_path: Path, monkeypatch):
        config_file = tmp_path / "from_env.yaml"
        config_file.write_text(yaml.safe_dump({"jobs": {"batch_limit": 100}}), encoding="utf-8")
        monkeypatch.setenv("SECONDE_CONFIG", str(config_file))

        assert load_config().jobs.batch_limit == 100

    def test_singleton(self, tmp_path: Path):
        """Test get_config caches until reload is requested."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.safe_dump({"log_level": "ERROR"}), encoding="utf-8")
        reset_config()
        try:
            first = get_config(config_file)
            assert get_config() is first
            config_file.write_text(yaml.safe_dump({"log_level": "DEBUG"}), encoding="utf-8")
            assert get_config(config_file, reload=True).log_level == "DEBUG"
        finally:
            reset_config()

    def test_shipped_example_is_valid(self):
        example = Path(__file__).parents[2] / "config" / "config.example.yaml"
        config = load_config(example)
        assert config.popularity.like_weight > config.popularity.view_weight
