"""Pytest fixtures and configuration for Seconde tests."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

import numpy as np
import pytest
from PIL import Image

from seconde.core.indexing.maintainer import IndexMaintainer
from seconde.database.document_store import DocumentStore
from seconde.database.vector_store import EmbeddingStore
from seconde.domain.entities import EmbeddingRecord, Item
from seconde.domain.entities.embedding import price_range
from seconde.domain.interfaces import EncoderInterface
from seconde.utils.config import AppConfig, DatabaseConfig, VectorStoreConfig

TEST_DIM = 8

# Wednesday 15 September 2025, noon UTC
NOW = datetime(2025, 9, 15, 12, 0, tzinfo=timezone.utc)


def make_vector(seed: int, dim: int = TEST_DIM) -> np.ndarray:
    """Deterministic L2-normalized vector for a seed."""
    rng = np.random.default_rng(seed)
    vector = rng.normal(size=dim).astype(np.float32)
    return vector / np.linalg.norm(vector)


def blend(a: np.ndarray, b: np.ndarray, weight: float) -> np.ndarray:
    """Normalized mix of two vectors, ``weight`` towards ``b``."""
    mixed = (1 - weight) * a + weight * b
    return (mixed / np.linalg.norm(mixed)).astype(np.float32)


class StubEncoder(EncoderInterface):
    """Encoder mapping an image's mean colour to a fixed vector."""

    def __init__(self, dim: int = TEST_DIM):
        self.dim = dim
        self.calls = 0

    def encode(self, image: Image.Image) -> np.ndarray:
        self.calls += 1
        r, g, b = image.convert("RGB").resize((1, 1)).getpixel((0, 0))
        return make_vector(r * 65536 + g * 256 + b, self.dim)

    @property
    def embedding_dim(self) -> int:
        return self.dim

    @property
    def model_name(self) -> str:
        return "stub-encoder"

    def load_model(self) -> None:
        pass

    def is_loaded(self) -> bool:
        return True


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def test_config() -> AppConfig:
    """Provide test configuration with in-memory stores."""
    return AppConfig(
        database=DatabaseConfig(url="sqlite://"),
        vector_store=VectorStoreConfig(
            persist_directory=None,
            # The in-memory chroma client is shared across the process
            collection_name=f"test_{uuid.uuid4().hex[:12]}",
            embedding_dim=TEST_DIM,
        ),
        log_level="DEBUG",
    )


@pytest.fixture
def document_store(test_config) -> Generator[DocumentStore, None, None]:
    store = DocumentStore(test_config.database)
    yield store
    store.dispose()


@pytest.fixture
def embedding_store(test_config) -> EmbeddingStore:
    return EmbeddingStore(test_config.vector_store)


@pytest.fixture
def maintainer(document_store, now) -> IndexMaintainer:
    return IndexMaintainer(document_store, clock=lambda: now)


@pytest.fixture
def stub_encoder() -> StubEncoder:
    return StubEncoder()


@pytest.fixture
def sample_image() -> Image.Image:
    return Image.new("RGB", (32, 32), color=(200, 30, 60))


@pytest.fixture
def make_item(now) -> Callable[..., Item]:
    """Factory for items with sensible defaults."""

    def factory(item_id: str, **overrides) -> Item:
        values = {
            "id": item_id,
            "title": f"Robe {item_id}",
            "price": 35.0,
            "seller_id": "seller-1",
            "category": "robes",
            "brand": "Sandro",
            "size": "M",
            "images": [f"{item_id}/0.jpg"],
            "created_at": now - timedelta(days=2),
            "updated_at": now - timedelta(days=2),
        }
        values.update(overrides)
        return Item(**values)

    return factory


@pytest.fixture
def make_record(now) -> Callable[..., EmbeddingRecord]:
    """Factory for embedding records built from an item."""

    def factory(item: Item, vector: np.ndarray, **overrides) -> EmbeddingRecord:
        values = {
            "item_id": item.id,
            "vector": vector,
            "image_url": item.primary_image or "",
            "category": item.category,
            "brand": item.brand,
            "price_range": price_range(item.price),
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        return EmbeddingRecord(**values)

    return factory
