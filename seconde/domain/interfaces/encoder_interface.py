"""
Abstract interface for image encoders.
"""

from abc import ABC, abstractmethod

import numpy as np
from PIL import Image


class EncoderInterface(ABC):
    """
    Abstract base class for image encoders.

    Defines the contract the embedding pipeline and visual search rely on.
    Implementations are built once per process and passed in explicitly.
    """

    @abstractmethod
    def encode(self, image: Image.Image) -> np.ndarray:
        """
        Generate an L2-normalized embedding vector from an image.

        Args:
            image: PIL Image object.

        Returns:
            1D float32 numpy array of length ``embedding_dim``.
        """
        pass

    @property
    @abstractmethod
    def embedding_dim(self) -> int:
        """Return the embedding dimension."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model name/identifier."""
        pass

    @abstractmethod
    def load_model(self) -> None:
        """Load the pretrained model into memory."""
        pass

    @abstractmethod
    def is_loaded(self) -> bool:
        """Check if the model is loaded."""
        pass
