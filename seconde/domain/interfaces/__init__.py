# Domain Interfaces
"""
Abstract interfaces implemented by the infrastructure layer.
"""

from seconde.domain.interfaces.encoder_interface import EncoderInterface
from seconde.domain.interfaces.repository_interface import EmbeddingRepositoryInterface

__all__ = ["EncoderInterface", "EmbeddingRepositoryInterface"]
