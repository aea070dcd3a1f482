"""CLIP image encoder for item embeddings and visual search.

Wraps OpenAI's CLIP model via Hugging Face Transformers. The model is
loaded on first use and the encoder is meant to be built once per process
with ``build_encoder`` and passed to the components that need it.
"""

from typing import Optional

import numpy as np
import torch
from PIL import Image
from transformers import CLIPModel, CLIPProcessor

from seconde.domain.interfaces import EncoderInterface
from seconde.utils import get_logger, log_execution_time
from seconde.utils.config import EncoderConfig
from seconde.utils.exceptions import EncodingError, ModelLoadError
from seconde.utils.image_utils import ensure_rgb

logger = get_logger(__name__)

# Mapping from config names to Hugging Face model IDs
CLIP_MODEL_MAPPING = {
    "ViT-B/32": "openai/clip-vit-base-patch32",
    "ViT-B/16": "openai/clip-vit-base-patch16",
    "ViT-L/14": "openai/clip-vit-large-patch14",
    "ViT-L/14@336px": "openai/clip-vit-large-patch14-336",
}

# Projection sizes, known without loading the weights
CLIP_EMBEDDING_DIMS = {
    "ViT-B/32": 512,
    "ViT-B/16": 512,
    "ViT-L/14": 768,
    "ViT-L/14@336px": 768,
}


def detect_device(device_config: str) -> str:
    """Resolve "auto", "cuda" or "cpu" to an available device."""
    if device_config == "auto":
        device = "cuda" if torch.cuda.is_available() else "cpu"
    elif device_config == "cuda":
        if torch.cuda.is_available():
            device = "cuda"
        else:
            logger.warning("CUDA requested but not available, falling back to CPU")
            device = "cpu"
    else:
        device = "cpu"

    logger.info(f"Using device: {device}")
    return device


class CLIPEncoder(EncoderInterface):
    """Semantic image embeddings from a CLIP vision tower."""

    def __init__(self, model_variant: str = "ViT-B/32", device: str = "auto"):
        """Initialize CLIP encoder.

        Args:
            model_variant: CLIP model variant (e.g., "ViT-B/32")
            device: Device to run model on ("auto", "cuda", or "cpu")

        Raises:
            ValueError: If model_variant is not supported
        """
        if model_variant not in CLIP_MODEL_MAPPING:
            raise ValueError(
                f"Unsupported CLIP model: {model_variant}. "
                f"Choose from: {list(CLIP_MODEL_MAPPING.keys())}"
            )

        self.model_variant = model_variant
        self.hf_model_id = CLIP_MODEL_MAPPING[model_variant]
        self.device_config = device
        self.device: Optional[str] = None
        self.model: Optional[CLIPModel] = None
        self.processor: Optional[CLIPProcessor] = None

    @property
    def embedding_dim(self) -> int:
        return CLIP_EMBEDDING_DIMS[self.model_variant]

    @property
    def model_name(self) -> str:
        return self.hf_model_id

    def is_loaded(self) -> bool:
        return self.model is not None

    def load_model(self) -> None:
        """Download (if needed) and load the weights.

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        if self.is_loaded():
            return

        self.device = detect_device(self.device_config)
        try:
            logger.info(f"Loading CLIP model: {self.hf_model_id}")
            self.processor = CLIPProcessor.from_pretrained(self.hf_model_id)
            self.model = CLIPModel.from_pretrained(self.hf_model_id)
            self.model.to(self.device)
            self.model.eval()
        except Exception as e:
            self.model = None
            logger.error(f"Failed to load CLIP model {self.hf_model_id}")
            raise ModelLoadError(
                f"CLIP model loading failed: {e}", model_name=self.hf_model_id
            ) from e

        num_params = sum(p.numel() for p in self.model.parameters())
        logger.info(f"Model loaded: {self.hf_model_id} on {self.device} ({num_params:,} parameters)")

    def encode(self, image: Image.Image) -> np.ndarray:
        """Encode one image into an L2-normalized embedding.

        Raises:
            EncodingError: If the image is not a PIL image or inference fails
        """
        if not isinstance(image, Image.Image):
            raise EncodingError(f"Expected a PIL Image, got {type(image)}", model_name=self.hf_model_id)

        self.load_model()

        try:
            with log_execution_time(logger, "CLIP encoding"):
                inputs = self.processor(images=ensure_rgb(image), return_tensors="pt")
                pixel_values = inputs["pixel_values"].to(self.device)

                with torch.no_grad():
                    features = self.model.get_image_features(pixel_values=pixel_values)
                    features = features / features.norm(dim=-1, keepdim=True)

                return features[0].cpu().numpy().astype(np.float32)

        except torch.cuda.OutOfMemoryError as e:
            logger.error("CUDA out of memory while encoding")
            raise EncodingError("GPU out of memory, use the CPU device", model_name=self.hf_model_id) from e
        except Exception as e:
            logger.error("Failed to encode image with CLIP")
            raise EncodingError(f"CLIP encoding failed: {e}", model_name=self.hf_model_id) from e


def build_encoder(config: EncoderConfig, embedding_dim: Optional[int] = None) -> CLIPEncoder:
    """Build the process-wide encoder from configuration.

    Args:
        config: Encoder configuration
        embedding_dim: Dimension of the embedding store, checked against the model

    Raises:
        ModelLoadError: If the model output does not fit the embedding store
    """
    encoder = CLIPEncoder(model_variant=config.clip_model, device=config.device)
    if embedding_dim is not None and encoder.embedding_dim != embedding_dim:
        raise ModelLoadError(
            f"{config.clip_model} produces {encoder.embedding_dim}-dim embeddings "
            f"but the store expects {embedding_dim}",
            model_name=encoder.model_name,
        )
    return encoder
