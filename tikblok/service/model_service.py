import asyncio
from typing import List

import torch
import numpy as np

from tikblok.core.logger import SimpleLogger
from tikblok.utils.embedding_utils import to_vector

logger = SimpleLogger(__name__)


def fills_context(text_tokens: torch.Tensor) -> bool:
    """True when the tokenized text used every position, i.e. it was cut at the context length"""
    return bool(text_tokens[0, -1] != 0)


class ModelService:
    """Text embedding with an open_clip text tower"""

    def __init__(
        self,
        model,
        tokenizer,
        device: str = 'cuda'
        ):
        # Select device with graceful fallback when CUDA is unavailable
        selected_device = device
        if device == 'cuda' and not torch.cuda.is_available():
            selected_device = 'cpu'

        self.model = model.to(selected_device)
        self.tokenizer = tokenizer
        self.device = selected_device
        self.model.eval()
        self._embedding_dim: int | None = None

    def embedding(self, query_text: str) -> List[float]:
        """
        Generate a unit-length text embedding

        Args:
            query_text: Input text to embed, truncated by the tokenizer's context length

        Returns:
            list of floats of length ``embedding_dim``
        """
        with torch.no_grad():
            text_tokens = self.tokenizer([query_text]).to(self.device)
            if fills_context(text_tokens):
                logger.warning(
                    f"Embedding input truncated at {text_tokens.shape[-1]} tokens "
                    f"({len(query_text)} chars): {query_text[:80]!r}"
                )
            query_embedding = self.model.encode_text(text_tokens).cpu().detach().numpy()

        return to_vector(query_embedding.astype(np.float32))

    async def aembedding(self, query_text: str) -> List[float]:
        """Run ``embedding`` in a worker thread so several can be awaited together"""
        return await asyncio.to_thread(self.embedding, query_text)

    @property
    def embedding_dim(self) -> int:
        if self._embedding_dim is None:
            self._embedding_dim = len(self.embedding("test"))
        return self._embedding_dim
