"""Tests for ModelService embeddings and the truncation warning."""

from unittest.mock import patch

import pytest
import torch

from tikblok.service.model_service import ModelService, fills_context

CONTEXT_LENGTH = 8


def word_tokenizer(texts):
    """Whitespace tokenizer shaped like open_clip's: start/end markers, zero padded, cut at the context"""
    rows = []
    for text in texts:
        ids = [1] + [len(word) + 2 for word in text.split()] + [2]
        if len(ids) > CONTEXT_LENGTH:
            ids = ids[:CONTEXT_LENGTH - 1] + [2]
        rows.append(ids + [0] * (CONTEXT_LENGTH - len(ids)))
    return torch.tensor(rows)


class TinyTextTower(torch.nn.Module):
    def encode_text(self, tokens: torch.Tensor) -> torch.Tensor:
        tokens = tokens.float()
        return torch.stack([tokens.sum(dim=-1), (tokens != 0).sum(dim=-1).float(), torch.ones(tokens.shape[0])], dim=-1)


@pytest.fixture
def service() -> ModelService:
    return ModelService(TinyTextTower(), word_tokenizer, device="cpu")


def test_fills_context():
    assert not fills_context(word_tokenizer(["two words"]))
    assert fills_context(word_tokenizer(["one two three four five six seven eight"]))


def test_embedding_is_unit_length(service):
    vector = service.embedding("Diamond Find")

    assert len(vector) == 3
    assert sum(v * v for v in vector) == pytest.approx(1.0)
    assert service.embedding_dim == 3


def test_long_text_warns_about_truncation(service):
    long_text = " ".join(f"word{i}" for i in range(20))

    with patch("tikblok.service.model_service.logger") as logger:
        service.embedding(long_text)

    message = logger.warning.call_args.args[0]
    assert f"truncated at {CONTEXT_LENGTH} tokens" in message
    assert f"({len(long_text)} chars)" in message


def test_short_text_does_not_warn(service):
    with patch("tikblok.service.model_service.logger") as logger:
        service.embedding("Diamond Find")

    logger.warning.assert_not_called()


@pytest.mark.asyncio
async def test_async_embedding_matches(service):
    assert await service.aembedding("castle build") == service.embedding("castle build")
