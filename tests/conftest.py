import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from piece_trainer.schema.trainer_spec import TrainerSpec


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow (large synthetic corpora)"
    )


@pytest.fixture
def write_corpus(tmp_path):
    """Write lines to a corpus file under tmp_path and return its path."""
    def _write(lines, name="corpus.txt"):
        path = tmp_path / name
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_spec(tmp_path):
    """Build a TrainerSpec with a model prefix under tmp_path."""
    def _make(inputs=(), **overrides):
        fields = {
            "model_prefix": str(tmp_path / "m"),
            "input": [str(p) for p in inputs] or [str(tmp_path / "corpus.txt")],
            "model_type": "char",
            "vocab_size": 100,
            "num_threads": 1,
        }
        fields.update(overrides)
        return TrainerSpec(**fields)
    return _make
