"""
Test suite for piece_trainer.trainer.sampling.

Tests reservoir sampling and the sentence selection policy.
"""

import sys
from collections import Counter
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from piece_trainer.schema.trainer_spec import TrainerSpec
from piece_trainer.trainer.sampling import ReservoirSampler, Selection, SentenceSelector


def _spec(**overrides):
    fields = {"model_prefix": "m", "input": ["corpus.txt"]}
    fields.update(overrides)
    return TrainerSpec(**fields)


class TestReservoirSampler:
    """Test Algorithm R sampling."""

    def test_fills_reservoir_first(self):
        sampler = ReservoirSampler(5)
        for i in range(3):
            assert sampler.add(i)
        assert sampler.sampled == [0, 1, 2]
        assert sampler.total_size == 3

    def test_sample_size_is_bounded(self):
        sampler = ReservoirSampler(10)
        for i in range(1000):
            sampler.add(i)
        assert len(sampler.sampled) == 10
        assert sampler.total_size == 1000
        assert len(set(sampler.sampled)) == 10
        assert all(0 <= x < 1000 for x in sampler.sampled)

    def test_reproducible_with_same_seed(self):
        a, b = ReservoirSampler(7, seed=42), ReservoirSampler(7, seed=42)
        for i in range(500):
            a.add(i)
            b.add(i)
        assert a.sampled == b.sampled

    def test_different_seeds_differ(self):
        a, b = ReservoirSampler(20, seed=1), ReservoirSampler(20, seed=2)
        for i in range(5000):
            a.add(i)
            b.add(i)
        assert a.sampled != b.sampled

    def test_zero_size_keeps_nothing(self):
        sampler = ReservoirSampler(0)
        assert not sampler.add("x")
        assert sampler.sampled == []

    def test_roughly_uniform(self):
        hits = Counter()
        for seed in range(300):
            sampler = ReservoirSampler(5, seed=seed)
            for i in range(20):
                sampler.add(i)
            hits.update(sampler.sampled)
        # Each item is expected 75 times (300 * 5 / 20).
        assert all(40 < hits[i] < 110 for i in range(20))


class TestSentenceSelector:
    """Test the input_sentence_size / shuffle_input_sentence policy."""

    def test_no_limit_keeps_everything(self):
        selector = SentenceSelector(_spec())
        results = [selector.add(i) for i in range(50)]
        assert set(results) == {Selection.ACCEPT}
        assert selector.sentences == list(range(50))
        assert selector.total_size == 50

    def test_head_limit_stops(self):
        selector = SentenceSelector(_spec(input_sentence_size=3, shuffle_input_sentence=False))
        assert selector.add("a") is Selection.ACCEPT
        assert selector.add("b") is Selection.ACCEPT
        assert selector.add("c") is Selection.ACCEPT_AND_STOP
        assert selector.sentences == ["a", "b", "c"]

    def test_shuffled_limit_samples_whole_stream(self):
        selector = SentenceSelector(_spec(input_sentence_size=4))
        results = [selector.add(i) for i in range(100)]
        assert Selection.ACCEPT_AND_STOP not in results
        assert Selection.REJECT in results
        assert len(selector.sentences) == 4
        assert selector.total_size == 100

    def test_shuffled_selection_is_reproducible(self):
        first = SentenceSelector(_spec(input_sentence_size=4))
        second = SentenceSelector(_spec(input_sentence_size=4))
        for i in range(100):
            first.add(i)
            second.add(i)
        assert first.sentences == second.sentences

    @pytest.mark.parametrize("total", [2, 4])
    def test_fewer_lines_than_limit(self, total):
        selector = SentenceSelector(_spec(input_sentence_size=4))
        for i in range(total):
            assert selector.add(i) is Selection.ACCEPT
        assert selector.sentences == list(range(total))

    def test_finish_logs_summary(self, caplog):
        selector = SentenceSelector(_spec(input_sentence_size=2))
        for i in range(5):
            selector.add(i)
        with caplog.at_level("INFO"):
            selector.finish()
        assert "Sampled 2 sentences from 5 sentences." in caplog.text
