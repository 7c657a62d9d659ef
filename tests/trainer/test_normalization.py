"""
Test suite for piece_trainer.trainer.normalization.

Tests the default Normalizer rules, longest-match meta piece substitution
and the parallel normalization stage.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from piece_trainer.schema.trainer_spec import NormalizerSpec
from piece_trainer.trainer.corpus import Sentence
from piece_trainer.trainer.errors import NormalizationInvariantError
from piece_trainer.trainer.normalization import Normalizer, PrefixMatcher, normalize_sentences


class TestNormalizer:
    """Test the default normalization capability."""

    def test_default_rules(self):
        assert Normalizer()("I have a pen") == "▁I▁have▁a▁pen"

    def test_extra_whitespace_removed(self):
        assert Normalizer()("  a   b  ") == "▁a▁b"

    def test_nfkc_folds_fullwidth(self):
        assert Normalizer()("ＡＢＣ") == "▁ABC"

    def test_nmt_unifies_whitespace(self):
        assert Normalizer()("a\tb　c") == "▁a▁b▁c"

    def test_identity_keeps_text(self):
        normalizer = Normalizer(NormalizerSpec(name="identity"))
        assert normalizer("ＡＢＣ") == "▁ＡＢＣ"

    def test_casefold(self):
        normalizer = Normalizer(NormalizerSpec(name="nmt_nfkc_cf"))
        assert normalizer("Hello") == "▁hello"

    def test_without_dummy_prefix(self):
        normalizer = Normalizer(NormalizerSpec(add_dummy_prefix=False))
        assert normalizer("a b") == "a▁b"

    def test_whitespace_only_becomes_empty(self):
        assert Normalizer()("   ") == ""


class TestPrefixMatcher:
    """Test longest-match substitution."""

    def test_longest_match_wins(self):
        matcher = PrefixMatcher(["<s>", "<s>x"])
        assert matcher.global_replace("a<s>xb<s>c", "\t") == "a\tb\tc"

    def test_no_texts(self):
        assert PrefixMatcher([]).global_replace("abc", "\t") == "abc"

    def test_regex_characters_escaped(self):
        matcher = PrefixMatcher(["a.b"])
        assert matcher.global_replace("axb a.b", "\t") == "axb \t"


class TestNormalizeSentences:
    """Test the parallel normalization stage."""

    def _corpus(self, n=57):
        return [Sentence(f"sentence number {i}", i % 3 + 1) for i in range(n)]

    def test_result_independent_of_thread_count(self):
        results = []
        for threads in (1, 2, 5, 16):
            out = normalize_sentences(self._corpus(), Normalizer(), [], threads)
            results.append(out)
        assert all(r == results[0] for r in results)
        assert results[0][0] == Sentence("▁sentence▁number▁0", 1)

    def test_more_threads_than_sentences(self):
        out = normalize_sentences([Sentence("a")], Normalizer(), [], 8)
        assert out == [Sentence("▁a")]

    def test_meta_pieces_replaced_by_boundary(self):
        out = normalize_sentences([Sentence("a<sep>b")], Normalizer(), ["<sep>", "<s>"], 2)
        assert out[0].text == "▁a\tb"

    def test_empty_sentences_removed_in_order(self):
        sentences = [Sentence("a"), Sentence("   "), Sentence("b"), Sentence(" ")]
        stats = {}
        out = normalize_sentences(sentences, Normalizer(), [], 3, stats)
        assert [s.text for s in out] == ["▁a", "▁b"]
        assert stats['empty_after_normalization'] == 2

    def test_raw_space_rejected(self):
        normalizer = Normalizer(NormalizerSpec(escape_whitespaces=False))
        with pytest.raises(NormalizationInvariantError):
            normalize_sentences([Sentence("a b")], normalizer, [], 2)

    def test_custom_normalize_function(self):
        out = normalize_sentences([Sentence("abc")], str.upper, [], 1)
        assert out == [Sentence("ABC")]

    def test_worker_errors_propagate(self):
        def broken(text):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            normalize_sentences([Sentence("a")], broken, [], 2)
