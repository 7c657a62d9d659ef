"""
Character coverage.

Selects the characters that must be part of the vocabulary: the most frequent
codepoints whose cumulative weighted frequency reaches character_coverage.
Every other character in the corpus is rewritten to the unknown marker.
"""

import logging
from collections import Counter
from typing import Dict, List, Tuple

from piece_trainer.schema.trainer_spec import TrainerSpec
from .constants import UNK_CHAR, UPP_BOUNDARY_CHAR
from .corpus import Sentence
from .errors import NormalizationInvariantError, VocabularyTooSmallError

logger = logging.getLogger(__name__)


def is_valid_codepoint(c: str) -> bool:
    cp = ord(c)
    return cp < 0xD800 or 0xE000 <= cp <= 0x10FFFF


def sorted_by_frequency(counts: Dict[str, int]) -> List[Tuple[str, int]]:
    """Sort (char, freq) by descending frequency, ties by codepoint."""
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def count_chars(sentences: List[Sentence]) -> Tuple[Counter, int]:
    """
    Count weighted character frequencies over a normalized corpus.

    NUL and invalid codepoints are skipped. A raw space is an invariant
    violation at this point.

    Returns:
        Tuple of (per-character counts, total count)
    """
    counts = Counter()
    total = 0
    found_null = False
    for s in sentences:
        for c in s.text:
            if not is_valid_codepoint(c):
                continue
            if c == "\x00":
                if not found_null:
                    logger.info("Found null character. The corpus must be encoded in utf-8.")
                    found_null = True
                continue
            if c == " ":
                raise NormalizationInvariantError("space must not be included in normalized string.")
            counts[c] += s.freq
            total += s.freq
    return counts, total


def build_required_chars(sentences: List[Sentence], spec: TrainerSpec,
                         meta_size: int) -> Tuple[Dict[str, int], float]:
    """
    Determine the characters that must be included in the vocabulary.

    Args:
        sentences: Normalized corpus
        spec: Trainer spec (character_coverage, use_all_vocab, model_type, vocab_size)
        meta_size: Number of meta pieces that also need a slot

    Returns:
        Tuple of (required char -> frequency, achieved coverage)

    Raises:
        VocabularyTooSmallError: if the corpus has no characters, or a unigram/bpe
            vocabulary cannot hold the required characters plus meta pieces
    """
    counts, total = count_chars(sentences)
    logger.info(f"all chars count={total:,}")
    if total == 0:
        raise VocabularyTooSmallError("No characters left in the corpus; cannot build a vocabulary from an empty corpus.")

    required: Dict[str, int] = {}
    accumulated = 0
    for c, freq in sorted_by_frequency(counts):
        coverage = accumulated / total
        if not spec.use_all_vocab and coverage >= spec.character_coverage:
            logger.info(f"Done: {100.0 * coverage:.4f}% characters are covered.")
            break
        accumulated += freq
        if c == UPP_BOUNDARY_CHAR:
            continue
        required[c] = freq

    coverage = accumulated / total
    logger.info(f"Alphabet size={len(required)}")
    logger.info(f"Final character coverage={coverage:.6f}")

    if UNK_CHAR in required:
        raise NormalizationInvariantError(f"Reserved unknown marker {UNK_CHAR!r} found in normalized corpus.")

    if spec.is_statistical and len(required) + meta_size > spec.vocab_size:
        raise VocabularyTooSmallError(
            f"Vocabulary size is smaller than required_chars. {spec.vocab_size} vs "
            f"{len(required) + meta_size}. Increase vocab_size or decrease character_coverage."
        )

    return required, coverage


def replace_rare_chars(sentences: List[Sentence], required: Dict[str, int]) -> List[Sentence]:
    """Rewrite every character not in ``required`` to the unknown marker, in place."""
    for s in sentences:
        s.text = "".join(c if c in required else UNK_CHAR for c in s.text)
    return sentences
