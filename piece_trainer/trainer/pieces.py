"""
Piece-level helpers shared by piece learners.

- is_valid_piece: whether a candidate string may become a vocabulary piece
- split_into_words / split_sentences_by_whitespace: word segmentation on the
  whitespace marker used by word-level learners
"""

import logging
import unicodedata
from collections import Counter
from typing import List, Optional

from piece_trainer.schema.trainer_spec import TrainerSpec
from .constants import UNK_CHAR, UPP_BOUNDARY_CHAR, WS_CHAR
from .corpus import Sentence
from .coverage import is_valid_codepoint, sorted_by_frequency

logger = logging.getLogger(__name__)

# Scripts folded into Han so Japanese pieces may mix kana and kanji.
_HAN_FOLDED = {"HIRAGANA", "KATAKANA", "CJK", "HAN"}


def unicode_script(c: str) -> Optional[str]:
    """
    Approximate Unicode script of a character.

    Letters are classified by the first word of their Unicode name
    (``LATIN``, ``CYRILLIC``, ...), with kana and CJK ideographs folded into
    ``HAN``. Combining marks return None (they take any script); everything
    else is ``COMMON``.
    """
    if c == "ー":  # prolonged sound mark
        return "HAN"
    category = unicodedata.category(c)
    if category.startswith("M"):
        return None
    if not category.startswith("L"):
        return "COMMON"
    name = unicodedata.name(c, "")
    if not name:
        return "COMMON"
    script = name.split(" ", 1)[0]
    return "HAN" if script in _HAN_FOLDED else script


def is_valid_piece(piece: str, spec: TrainerSpec) -> bool:
    """
    Check whether a candidate may be used as a piece.

    Rejects empty or over-long pieces, reserved codepoints (unknown marker,
    NUL, boundary marker, raw space, surrogates), whitespace markers in
    positions forbidden by split_by_whitespace / treat_whitespace_as_suffix,
    and pieces spanning several scripts when split_by_unicode_script is set.
    """
    if not piece or len(piece) > spec.max_sentencepiece_length:
        return False

    last = len(piece) - 1
    prev_script: Optional[str] = None
    for pos, c in enumerate(piece):
        if c in (UNK_CHAR, "\x00", UPP_BOUNDARY_CHAR):
            return False
        if c == " ":
            logger.warning("space must not be included in normalized string.")
            return False
        if not is_valid_codepoint(c):
            return False

        if c == WS_CHAR:
            if spec.treat_whitespace_as_suffix:
                if (spec.split_by_whitespace and pos < last) or \
                        (not spec.split_by_whitespace and pos < last and pos == 0):
                    return False
            else:
                if (spec.split_by_whitespace and pos > 0) or \
                        (not spec.split_by_whitespace and pos > 0 and pos == last):
                    return False
            continue

        script = unicode_script(c)
        if not spec.split_by_number and "0" <= c <= "9":
            script = None
        if spec.split_by_unicode_script and script is not None and \
                prev_script is not None and prev_script != script:
            return False
        prev_script = script
    return True


def split_into_words(text: str, treat_whitespace_as_suffix: bool = False) -> List[str]:
    """Split a normalized sentence into words at the whitespace marker."""
    words: List[str] = []
    if treat_whitespace_as_suffix:
        current = ""
        for c in text:
            current += c
            if c == WS_CHAR:
                words.append(current)
                current = ""
        if current:
            words.append(current)
    else:
        for c in text:
            if c == WS_CHAR or not words:
                words.append(c)
            else:
                words[-1] += c
    return words


def split_sentences_by_whitespace(sentences: List[Sentence],
                                  treat_whitespace_as_suffix: bool = False) -> List[Sentence]:
    """Replace sentences with their words, frequencies summed, most frequent first."""
    logger.info(f"Tokenizing input sentences with whitespace: {len(sentences):,}")
    tokens = Counter()
    for s in sentences:
        for w in split_into_words(s.text, treat_whitespace_as_suffix):
            tokens[w] += s.freq
    words = [Sentence(w, freq) for w, freq in sorted_by_frequency(tokens)]
    logger.info(f"Done! {len(words):,}")
    return words
