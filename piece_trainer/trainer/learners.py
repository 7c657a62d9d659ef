"""
Piece learner and self-test encoder interfaces, plus reference implementations
for character and word models.

Statistical learners (unigram, bpe) plug in through the same PieceLearner
protocol; they receive the prepared corpus and the required characters and
return pieces ordered and scored.
"""

import logging
import math
import re
from typing import Dict, List, Protocol, Tuple

from piece_trainer.schema.model_proto import ModelProto
from piece_trainer.schema.trainer_spec import TrainerSpec
from .constants import UNK_CHAR, UPP_BOUNDARY_CHAR
from .corpus import Sentence
from .errors import VocabularyTooSmallError
from .coverage import sorted_by_frequency
from .meta_pieces import MetaPieceRegistry
from .normalization import Normalizer
from .pieces import is_valid_piece, split_into_words, split_sentences_by_whitespace

logger = logging.getLogger(__name__)

LearnedPiece = Tuple[str, float]


class PieceLearner(Protocol):
    def learn(self, sentences: List[Sentence], required_chars: Dict[str, int],
              spec: TrainerSpec, meta_pieces: MetaPieceRegistry) -> List[LearnedPiece]:
        ...


class SelfTestEncoder(Protocol):
    def encode(self, model: ModelProto, text: str) -> List[str]:
        ...


def _piece_budget(spec: TrainerSpec, meta_pieces: MetaPieceRegistry) -> int:
    budget = spec.vocab_size - len(meta_pieces)
    if budget < 0:
        raise VocabularyTooSmallError(f"vocab_size={spec.vocab_size} is smaller than the number of meta pieces ({len(meta_pieces)})")
    return budget


class CharPieceLearner:
    """Character model: every required character is a piece, scored by log relative frequency."""

    def learn(self, sentences: List[Sentence], required_chars: Dict[str, int],
              spec: TrainerSpec, meta_pieces: MetaPieceRegistry) -> List[LearnedPiece]:
        budget = _piece_budget(spec, meta_pieces)
        logsum = math.log(sum(required_chars.values()))

        pieces: List[LearnedPiece] = []
        for c, freq in sorted_by_frequency(required_chars):
            if not spec.use_all_vocab and len(pieces) == budget:
                break
            if not is_valid_piece(c, spec):
                logger.debug(f"Skipping invalid character piece {c!r}")
                continue
            pieces.append((c, math.log(freq) - logsum))
        logger.info(f"Character model: {len(pieces)} pieces (budget {budget})")
        return pieces


class WordPieceLearner:
    """Word model: the most frequent whitespace-delimited words become pieces."""

    def learn(self, sentences: List[Sentence], required_chars: Dict[str, int],
              spec: TrainerSpec, meta_pieces: MetaPieceRegistry) -> List[LearnedPiece]:
        budget = _piece_budget(spec, meta_pieces)
        words = split_sentences_by_whitespace(sentences, spec.treat_whitespace_as_suffix)
        logsum = math.log(sum(w.freq for w in words))

        pieces: List[LearnedPiece] = []
        for w in words:
            if UNK_CHAR in w.text or UPP_BOUNDARY_CHAR in w.text:
                continue
            if not spec.use_all_vocab and len(pieces) == budget:
                break
            pieces.append((w.text, math.log(w.freq) - logsum))
        logger.info(f"Word model: {len(pieces)} pieces (budget {budget})")
        return pieces


class _VocabEncoder:
    """Shared normalization and user defined symbol handling for the reference encoders."""

    def _prepare(self, model: ModelProto) -> Tuple[Normalizer, Dict[str, int], "re.Pattern"]:
        vocab = model.piece_to_id()
        user_defined = sorted((p.piece for p in model.pieces if p.type == "user_defined"),
                              key=lambda t: (-len(t), t))
        alternatives = [re.escape(t) for t in user_defined]
        pattern = re.compile("|".join(alternatives + [r"(?s:.)"]))
        return Normalizer(model.normalizer_spec), vocab, pattern


class CharEncoder(_VocabEncoder):
    """Encode text into single characters (user defined symbols kept whole)."""

    def encode(self, model: ModelProto, text: str) -> List[str]:
        normalizer, vocab, pattern = self._prepare(model)
        unk = model.unk_piece
        return [m if m in vocab else unk for m in pattern.findall(normalizer.normalize(text))]


class WordEncoder(_VocabEncoder):
    """Encode text into whole words; unknown words map to the unknown piece."""

    def encode(self, model: ModelProto, text: str) -> List[str]:
        normalizer, vocab, _ = self._prepare(model)
        unk = model.unk_piece
        words = split_into_words(normalizer.normalize(text), model.trainer_spec.treat_whitespace_as_suffix)
        return [w if w in vocab else unk for w in words]


LEARNERS = {
    "char": (CharPieceLearner, CharEncoder),
    "word": (WordPieceLearner, WordEncoder),
}
