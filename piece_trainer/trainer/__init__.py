"""
Piece Trainer Package

Corpus ingestion and vocabulary assembly for subword models: everything
around the piece-learning algorithm itself.

Key modules:
- spec_validation: Trainer spec range and field checks
- meta_pieces: Id allocation for unknown/control/user defined pieces
- corpus / sampling: Streaming corpus loading and sentence selection
- normalization: Parallel normalization stage
- coverage: Character coverage selection and rare character replacement
- serializer: Model assembly, binary model and vocab file output
- learners: Piece learner / encoder interfaces and char/word reference models
- trainer_interface: Orchestration of the full pipeline
"""

from .errors import (
    TrainerError,
    ConfigError,
    CorpusFormatError,
    NormalizationInvariantError,
    VocabularyTooSmallError,
    SerializationError
)

from .spec_validation import check_spec, verify_spec
from .meta_pieces import MetaPiece, MetaPieceRegistry
from .sampling import ReservoirSampler, Selection, SentenceSelector
from .corpus import Sentence, iter_corpus_lines, load_sentences

from .normalization import (
    Normalizer,
    PrefixMatcher,
    normalize_sentences
)

from .coverage import (
    count_chars,
    build_required_chars,
    replace_rare_chars
)

from .pieces import (
    is_valid_piece,
    split_into_words,
    split_sentences_by_whitespace
)

from .serializer import (
    serialize,
    add_self_test_data,
    save_model,
    load_model,
    save_vocab,
    load_vocab
)

from .learners import (
    PieceLearner,
    SelfTestEncoder,
    CharPieceLearner,
    WordPieceLearner,
    CharEncoder,
    WordEncoder
)

from .trainer_interface import Trainer

__all__ = [
    # Errors
    "TrainerError",
    "ConfigError",
    "CorpusFormatError",
    "NormalizationInvariantError",
    "VocabularyTooSmallError",
    "SerializationError",

    # Spec and meta pieces
    "check_spec",
    "verify_spec",
    "MetaPiece",
    "MetaPieceRegistry",

    # Corpus
    "ReservoirSampler",
    "Selection",
    "SentenceSelector",
    "Sentence",
    "iter_corpus_lines",
    "load_sentences",

    # Normalization and coverage
    "Normalizer",
    "PrefixMatcher",
    "normalize_sentences",
    "count_chars",
    "build_required_chars",
    "replace_rare_chars",

    # Pieces
    "is_valid_piece",
    "split_into_words",
    "split_sentences_by_whitespace",

    # Serialization
    "serialize",
    "add_self_test_data",
    "save_model",
    "load_model",
    "save_vocab",
    "load_vocab",

    # Learners
    "PieceLearner",
    "SelfTestEncoder",
    "CharPieceLearner",
    "WordPieceLearner",
    "CharEncoder",
    "WordEncoder",

    "Trainer"
]
