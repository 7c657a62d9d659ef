"""
Training orchestration.

Trainer wires the stages together:

    verify_spec -> MetaPieceRegistry.build -> load_sentences (loader + selector)
    -> normalize_sentences (parallel) -> build_required_chars / replace_rare_chars
    -> PieceLearner.learn -> serialize -> self-test -> save
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from piece_trainer.schema.model_proto import ModelProto, TrainStats
from piece_trainer.schema.trainer_spec import NormalizerSpec, TrainerSpec
from .corpus import Sentence, load_sentences, new_load_stats
from .coverage import build_required_chars, replace_rare_chars
from .errors import ConfigError
from .learners import LEARNERS, PieceLearner, SelfTestEncoder
from .meta_pieces import MetaPieceRegistry
from .normalization import NormalizeFn, Normalizer, normalize_sentences
from .serializer import add_self_test_data, save_model, save_vocab, serialize
from .spec_validation import verify_spec

logger = logging.getLogger(__name__)


def _stage(number: int, title: str) -> None:
    logger.info("=" * 50)
    logger.info(f"STAGE {number}: {title}")
    logger.info("=" * 50)


class Trainer:
    """
    Corpus ingestion and vocabulary assembly around a pluggable piece learner.

    The spec is validated and meta piece ids are allocated on construction,
    so configuration errors surface before any file is read.
    """

    def __init__(self,
                 trainer_spec: TrainerSpec,
                 normalizer_spec: Optional[NormalizerSpec] = None,
                 learner: Optional[PieceLearner] = None,
                 encoder: Optional[SelfTestEncoder] = None,
                 normalize: Optional[NormalizeFn] = None):
        verify_spec(trainer_spec)
        self.trainer_spec = trainer_spec
        self.normalizer_spec = normalizer_spec or NormalizerSpec()
        self.meta_pieces = MetaPieceRegistry.build(trainer_spec)

        default_learner, default_encoder = LEARNERS.get(trainer_spec.model_type, (None, None))
        self.learner = learner if learner is not None else (default_learner() if default_learner else None)
        self.encoder = encoder if encoder is not None else (default_encoder() if default_encoder else None)
        self.normalize = normalize if normalize is not None else Normalizer(self.normalizer_spec)

        self.sentences: List[Sentence] = []
        self.self_test_samples: List[str] = []
        self.required_chars: Dict[str, int] = {}
        self.coverage = 0.0
        self.stats = new_load_stats()

    def load_sentences(self) -> List[Sentence]:
        """
        Load, sample, normalize and coverage-filter the corpus.

        After this call ``sentences`` holds the prepared corpus and
        ``required_chars`` the characters every vocabulary must contain.
        """
        spec = self.trainer_spec
        self.stats = new_load_stats()

        _stage(1, "CORPUS LOADING")
        sentences, self.self_test_samples = load_sentences(spec, self.stats)

        _stage(2, "NORMALIZATION")
        sentences = normalize_sentences(
            sentences, self.normalize, self.meta_pieces.texts(), spec.num_threads, self.stats
        )

        _stage(3, "CHARACTER COVERAGE")
        self.required_chars, self.coverage = build_required_chars(sentences, spec, len(self.meta_pieces))
        self.sentences = replace_rare_chars(sentences, self.required_chars)

        logger.info(f"Done! preprocessed {len(self.sentences):,} sentences.")
        return self.sentences

    def train(self) -> ModelProto:
        """Run the whole pipeline and return the assembled model (not yet written)."""
        if self.learner is None:
            raise ConfigError(
                "model_type",
                f"no built-in piece learner for model_type={self.trainer_spec.model_type}; pass learner="
            )
        start_time = time.time()
        self.load_sentences()

        _stage(4, "PIECE LEARNING")
        learned = self.learner.learn(self.sentences, self.required_chars, self.trainer_spec, self.meta_pieces)

        spec = self.trainer_spec
        if spec.use_all_vocab:
            vocab_size = len(learned) + len(self.meta_pieces)
            last_id = max(self.meta_pieces)
            if last_id >= vocab_size:
                raise ConfigError(
                    "use_all_vocab",
                    f"{self.meta_pieces.get(last_id).piece} is registered at id {last_id} but the full "
                    f"vocabulary only has {vocab_size} pieces; lower its id or disable use_all_vocab"
                )
            spec = spec.model_copy(update={"vocab_size": vocab_size})

        _stage(5, "MODEL ASSEMBLY")
        model = serialize(spec, self.normalizer_spec, self.meta_pieces, learned)

        if self.self_test_samples:
            if self.encoder is None:
                logger.warning(f"No self-test encoder for model_type={spec.model_type}; "
                               f"dropping {len(self.self_test_samples)} self-test samples")
            else:
                add_self_test_data(model, self.self_test_samples, self.encoder)

        logger.info(f"Training finished in {time.time() - start_time:.2f}s: {len(model.pieces)} pieces")
        return model

    def train_stats(self, model: ModelProto) -> TrainStats:
        return TrainStats(
            total_lines=self.stats['total'],
            loaded_sentences=len(self.sentences),
            too_long_sentences=self.stats['too_long'],
            reserved_sentences=self.stats['reserved'],
            empty_after_normalization=self.stats.get('empty_after_normalization', 0),
            self_test_samples=len(model.self_test_data),
            alphabet_size=len(self.required_chars),
            character_coverage=self.coverage,
            meta_pieces=len(self.meta_pieces),
            total_pieces=len(model.pieces),
        )

    def save(self, model: ModelProto, model_prefix: Optional[str] = None) -> Tuple[Path, Path]:
        """Write <prefix>.model, <prefix>.vocab and <prefix>.stats.json."""
        prefix = model_prefix or self.trainer_spec.model_prefix
        _stage(6, "SERIALIZATION")
        model_path = save_model(model, Path(f"{prefix}.model"))
        vocab_path = save_vocab(model, Path(f"{prefix}.vocab"))

        stats_path = Path(f"{prefix}.stats.json")
        logger.info(f"Saving training statistics to: {stats_path}")
        with open(stats_path, "w", encoding="utf-8") as f:
            f.write(self.train_stats(model).model_dump_json(indent=2))
        return model_path, vocab_path
