"""
Streaming sentence selection.

ReservoirSampler keeps a uniform random fixed-size sample of a stream of
unknown length (Algorithm R). SentenceSelector applies the trainer's
input_sentence_size / shuffle_input_sentence policy on top of it.
"""

import logging
import random
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from piece_trainer.schema.trainer_spec import TrainerSpec
from .constants import SAMPLING_SEED, TOO_BIG_SENTENCES_SIZE

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReservoirSampler(Generic[T]):
    """
    Uniform fixed-size sample of a stream.

    The first ``size`` items fill the reservoir; item number ``k`` (1-based)
    afterwards replaces a random slot with probability ``size / k``. A fixed
    seed makes the sample reproducible for the same stream order.
    """

    def __init__(self, size: int, seed: int = SAMPLING_SEED):
        self.size = size
        self._rng = random.Random(seed)
        self._sampled: List[T] = []
        self._total = 0

    def add(self, item: T) -> bool:
        """Offer an item; returns True if it is (currently) part of the sample."""
        if self.size <= 0:
            return False
        self._total += 1
        if len(self._sampled) < self.size:
            self._sampled.append(item)
            return True
        n = self._rng.randrange(self._total)
        if n < len(self._sampled):
            self._sampled[n] = item
            return True
        return False

    @property
    def sampled(self) -> List[T]:
        return self._sampled

    @property
    def total_size(self) -> int:
        return self._total


class Selection(Enum):
    ACCEPT = "accept"
    ACCEPT_AND_STOP = "accept_and_stop"
    REJECT = "reject"


class SentenceSelector:
    """
    Decide, sentence by sentence, what enters the training corpus.

    - no limit: keep everything
    - limit with shuffling: reservoir-sample the whole stream
    - limit without shuffling: keep the first N, then signal the caller to stop
    """

    def __init__(self, spec: TrainerSpec, seed: int = SAMPLING_SEED):
        self.limit = spec.input_sentence_size
        self._sentences: List[Any] = []
        self._sampler: Optional[ReservoirSampler] = None
        if self.limit > 0:
            if spec.shuffle_input_sentence:
                self._sampler = ReservoirSampler(self.limit, seed)
            else:
                logger.info(f"First {self.limit} sentences are selected. Remaining sentences are discarded.")

    def add(self, sentence: Any) -> Selection:
        if self._sampler is not None:
            kept = self._sampler.add(sentence)
            result = Selection.ACCEPT if kept else Selection.REJECT
        else:
            self._sentences.append(sentence)
            result = Selection.ACCEPT
            if self.limit > 0 and len(self._sentences) >= self.limit:
                result = Selection.ACCEPT_AND_STOP

        if self.total_size > 0 and self.total_size % TOO_BIG_SENTENCES_SIZE == 0:
            logger.info(f"Loaded {self.total_size:,} lines")
        return result

    def finish(self) -> None:
        """Log the selection summary and warn about very large corpora."""
        loaded = len(self.sentences)
        if loaded > TOO_BIG_SENTENCES_SIZE:
            logger.warning(f"Too many sentences are loaded! ({loaded:,}), which may slow down training.")
            logger.warning("Consider using input_sentence_size=<size> and shuffle_input_sentence=true.")
            logger.warning("They allow to randomly sample <size> sentences from the entire corpus.")
        if loaded == self.total_size:
            logger.info(f"Loaded all {loaded:,} sentences")
        else:
            logger.info(f"Sampled {loaded:,} sentences from {self.total_size:,} sentences.")

    @property
    def sentences(self) -> List[Any]:
        if self._sampler is not None:
            return self._sampler.sampled
        return self._sentences

    @property
    def total_size(self) -> int:
        if self._sampler is not None:
            return self._sampler.total_size
        return len(self._sentences)
