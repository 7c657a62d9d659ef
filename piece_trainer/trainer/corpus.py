"""
Corpus loading.

Streams sentences from the configured input files in order, line by line,
applying the per-line format rules, and feeds them through the self-test
sampler and the SentenceSelector. Only the selected sentences are kept in
memory.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from piece_trainer.schema.trainer_spec import TrainerSpec
from .constants import UNK_CHAR
from .errors import CorpusFormatError
from .sampling import ReservoirSampler, Selection, SentenceSelector

logger = logging.getLogger(__name__)


@dataclass
class Sentence:
    text: str
    freq: int = 1


def new_load_stats() -> Dict[str, int]:
    return {'total': 0, 'accepted': 0, 'empty': 0, 'too_long': 0, 'reserved': 0}


def _parse_tsv_line(line: str, path: str, line_no: int) -> Tuple[str, int]:
    fields = line.split("\t")
    if len(fields) != 2:
        raise CorpusFormatError(f"Input format must be: word <tab> freq. {line!r}", path, line_no)
    word, freq_text = fields
    freq_text = freq_text.strip()
    # int() alone would also take "+3", "1_000" and non-ASCII digits.
    if not (freq_text.isascii() and freq_text.isdigit()):
        raise CorpusFormatError(f"Frequency must be an integer: {freq_text!r}", path, line_no)
    freq = int(freq_text)
    if freq < 1:
        raise CorpusFormatError(f"Frequency must be >= 1, got {freq}", path, line_no)
    return word, freq


def iter_corpus_lines(spec: TrainerSpec, stats: Optional[Dict[str, int]] = None) -> Iterator[Tuple[str, int]]:
    """
    Lazily yield (sentence, freq) candidates from every input file.

    Empty lines, lines longer than max_sentence_length (in UTF-8 bytes) and
    lines containing the reserved unknown marker are dropped and counted in
    ``stats``.

    Args:
        spec: Trainer spec (input, input_format, max_sentence_length)
        stats: Optional counter dict updated in place

    Raises:
        CorpusFormatError: for malformed tsv lines
        FileNotFoundError: if an input file does not exist
    """
    if stats is None:
        stats = new_load_stats()

    for filename in spec.input:
        path = Path(filename)
        logger.info(f"Loading corpus: {path}")
        if not path.exists():
            logger.error(f"Input file does not exist: {path}")
            raise FileNotFoundError(f"Input file not found: {path}")

        with open(path, "r", encoding="utf-8", errors="surrogateescape") as f:
            for line_no, line in enumerate(f, 1):
                sentence = line.rstrip("\r\n")
                stats['total'] += 1
                if not sentence:
                    stats['empty'] += 1
                    continue

                freq = 1
                if spec.is_tsv:
                    sentence, freq = _parse_tsv_line(sentence, str(path), line_no)
                    if not sentence:
                        stats['empty'] += 1
                        continue

                length = len(sentence.encode("utf-8", errors="surrogateescape"))
                if length > spec.max_sentence_length:
                    if stats['too_long'] == 0:
                        logger.warning(f"Found too long line ({length} > {spec.max_sentence_length}).")
                        logger.warning("Too long lines are skipped in the training.")
                        logger.warning("The maximum length can be changed with max_sentence_length=<size>.")
                    stats['too_long'] += 1
                    continue

                if UNK_CHAR in sentence:
                    logger.info(f"Reserved chars are found. Skipped: {sentence[:80]}")
                    stats['reserved'] += 1
                    continue

                stats['accepted'] += 1
                yield sentence, freq


def load_sentences(spec: TrainerSpec,
                   stats: Optional[Dict[str, int]] = None) -> Tuple[List[Sentence], List[str]]:
    """
    Run the loader and selector over the whole input.

    Every accepted line is first offered to the self-test sampler, then to the
    SentenceSelector. When the selector signals that its head limit is reached
    the remaining lines and files are not read.

    Returns:
        Tuple of (selected sentences, self-test samples)
    """
    if stats is None:
        stats = new_load_stats()

    selector = SentenceSelector(spec)
    test_sampler: ReservoirSampler[str] = ReservoirSampler(spec.self_test_sample_size)

    lines = iter_corpus_lines(spec, stats)
    try:
        for sentence, freq in lines:
            test_sampler.add(sentence)
            if selector.add(Sentence(sentence, freq)) is Selection.ACCEPT_AND_STOP:
                break
    finally:
        lines.close()

    selector.finish()
    if stats['too_long'] > 0:
        logger.info(f"Skipped {stats['too_long']} too long sentences.")
    if test_sampler.sampled:
        logger.info(f"Loaded {len(test_sampler.sampled)} test sentences")

    return list(selector.sentences), list(test_sampler.sampled)
