"""
Validation of trainer specs before any training work starts.
"""

import logging

from piece_trainer.schema.trainer_spec import TrainerSpec
from piece_trainer.schema.validation import ValidationResult
from .constants import (
    MIN_CHARACTER_COVERAGE,
    MAX_CHARACTER_COVERAGE,
    MAX_SENTENCEPIECE_LENGTH,
    MAX_NUM_SUB_ITERATIONS,
    MAX_NUM_THREADS,
    MAX_SELF_TEST_SAMPLE_SIZE,
    MIN_SHRINKING_FACTOR,
    MAX_SHRINKING_FACTOR,
    MIN_SENTENCE_LENGTH,
    MAX_SENTENCE_LENGTH,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)


def _check_range(result: ValidationResult, spec: TrainerSpec, field: str, minval, maxval) -> None:
    value = getattr(spec, field)
    if not (minval <= value <= maxval):
        result.add(field, f"{field} must be in [{minval}, {maxval}], got {value}")


def check_spec(spec: TrainerSpec) -> ValidationResult:
    """
    Collect every validation issue of a trainer spec.

    Errors are reported in a fixed order so the first error is stable;
    deprecated fields are reported as warnings.

    Args:
        spec: Trainer spec to check

    Returns:
        ValidationResult with all issues found
    """
    result = ValidationResult()

    if not spec.model_prefix:
        result.add("model_prefix", "model_prefix must not be empty")
    if len(spec.input) == 0:
        result.add("input", "at least one input file is required")
    if spec.vocab_size <= 0:
        result.add("vocab_size", f"vocab_size must be > 0, got {spec.vocab_size}")

    if spec.is_statistical and spec.use_all_vocab:
        result.add("use_all_vocab", "use_all_vocab=true is valid for word/char models only")

    if spec.mining_sentence_size is not None:
        result.add("mining_sentence_size", "mining_sentence_size is deprecated. Use input_sentence_size", "warning")
    if spec.training_sentence_size is not None:
        result.add("training_sentence_size", "training_sentence_size is deprecated. Use input_sentence_size", "warning")

    _check_range(result, spec, "character_coverage", MIN_CHARACTER_COVERAGE, MAX_CHARACTER_COVERAGE)
    _check_range(result, spec, "max_sentencepiece_length", 1, MAX_SENTENCEPIECE_LENGTH)
    _check_range(result, spec, "num_sub_iterations", 1, MAX_NUM_SUB_ITERATIONS)
    _check_range(result, spec, "num_threads", 1, MAX_NUM_THREADS)
    _check_range(result, spec, "self_test_sample_size", 0, MAX_SELF_TEST_SAMPLE_SIZE)
    _check_range(result, spec, "shrinking_factor", MIN_SHRINKING_FACTOR, MAX_SHRINKING_FACTOR)
    _check_range(result, spec, "max_sentence_length", MIN_SENTENCE_LENGTH, MAX_SENTENCE_LENGTH)

    for field in ("unk_piece", "bos_piece", "eos_piece", "pad_piece"):
        if not getattr(spec, field):
            result.add(field, f"{field} must not be empty")

    # Pieces are written one per line to the vocab file.
    symbols = [(field, getattr(spec, field)) for field in ("unk_piece", "bos_piece", "eos_piece", "pad_piece")]
    symbols += [("control_symbols", s) for s in spec.control_symbols]
    symbols += [("user_defined_symbols", s) for s in spec.user_defined_symbols]
    for field, symbol in symbols:
        if "\n" in symbol or "\r" in symbol:
            result.add(field, f"{field} must not contain line breaks, got {symbol!r}")

    return result


def verify_spec(spec: TrainerSpec) -> None:
    """
    Validate a trainer spec, raising on the first error.

    Raises:
        ConfigError: naming the offending field
    """
    result = check_spec(spec)
    for issue in result.warnings:
        logger.warning(issue.message)
    if not result.is_valid:
        first = result.errors[0]
        raise ConfigError(first.field, first.message)
