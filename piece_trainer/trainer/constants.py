"""
Reserved symbols and numeric limits shared by the training stages.
"""

# Whitespace marker (U+2581). Spaces are escaped to this during normalization.
WS_CHAR = "▁"

# Unknown-character marker (U+2585). Rare characters are rewritten to this and
# the raw corpus must not contain it.
UNK_CHAR = "▅"

# Boundary marker substituted for meta piece occurrences. Never a required char.
UPP_BOUNDARY_CHAR = "\t"

# Fixed seed for reservoir sampling so sampled corpora are reproducible.
SAMPLING_SEED = 12345678

# Loading this many sentences is flagged as advisory; progress is logged at the same stride.
TOO_BIG_SENTENCES_SIZE = 1_000_000

# Range limits checked by spec validation.
MIN_CHARACTER_COVERAGE = 0.98
MAX_CHARACTER_COVERAGE = 1.0
MAX_SENTENCEPIECE_LENGTH = 512
MAX_NUM_SUB_ITERATIONS = 10
MAX_NUM_THREADS = 128
MAX_SELF_TEST_SAMPLE_SIZE = 1000
MIN_SHRINKING_FACTOR = 0.5
MAX_SHRINKING_FACTOR = 0.95
MIN_SENTENCE_LENGTH = 10
MAX_SENTENCE_LENGTH = 1 << 30
