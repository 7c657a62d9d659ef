"""
Parallel normalization stage.

Every selected sentence is passed through a normalization function and then
through a longest-match substitution that rewrites meta piece texts to the
boundary marker. Work is split statically across ``num_threads`` workers:
worker ``n`` owns indices ``n, n + T, n + 2T, ...`` so no two workers touch
the same slot and no locking is needed.
"""

import logging
import re
import unicodedata
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional

from piece_trainer.schema.trainer_spec import NormalizerSpec
from .constants import UPP_BOUNDARY_CHAR, WS_CHAR
from .corpus import Sentence
from .errors import NormalizationInvariantError

logger = logging.getLogger(__name__)

NormalizeFn = Callable[[str], str]


class Normalizer:
    """
    Default normalization capability built from a NormalizerSpec.

    Rules: ``identity`` (no Unicode folding), ``nfkc``, ``nmt_nfkc`` (NFKC
    plus control-character removal and whitespace unification), and the
    ``_cf`` variants which additionally casefold. Whitespace handling follows
    the spec flags: collapse runs of spaces, add the dummy prefix, escape
    spaces to the whitespace marker.
    """

    def __init__(self, spec: Optional[NormalizerSpec] = None):
        self.spec = spec or NormalizerSpec()

    def _apply_rule(self, text: str) -> str:
        name = self.spec.name
        if name == "identity":
            return text
        text = unicodedata.normalize("NFKC", text)
        if name.startswith("nmt_"):
            chars = []
            for c in text:
                if c.isspace():
                    chars.append(" ")
                elif unicodedata.category(c) == "Cc":
                    continue
                else:
                    chars.append(c)
            text = "".join(chars)
        if name.endswith("_cf"):
            text = text.casefold()
        return text

    def normalize(self, text: str) -> str:
        text = self._apply_rule(text)
        if self.spec.remove_extra_whitespaces:
            text = " ".join(t for t in text.split(" ") if t)
        if not text:
            return ""
        if self.spec.add_dummy_prefix:
            text = " " + text
        if self.spec.escape_whitespaces:
            text = text.replace(" ", WS_CHAR)
        return text

    __call__ = normalize


class PrefixMatcher:
    """Longest-match global substitution over a fixed set of strings."""

    def __init__(self, texts: Iterable[str]):
        self.texts = sorted({t for t in texts if t}, key=lambda t: (-len(t), t))
        # Alternatives are tried left to right, so longer texts must come first.
        self._pattern = re.compile("|".join(re.escape(t) for t in self.texts)) if self.texts else None

    def global_replace(self, text: str, replacement: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(lambda _: replacement, text)


def _normalize_stride(sentences: List[Sentence], worker_id: int, num_threads: int,
                      normalize: NormalizeFn, matcher: PrefixMatcher) -> int:
    count = 0
    for i in range(worker_id, len(sentences), num_threads):
        s = sentences[i]
        sentences[i] = Sentence(matcher.global_replace(normalize(s.text), UPP_BOUNDARY_CHAR), s.freq)
        count += 1
    return count


def normalize_sentences(sentences: List[Sentence],
                        normalize: NormalizeFn,
                        meta_texts: Iterable[str],
                        num_threads: int = 1,
                        stats: Optional[Dict[str, int]] = None) -> List[Sentence]:
    """
    Normalize every sentence in parallel and drop the ones that become empty.

    Args:
        sentences: Selected sentences; slots are rewritten in place by the workers
        normalize: Normalization function text -> text
        meta_texts: Meta piece texts rewritten to the boundary marker
        num_threads: Number of workers (one static stride each)
        stats: Optional counter dict; 'empty_after_normalization' is updated

    Returns:
        New list of the non-empty normalized sentences, in the original order

    Raises:
        NormalizationInvariantError: if a normalized sentence contains a raw space
    """
    meta_texts = list(meta_texts)
    for text in meta_texts:
        logger.debug(f"Adding meta_piece: {text}")
    matcher = PrefixMatcher(meta_texts)

    logger.info(f"Normalizing {len(sentences):,} sentences with {num_threads} workers...")
    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        futures = [
            executor.submit(_normalize_stride, sentences, n, num_threads, normalize, matcher)
            for n in range(num_threads)
        ]
        # Leaving the executor joins every worker; result() re-raises worker failures.
        processed = sum(f.result() for f in futures)
    logger.debug(f"Normalized {processed:,} sentences")

    for i, s in enumerate(sentences):
        if " " in s.text:
            raise NormalizationInvariantError(
                f"Normalized string must not include spaces (sentence {i}: {s.text[:80]!r})"
            )

    kept = [s for s in sentences if s.text]
    removed = len(sentences) - len(kept)
    if removed:
        logger.info(f"Removed {removed} sentences that normalized to empty text")
    if stats is not None:
        stats['empty_after_normalization'] = stats.get('empty_after_normalization', 0) + removed
    return kept
