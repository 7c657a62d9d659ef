"""
Identifier allocation for meta pieces.

Meta pieces are the reserved vocabulary entries (unknown / begin / end / pad)
plus configured control and user defined symbols. The registry is built once
from a TrainerSpec through an ordered sequence of insertion rules:

1. reserved symbols at their configured ids (negative ids disable a symbol);
2. control symbols, then user defined symbols, in configuration order. A symbol
   whose text equals the begin/end/pad text re-categorizes that existing entry
   when the reserved symbol has a non-negative id; otherwise it takes the
   smallest unused id.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set, Tuple

from piece_trainer.schema.model_proto import PieceType
from piece_trainer.schema.trainer_spec import TrainerSpec
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetaPiece:
    piece: str
    type: PieceType


class MetaPieceRegistry:
    """Immutable mapping id -> MetaPiece once built."""

    def __init__(self, vocab_size: int, unk_piece: str):
        self.vocab_size = vocab_size
        self.unk_piece = unk_piece
        self._pieces: Dict[int, MetaPiece] = {}
        self._next_id = 0

    @classmethod
    def build(cls, spec: TrainerSpec) -> "MetaPieceRegistry":
        """
        Allocate ids for every meta piece of a spec.

        Raises:
            ConfigError: on out-of-range or duplicate ids, duplicate symbols,
                a symbol redefining the unknown piece, or a missing unknown piece
        """
        registry = cls(spec.vocab_size, spec.unk_piece)

        registry._insert_reserved("unk_id", spec.unk_id, spec.unk_piece)
        registry._insert_reserved("bos_id", spec.bos_id, spec.bos_piece)
        registry._insert_reserved("eos_id", spec.eos_id, spec.eos_piece)
        registry._insert_reserved("pad_id", spec.pad_id, spec.pad_piece)

        if not registry.has_unknown:
            raise ConfigError("unk_id", f"{spec.unk_piece} must be defined.")

        # Reserved symbols that may be re-categorized by a control/user symbol.
        aliases = {}
        for text, id_ in ((spec.bos_piece, spec.bos_id),
                          (spec.eos_piece, spec.eos_id),
                          (spec.pad_piece, spec.pad_id)):
            if id_ >= 0:
                aliases.setdefault(text, id_)

        seen: Set[str] = set()
        for w in spec.control_symbols:
            registry._insert_symbol("control_symbols", w, "control", seen, aliases)
        for w in spec.user_defined_symbols:
            registry._insert_symbol("user_defined_symbols", w, "user_defined", seen, aliases)

        logger.debug(f"Allocated {len(registry)} meta pieces: "
                     + ", ".join(f"{i}={m.piece}" for i, m in registry.items()))
        return registry

    def _insert_reserved(self, field: str, id_: int, piece: str) -> None:
        if id_ < 0:
            return
        if id_ >= self.vocab_size:
            raise ConfigError(field, f"id {id_} is out of range for vocab_size={self.vocab_size}")
        if id_ in self._pieces:
            raise ConfigError(field, f"id {id_} is already used by {self._pieces[id_].piece}")
        if piece == self.unk_piece and self.has_unknown:
            raise ConfigError(field, f"{piece} is already defined as the unknown piece")
        if piece in self.texts():
            raise ConfigError(field, f"{piece} is already defined")
        piece_type: PieceType = "unknown" if piece == self.unk_piece else "control"
        self._pieces[id_] = MetaPiece(piece, piece_type)

    def _insert_symbol(self, field: str, piece: str, piece_type: PieceType,
                       seen: Set[str], aliases: Dict[str, int]) -> None:
        if piece in seen:
            raise ConfigError(field, f"{piece} is already defined.")
        seen.add(piece)

        if piece == self.unk_piece:
            raise ConfigError(field, f"{self.unk_piece} must not be defined with control_symbols and user_defined_symbols.")

        if piece in aliases:
            id_ = aliases[piece]
            self._pieces[id_] = MetaPiece(piece, piece_type)
            return

        while self._next_id in self._pieces:
            self._next_id += 1
        if self._next_id >= self.vocab_size:
            raise ConfigError(field, f"no free id below vocab_size={self.vocab_size} for {piece}")
        self._pieces[self._next_id] = MetaPiece(piece, piece_type)

    @property
    def has_unknown(self) -> bool:
        return any(m.type == "unknown" for m in self._pieces.values())

    @property
    def pieces(self) -> Dict[int, MetaPiece]:
        return dict(sorted(self._pieces.items()))

    def texts(self) -> Set[str]:
        return {m.piece for m in self._pieces.values()}

    def items(self) -> List[Tuple[int, MetaPiece]]:
        return sorted(self._pieces.items())

    def get(self, id_: int) -> Optional[MetaPiece]:
        return self._pieces.get(id_)

    def __contains__(self, id_: int) -> bool:
        return id_ in self._pieces

    def __len__(self) -> int:
        return len(self._pieces)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._pieces))
