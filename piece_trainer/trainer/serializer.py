"""
Model assembly and serialization.

Meta pieces and learned pieces are merged into a single id-ordered piece list,
re-validated, and written as two artifacts:

- ``<prefix>.model``: binary record (header + JSON payload of ModelProto)
- ``<prefix>.vocab``: one ``piece<TAB>score`` line per piece, in id order
"""

import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import List, Sequence, Set, Tuple

from piece_trainer.schema.model_proto import ModelPiece, ModelProto, SelfTestSample
from piece_trainer.schema.trainer_spec import NormalizerSpec, TrainerSpec
from .constants import UNK_CHAR
from .errors import SerializationError
from .meta_pieces import MetaPieceRegistry

logger = logging.getLogger(__name__)

MODEL_MAGIC = b"SPTM"
MODEL_FORMAT_VERSION = 1
_HEADER = struct.Struct("<4sIQ")  # magic, format version, payload length


def _check_piece(piece: str, seen: Set[str]) -> None:
    try:
        piece.encode("utf-8")
    except UnicodeEncodeError:
        raise SerializationError(f"{piece!r} is not structurally valid UTF-8") from None
    if not piece:
        raise SerializationError("Empty piece is not allowed")
    if UNK_CHAR in piece:
        raise SerializationError(f"{piece!r} contains the reserved unknown marker {UNK_CHAR!r}")
    if " " in piece:
        raise SerializationError(f"{piece!r} contains a raw space")
    if "\n" in piece or "\r" in piece:
        raise SerializationError(f"{piece!r} contains a line break and cannot be listed in a vocab file")
    if piece in seen:
        raise SerializationError(f"{piece} is already defined")
    seen.add(piece)


def serialize(spec: TrainerSpec,
              normalizer_spec: NormalizerSpec,
              meta_pieces: MetaPieceRegistry,
              learned_pieces: Sequence[Tuple[str, float]]) -> ModelProto:
    """
    Assemble the final piece list.

    For every id in [0, vocab_size) the meta piece registered at that id is
    emitted (score 0.0), otherwise the next learned piece in order.

    Args:
        spec: Trainer spec that produced the pieces
        normalizer_spec: Normalizer spec recorded in the model
        meta_pieces: Registry of meta pieces
        learned_pieces: (piece, score) pairs ordered by the learner

    Returns:
        ModelProto whose trainer_spec records the effective vocab_size

    Raises:
        SerializationError: on invalid, empty or duplicate pieces, meta pieces
            outside vocab_size, learned pieces left over, or a piece count
            incompatible with the vocabulary limit
    """
    seen: Set[str] = set()
    pieces: List[ModelPiece] = []
    fid = 0
    for id_ in range(spec.vocab_size):
        meta = meta_pieces.get(id_)
        if meta is not None:
            if meta.type == "normal":
                raise SerializationError(f"Meta piece {meta.piece} must not be of type normal")
            if len(pieces) != id_:
                raise SerializationError(
                    f"Meta piece {meta.piece} is registered at id {id_} but would be emitted at id {len(pieces)}"
                )
            _check_piece(meta.piece, seen)
            pieces.append(ModelPiece(piece=meta.piece, score=0.0, type=meta.type))
        elif fid < len(learned_pieces):
            piece, score = learned_pieces[fid]
            fid += 1
            _check_piece(piece, seen)
            pieces.append(ModelPiece(piece=piece, score=score, type="normal"))

    missing = [f"{m.piece}@{i}" for i, m in meta_pieces.items()
               if i >= len(pieces) or pieces[i].piece != m.piece]
    if missing:
        raise SerializationError(
            f"Meta pieces {', '.join(missing)} were not emitted within vocab_size={spec.vocab_size}"
        )

    if fid != len(learned_pieces):
        raise SerializationError(
            f"Only {fid} of {len(learned_pieces)} learned pieces fit into vocab_size={spec.vocab_size}"
        )

    if not spec.hard_vocab_limit or spec.model_type == "char":
        if len(pieces) > spec.vocab_size or len(seen) > spec.vocab_size:
            raise SerializationError(f"{len(pieces)} pieces exceed vocab_size={spec.vocab_size}")
        spec = spec.model_copy(update={"vocab_size": len(pieces)})
    else:
        if len(pieces) != spec.vocab_size or len(seen) != spec.vocab_size:
            raise SerializationError(
                f"Vocabulary size mismatch: {len(pieces)} pieces emitted, vocab_size={spec.vocab_size}. "
                "Set hard_vocab_limit=false to allow a smaller vocabulary."
            )

    return ModelProto(pieces=pieces, trainer_spec=spec, normalizer_spec=normalizer_spec)


def add_self_test_data(model: ModelProto, samples: Sequence[str], encoder) -> ModelProto:
    """Encode every self-test sample with the finished model and record the expected output."""
    for text in samples:
        tokens = encoder.encode(model, text)
        model.self_test_data.append(SelfTestSample(input=text, expected=" ".join(tokens)))
    logger.info(f"Recorded {len(samples)} self-test samples")
    return model


def save_model(model: ModelProto, path: Path) -> Path:
    """Atomically write the binary model record (temp file + rename)."""
    path = Path(path)
    logger.info(f"Saving model: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = model.model_dump_json().encode("utf-8")

    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(_HEADER.pack(MODEL_MAGIC, MODEL_FORMAT_VERSION, len(payload)))
            f.write(payload)
        Path(tmp_path).replace(path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise
    return path


def load_model(path: Path) -> ModelProto:
    """Read a binary model record written by save_model."""
    data = Path(path).read_bytes()
    if len(data) < _HEADER.size:
        raise SerializationError(f"{path} is too short to be a model file")
    magic, version, length = _HEADER.unpack_from(data)
    if magic != MODEL_MAGIC:
        raise SerializationError(f"{path} is not a model file (magic {magic!r})")
    if version != MODEL_FORMAT_VERSION:
        raise SerializationError(f"Unsupported model format version {version}")
    payload = data[_HEADER.size:]
    if len(payload) != length:
        raise SerializationError(f"{path} is truncated: expected {length} payload bytes, got {len(payload)}")
    return ModelProto.model_validate_json(payload)


def save_vocab(model: ModelProto, path: Path) -> Path:
    """
    Write ``piece<TAB>score`` lines in id order.

    Scores are written with full float precision so load_vocab reproduces them exactly.
    """
    path = Path(path)
    logger.info(f"Saving vocabs: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        for p in model.pieces:
            f.write(f"{p.piece}\t{p.score!r}\n")
    return path


def load_vocab(path: Path) -> List[Tuple[str, float]]:
    """Read a vocab file back into (piece, score) pairs, in id order."""
    entries: List[Tuple[str, float]] = []
    with open(path, "r", encoding="utf-8", newline="\n") as f:
        for line_no, line in enumerate(f, 1):
            line = line.rstrip("\n")
            if not line:
                continue
            piece, sep, score = line.rpartition("\t")
            if not sep:
                raise SerializationError(f"{path}:{line_no}: expected piece<TAB>score, got {line!r}")
            entries.append((piece, float(score)))
    return entries

