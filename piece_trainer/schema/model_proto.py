from typing import List, Literal
from pydantic import BaseModel, Field, ConfigDict

from piece_trainer.schema.trainer_spec import TrainerSpec, NormalizerSpec


PieceType = Literal["normal", "unknown", "control", "user_defined"]


class ModelPiece(BaseModel):
    """
    One entry of the final vocabulary, stored at the position equal to its id.

    Meta pieces (unknown, control, user defined) always carry a score of 0.0;
    learned pieces carry the score assigned by the piece learner.
    """
    piece: str = Field(..., description="Piece surface text")
    score: float = Field(0.0, description="Learner score (log probability for unigram/char models)")
    type: PieceType = Field("normal", description="Piece category")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "piece": "▁the",
                "score": -3.4821,
                "type": "normal"
            }
        }
    )


class SelfTestSample(BaseModel):
    input: str = Field(..., description="Raw sentence sampled from the corpus")
    expected: str = Field(..., description="Space-joined pieces produced by the encoder at training time")


class ModelProto(BaseModel):
    """Serialized model artifact: ordered pieces plus the specs that produced them."""
    pieces: List[ModelPiece] = Field(default_factory=list, description="Pieces in id order")
    trainer_spec: TrainerSpec = Field(default_factory=TrainerSpec, description="Effective trainer spec")
    normalizer_spec: NormalizerSpec = Field(default_factory=NormalizerSpec, description="Normalizer spec used for training")
    self_test_data: List[SelfTestSample] = Field(default_factory=list, description="Regression samples")

    def piece_to_id(self) -> dict:
        return {p.piece: i for i, p in enumerate(self.pieces)}

    @property
    def unk_piece(self) -> str:
        for p in self.pieces:
            if p.type == "unknown":
                return p.piece
        return self.trainer_spec.unk_piece


class TrainStats(BaseModel):
    """Statistics about one training run, written next to the model."""
    total_lines: int = Field(0, description="Candidate lines seen in the input files")
    loaded_sentences: int = Field(0, description="Sentences kept after sampling")
    too_long_sentences: int = Field(0, description="Lines dropped for exceeding max_sentence_length")
    reserved_sentences: int = Field(0, description="Lines dropped for containing the reserved unknown marker")
    empty_after_normalization: int = Field(0, description="Sentences removed because they normalized to empty text")
    self_test_samples: int = Field(0, description="Self-test samples recorded in the model")
    alphabet_size: int = Field(0, description="Number of required characters")
    character_coverage: float = Field(0.0, ge=0.0, le=1.0, description="Achieved character coverage")
    meta_pieces: int = Field(0, description="Number of meta pieces")
    total_pieces: int = Field(0, description="Number of pieces in the final model")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_lines": 3,
                "loaded_sentences": 3,
                "too_long_sentences": 0,
                "reserved_sentences": 0,
                "empty_after_normalization": 0,
                "self_test_samples": 0,
                "alphabet_size": 9,
                "character_coverage": 1.0,
                "meta_pieces": 3,
                "total_pieces": 12
            }
        }
    )
