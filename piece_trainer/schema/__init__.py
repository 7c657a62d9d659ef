# piece_trainer/schema/__init__.py
from .trainer_spec import TrainerSpec, NormalizerSpec
from .model_proto import ModelPiece, ModelProto, PieceType, SelfTestSample, TrainStats
from .validation import ValidationResult, ValidationIssue
