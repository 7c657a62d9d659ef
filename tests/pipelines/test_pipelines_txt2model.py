"""
Test suite for piece_trainer.pipelines.txt2model module.

Tests the command line pipeline including:
- Argument parsing
- YAML hyperparameter loading and spec construction
- Full training runs writing model, vocab, stats and log files
- Exit codes for invalid configurations and failed training
"""

import logging
import shutil
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from rich.logging import RichHandler

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from piece_trainer.pipelines import txt2model
from piece_trainer.schema.trainer_spec import NormalizerSpec, TrainerSpec
from piece_trainer.trainer.serializer import load_model


class TestTxt2ModelPipeline:
    """Test txt2model pipeline functionality."""

    def setup_method(self):
        self.tmp_dir = Path(tempfile.mkdtemp())
        self.output_dir = self.tmp_dir / "output"
        self.corpus = self.tmp_dir / "corpus.txt"
        self.corpus.write_text("I have a pen\nI have an apple\napple pen\n", encoding="utf-8")
        self.config = self.tmp_dir / "txt2model.yaml"
        self._write_config({
            "trainer": {"model_type": "char", "vocab_size": 100, "num_threads": 2},
            "normalizer": {"name": "nmt_nfkc"},
        })

    def teardown_method(self):
        # Close and remove all logging handlers to avoid file locks on Windows
        for handler in logging.root.handlers[:]:
            handler.close()
            logging.root.removeHandler(handler)
        txt2model.logger = None
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _write_config(self, data):
        with open(self.config, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f)

    def _argv(self, *extra):
        return ["-i", str(self.corpus), "-o", str(self.output_dir), "-c", str(self.config), *extra]

    def test_parse_args_required(self):
        with patch('sys.argv', ['txt2model', '-i', 'a.txt', 'b.txt', '-o', 'out']):
            args = txt2model.parse_args()
        assert args.inputs == [Path('a.txt'), Path('b.txt')]
        assert args.outdir == Path('out')
        assert args.config == Path("config/pipelines/txt2model.yaml")
        assert args.model_prefix == "spm"
        assert args.log_level == "INFO"

    def test_parse_args_missing_input(self):
        with pytest.raises(SystemExit):
            txt2model.parse_args(['-o', 'out'])

    def test_load_hparams(self):
        h = txt2model.load_hparams(self.config)
        assert h["trainer"]["vocab_size"] == 100

    def test_load_hparams_missing_file(self):
        with pytest.raises(FileNotFoundError):
            txt2model.load_hparams(self.tmp_dir / "missing.yaml")

    def test_load_hparams_rejects_non_mapping_section(self):
        self._write_config({"trainer": ["vocab_size", 100]})
        with pytest.raises(ValueError, match="trainer"):
            txt2model.load_hparams(self.config)

    def test_build_specs(self):
        h = txt2model.load_hparams(self.config)
        trainer_spec, normalizer_spec = txt2model.build_specs(h, [self.corpus], self.output_dir, "spm")
        assert isinstance(trainer_spec, TrainerSpec)
        assert isinstance(normalizer_spec, NormalizerSpec)
        assert trainer_spec.input == [str(self.corpus)]
        assert trainer_spec.model_prefix == str(self.output_dir / "spm")
        assert trainer_spec.model_type == "char"

    def test_build_specs_empty_sections(self):
        trainer_spec, normalizer_spec = txt2model.build_specs({}, [self.corpus], self.output_dir, "spm")
        assert trainer_spec.vocab_size == TrainerSpec().vocab_size
        assert normalizer_spec == NormalizerSpec()

    def test_shipped_config_is_valid(self):
        config = Path(__file__).resolve().parents[2] / "config" / "pipelines" / "txt2model.yaml"
        h = txt2model.load_hparams(config)
        trainer_spec, _ = txt2model.build_specs(h, [self.corpus], self.output_dir, "spm")
        assert trainer_spec.model_type == "char"

    def test_main_trains_and_saves(self):
        txt2model.main(self._argv("-p", "tiny"))

        model = load_model(self.output_dir / "tiny.model")
        assert len(model.pieces) == 12
        assert (self.output_dir / "tiny.vocab").exists()
        assert (self.output_dir / "tiny.stats.json").exists()
        assert (self.output_dir / "tiny.log").exists()

    def test_main_invalid_config_field(self):
        self._write_config({"trainer": {"vocab_sise": 100}})
        with pytest.raises(SystemExit) as exc_info:
            txt2model.main(self._argv())
        assert exc_info.value.code == 1

    def test_main_training_error_exits(self):
        self._write_config({"trainer": {"model_type": "char", "character_coverage": 0.5}})
        with pytest.raises(SystemExit) as exc_info:
            txt2model.main(self._argv())
        assert exc_info.value.code == 1
        assert not (self.output_dir / "spm.model").exists()

    def test_main_logs_failure(self):
        self.corpus.write_text("x" * 100 + "\n", encoding="utf-8")
        self._write_config({"trainer": {"model_type": "char", "max_sentence_length": 20}})
        with pytest.raises(SystemExit):
            txt2model.main(self._argv())
        log = (self.output_dir / "spm.log").read_text(encoding="utf-8")
        assert "VocabularyTooSmallError" in log

    def test_parse_args_rejects_unknown_log_level(self):
        with pytest.raises(SystemExit):
            txt2model.parse_args(self._argv("--log-level", "VERBOSE"))

    def test_main_log_level_applies_to_console_only(self):
        txt2model.main(self._argv("--log-level", "WARNING"))

        console = [h for h in logging.root.handlers if isinstance(h, RichHandler)]
        assert len(console) == 1
        assert console[0].level == logging.WARNING

        log = (self.output_dir / "spm.log").read_text(encoding="utf-8")
        assert "trainer_spec {" in log
        assert "vocab_size: 100" in log
        assert "Training complete" in log
