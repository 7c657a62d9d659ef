#!/usr/bin/env python3
"""
txt2model.py

Train a piece vocabulary from one or more text corpora and emit
<prefix>.model, <prefix>.vocab, <prefix>.stats.json and <prefix>.log under --out.

Hyperparameters come from a YAML file with two sections, ``trainer`` and
``normalizer``, mapped onto TrainerSpec and NormalizerSpec. Input files and
the model prefix are taken from the command line.
"""
import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Tuple

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

# Add the parent directory to the path to import package modules
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from piece_trainer.schema.trainer_spec import TrainerSpec, NormalizerSpec
from piece_trainer.trainer import Trainer, TrainerError
from piece_trainer.trainer.trainer_logging import LOG_LEVELS, get_trainer_logger, log_path_for, log_specs, setup_trainer_logging

# Module-level logger that gets configured in main()
logger = None

c = Console()


def get_logger() -> logging.Logger:
    """Get the module logger, creating a basic one if none exists."""
    global logger
    if logger is None:
        logger = get_trainer_logger('txt2model')
    return logger


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="txt2model",
        description="Train a piece vocabulary from text corpora"
    )
    p.add_argument(
        "-i", "--in",
        dest="inputs", type=Path, nargs="+", required=True,
        help="Input corpus files, read in the order given"
    )
    p.add_argument(
        "-o", "--out",
        dest="outdir", type=Path, required=True,
        help="Output directory for the model, vocab, stats and log files"
    )
    p.add_argument(
        "-c", "--config",
        dest="config", type=Path,
        default=Path("config/pipelines/txt2model.yaml"),
        help="Path to YAML hyperparams (default: config/pipelines/txt2model.yaml)"
    )
    p.add_argument(
        "-p", "--model-prefix",
        dest="model_prefix", default="spm",
        help="Model file name prefix inside --out (default: spm)"
    )
    p.add_argument(
        "--log-level",
        dest="log_level", choices=LOG_LEVELS, default="INFO",
        help="Console log level; <prefix>.log always gets DEBUG (default: INFO)"
    )
    return p.parse_args(argv)


def load_hparams(path: Path) -> dict:
    """Load hyperparameters from YAML configuration file."""
    logger = get_logger()
    logger.info(f"Loading hyperparameters from: {path}")
    if not path.exists():
        logger.error(f"Config not found: {path}")
        raise FileNotFoundError(path)

    with open(path, "r", encoding="utf-8") as f:
        hparams = yaml.safe_load(f) or {}

    for section in ("trainer", "normalizer"):
        if not isinstance(hparams.get(section, {}), dict):
            raise ValueError(f"Config section '{section}' must be a mapping in {path}")

    return hparams


def build_specs(hparams: dict, inputs: List[Path], outdir: Path, model_prefix: str) -> Tuple[TrainerSpec, NormalizerSpec]:
    """Merge YAML hyperparameters with command line inputs into validated specs."""
    trainer_fields = dict(hparams.get("trainer") or {})
    trainer_fields["input"] = [str(p) for p in inputs]
    trainer_fields["model_prefix"] = str(outdir / model_prefix)
    trainer_spec = TrainerSpec(**trainer_fields)
    normalizer_spec = NormalizerSpec(**(hparams.get("normalizer") or {}))
    return trainer_spec, normalizer_spec


def render_specs(trainer_spec: TrainerSpec, normalizer_spec: NormalizerSpec) -> None:
    """Render the effective configuration as a table."""
    tbl = Table(show_header=True, header_style="bold magenta")
    tbl.add_column("Field", style="dim")
    tbl.add_column("Value")

    tbl.add_row("Model Type", trainer_spec.model_type)
    tbl.add_row("Vocab Size", str(trainer_spec.vocab_size))
    tbl.add_row("Hard Vocab Limit", str(trainer_spec.hard_vocab_limit))
    tbl.add_row("Character Coverage", str(trainer_spec.character_coverage))
    tbl.add_row("Input Format", trainer_spec.input_format or "text")
    tbl.add_row("Input Files", str(len(trainer_spec.input)))
    tbl.add_row("Input Sentence Size", str(trainer_spec.input_sentence_size))
    tbl.add_row("Shuffle Input", str(trainer_spec.shuffle_input_sentence))
    tbl.add_row("Threads", str(trainer_spec.num_threads))
    tbl.add_row("Self-Test Samples", str(trainer_spec.self_test_sample_size))
    tbl.add_row("Control Symbols", ", ".join(trainer_spec.control_symbols) or "-")
    tbl.add_row("User Defined Symbols", ", ".join(trainer_spec.user_defined_symbols) or "-")
    tbl.add_row("Normalizer", normalizer_spec.name)

    c.print(tbl)


def main(argv=None):
    args = parse_args(argv)

    global logger
    model_prefix = args.outdir / args.model_prefix
    logger = setup_trainer_logging(model_prefix, args.log_level, 'txt2model')

    logger.info("COMMAND LINE ARGUMENTS:")
    logger.info(f"  Input files: {', '.join(str(p) for p in args.inputs)}")
    logger.info(f"  Output directory: {args.outdir}")
    logger.info(f"  Config file: {args.config}")
    logger.info("-" * 80)

    h = load_hparams(args.config)

    try:
        trainer_spec, normalizer_spec = build_specs(h, args.inputs, args.outdir, args.model_prefix)
    except ValidationError as e:
        logger.error(f"Invalid configuration in {args.config}:\n{e}")
        raise SystemExit(1)

    log_specs(logger, trainer_spec, normalizer_spec)
    render_specs(trainer_spec, normalizer_spec)

    logger.info("[bold cyan]═══ Piece Trainer TXT2MODEL Pipeline ═══[/bold cyan]")
    pipeline_start_time = time.time()

    try:
        trainer = Trainer(trainer_spec, normalizer_spec)
        model = trainer.train()
        model_path, vocab_path = trainer.save(model)
    except TrainerError as e:
        logger.error(f"[red]Training failed:[/red] {type(e).__name__}: {e}")
        raise SystemExit(1)

    pipeline_time = time.time() - pipeline_start_time

    logger.info("=" * 80)
    logger.info("PIPELINE COMPLETION SUMMARY")
    logger.info("=" * 80)
    logger.info(f"Pipeline completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"Total execution time: {pipeline_time:.2f} seconds")
    logger.info(f"Final vocabulary size: {len(model.pieces)} pieces")
    logger.info(f"Self-test samples: {len(model.self_test_data)}")
    logger.info("=" * 80)

    logger.info(f"[bold green]✅ Training complete! → {model_path}[/bold green]")
    logger.info(f"[dim]Vocabulary listing: {vocab_path}[/dim]")
    logger.info(f"[green]📋 Detailed logs available at: {log_path_for(model_prefix)}[/green]")


if __name__ == "__main__":
    main()
