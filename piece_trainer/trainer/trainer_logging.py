"""
Logging for training runs.

A run logs to the console through rich and to ``<model_prefix>.log`` next to
the model artifacts, so every model ships with the log of the run that built
it. The pipeline stages log under the ``piece_trainer`` namespace; the file
always receives their DEBUG output (meta piece allocation, per-stage counts)
while the console level is chosen by the caller.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

from piece_trainer.schema.trainer_spec import NormalizerSpec, TrainerSpec

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s'


def log_path_for(model_prefix: Union[str, Path]) -> Path:
    """Log file written alongside ``<model_prefix>.model``."""
    return Path(f"{model_prefix}.log")


def setup_trainer_logging(model_prefix: Union[str, Path],
                          console_level: str = "INFO",
                          logger_name: str = 'txt2model') -> logging.Logger:
    """
    Route all training logs to the console and to ``<model_prefix>.log``.

    Handlers installed by a previous run are closed first, so repeated runs in
    one process each get their own log file.

    Args:
        model_prefix: Output prefix of the run; its directory is created
        console_level: One of LOG_LEVELS, applied to the console only
        logger_name: Name of the pipeline logger returned

    Returns:
        Configured pipeline logger
    """
    if console_level not in LOG_LEVELS:
        raise ValueError(f"console_level must be one of {LOG_LEVELS}, got {console_level!r}")

    log_file = log_path_for(model_prefix)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    console_handler = RichHandler(console=Console(), show_path=False, rich_tracebacks=True, markup=True)
    console_handler.setLevel(getattr(logging, console_level))

    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger = logging.getLogger(logger_name)
    logger.info("=" * 80)
    logger.info("PIECE TRAINER")
    logger.info("=" * 80)
    logger.info(f"Run started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"Log file: {log_file}")
    return logger


def log_specs(logger: logging.Logger, trainer_spec: TrainerSpec, normalizer_spec: NormalizerSpec) -> None:
    """Write every effective spec field to the log file (DEBUG), one per line."""
    for section, spec in (("trainer", trainer_spec), ("normalizer", normalizer_spec)):
        logger.debug(f"{section}_spec {{")
        for name, value in spec.model_dump().items():
            logger.debug(f"  {name}: {value!r}")
        logger.debug("}")


def get_trainer_logger(logger_name: str = 'txt2model') -> logging.Logger:
    """
    Pipeline logger for use before or without setup_trainer_logging.

    If nothing is configured yet, warnings and errors go to a rich console
    handler on the root logger so library use is not silent.
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.WARNING, format="%(message)s",
                            handlers=[RichHandler(console=Console(), show_path=False)])
    return logging.getLogger(logger_name)
