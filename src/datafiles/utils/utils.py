import logging
import pathlib
from datetime import datetime
from typing import Dict, Optional, Union

import yaml


def load_yaml_config_file(
    config_file: Union[str, pathlib.Path],
    section: str,
    logger: Optional[logging.Logger] = None
) -> Dict:
    """
    Load a section of a YAML configuration file.

    Parameters
    ----------
    config_file: str or pathlib.Path
        Path to the YAML configuration file.
    section: str
        Top-level key of the section to return.
    logger: logging.Logger
        Logger used to report problems (default: module logger).

    Returns
    -------
    Dict
        The section contents (empty dict if the section is present but empty).
    """
    logger = logger if logger else logging.getLogger(__name__)

    config_file = pathlib.Path(config_file)
    if not config_file.exists():
        logger.error(f"Config file {config_file} does not exist.")
        raise FileNotFoundError(f"Config file {config_file} does not exist.")

    with config_file.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if section not in config:
        logger.error(f"Section '{section}' not found in {config_file}.")
        raise ValueError(f"Section '{section}' not found in {config_file}.")

    logger.debug(f"'{section}' section loaded from {config_file}")
    return config.get(section) or {}


def init_logger(
    config_file: Optional[Union[str, pathlib.Path]],
    name: str = None
) -> logging.Logger:
    """
    Initialize a logger from the 'logger' section of the config file.

    When the config file is not given or does not exist, a console logger at
    INFO level is returned.
    """
    config = {}
    if config_file is not None and pathlib.Path(config_file).exists():
        try:
            config = load_yaml_config_file(config_file, "logger")
        except ValueError:
            config = {}

    name = name if name else config.get("logger_name", "datafiles")
    log_level = str(config.get("log_level", "INFO")).upper()
    console_log = bool(config.get("console_log", True))
    file_log = bool(config.get("file_log", False))

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level, logging.INFO))
    # avoid stacking handlers when called more than once for the same name
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if console_log:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logger.level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if file_log:
        dir_logger = pathlib.Path(config.get("dir_logger", "logs"))
        N_log_keep = int(config.get("N_log_keep", 5))
        dir_logger.mkdir(parents=True, exist_ok=True)

        current_date = datetime.now().strftime("%Y-%m-%d")
        log_file_path = dir_logger / f"{name}_log_{current_date}.log"

        # keep only the N_log_keep most recent log files
        log_files = sorted(
            dir_logger.glob(f"{name}_log_*.log"),
            key=lambda f: f.stat().st_mtime,
            reverse=True
        )
        for old_file in log_files[N_log_keep:]:
            try:
                old_file.unlink()
            except OSError as e:
                logger.warning(f"Could not remove old log file {old_file}: {e}")

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logger.level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
