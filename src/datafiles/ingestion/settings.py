"""
Ingestion Settings.

Values come from the `ingest` section of config/config.yaml; environment
variables (optionally loaded from a .env file) take precedence.
"""

import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Optional, Union

from dotenv import load_dotenv

from datafiles.ingestion.checksum import ChecksumType
from datafiles.utils.utils import load_yaml_config_file

ENV_PREFIX = "INGEST_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _optional_int(value, name: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none", "null")):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Setting '{name}' must be an integer, got '{value}'")
    if parsed < 0:
        raise ValueError(f"Setting '{name}' cannot be negative, got {parsed}")
    return parsed


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class IngestSettings:
    temp_directory: Optional[pathlib.Path] = None
    max_file_upload_size: Optional[int] = None
    zip_upload_files_limit: int = 1000
    fixity_algorithm: ChecksumType = ChecksumType.MD5
    zip_name_encoding: str = "utf-8"
    bagit_handler_enabled: bool = False

    @classmethod
    def from_config(
        cls,
        config_path: Union[str, pathlib.Path] = pathlib.Path("config/config.yaml"),
        logger: Optional[logging.Logger] = None,
        env_file: Optional[Union[str, pathlib.Path]] = None,
    ) -> "IngestSettings":
        logger = logger if logger else logging.getLogger(__name__)
        config = dict(load_yaml_config_file(config_path, "ingest", logger))

        load_dotenv(env_file)
        for key in (
            "temp_directory",
            "max_file_upload_size",
            "zip_upload_files_limit",
            "fixity_algorithm",
            "zip_name_encoding",
            "bagit_handler_enabled",
        ):
            env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
            if env_value is not None:
                logger.debug(f"Setting '{key}' overridden from the environment")
                config[key] = env_value

        temp_directory = config.get("temp_directory")
        files_limit = _optional_int(config.get("zip_upload_files_limit", 1000), "zip_upload_files_limit")

        settings = cls(
            temp_directory=pathlib.Path(temp_directory) if temp_directory else None,
            max_file_upload_size=_optional_int(config.get("max_file_upload_size"), "max_file_upload_size"),
            zip_upload_files_limit=1000 if files_limit is None else files_limit,
            fixity_algorithm=ChecksumType.from_string(config.get("fixity_algorithm", "MD5")),
            zip_name_encoding=str(config.get("zip_name_encoding") or "utf-8"),
            bagit_handler_enabled=_as_bool(config.get("bagit_handler_enabled", False)),
        )
        logger.info(f"Ingest settings loaded from {config_path}: {settings}")
        return settings
