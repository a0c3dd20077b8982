"""
User-visible message bundle.

The ingestion code only supplies a message key and ordered arguments; the
bundle turns them into text. Any callable with the signature
`(key, *args) -> str` can stand in for it.
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Callable, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

MessageFormatter = Callable[..., str]


class MessageBundle:
    """Maps message keys to `str.format` templates loaded from YAML."""

    def __init__(self, path: Optional[Path] = None):
        if path is None:
            text = resources.files(__package__).joinpath(
                "messages.yaml").read_text(encoding="utf-8")
        else:
            text = Path(path).read_text(encoding="utf-8")
        self._templates: Dict[str, str] = yaml.safe_load(text) or {}

    def format(self, key: str, *args) -> str:
        template = self._templates.get(key)
        if template is None:
            logger.warning(f"No message found for key '{key}'")
            return key
        return template.format(*args)

    __call__ = format

    def keys(self):
        return list(self._templates.keys())
