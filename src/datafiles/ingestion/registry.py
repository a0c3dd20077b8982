"""
Unpacker Registry.

Maps special content types to unpacker instances. Content types without a
registered unpacker are stored as single files.
"""

import logging
from typing import Dict, List, Optional

from datafiles.ingestion.archive_handler import GzipUnpacker, ZipUnpacker
from datafiles.ingestion.package_handler import PackageHandler, PackageUnpacker
from datafiles.ingestion.shapefile import ShapefileUnpacker
from datafiles.ingestion.unpacking import BaseUnpacker

logger = logging.getLogger(__name__)


class UnpackerRegistry:
    """Maps content types to unpacker instances."""

    def __init__(self):
        self._unpackers: Dict[str, BaseUnpacker] = {}

    def register(self, unpacker: BaseUnpacker):
        """Register an unpacker for its supported content types."""
        for content_type in unpacker.supported_types():
            self._unpackers[content_type.lower()] = unpacker

    def get_unpacker(self, content_type: Optional[str]) -> Optional[BaseUnpacker]:
        """Get the unpacker for a content type, or None if it is stored as is."""
        if not content_type:
            return None
        return self._unpackers.get(content_type.lower())

    def supported_types(self) -> List[str]:
        """Return list of all content types that get unpacked."""
        return list(self._unpackers.keys())


def create_default_registry(package_handler: Optional[PackageHandler] = None) -> UnpackerRegistry:
    """
    Create a registry with gzip, zip and zipped shapefile unpacking.

    Package uploads are only unpacked when a package handler is supplied.
    """
    registry = UnpackerRegistry()
    registry.register(GzipUnpacker())
    registry.register(ZipUnpacker())
    registry.register(ShapefileUnpacker())
    if package_handler is not None:
        registry.register(PackageUnpacker(package_handler))
    logger.debug(f"Unpacking enabled for: {', '.join(registry.supported_types())}")
    return registry
