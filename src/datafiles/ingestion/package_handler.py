"""
Package-Format Handling.

Self-describing multi-file packages are handed to a pluggable
PackageHandler. The handler is optional: without one, package uploads are
stored as single files. A failing handler aborts the ingestion call.
"""

import logging
import re
import zipfile
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from datafiles.ingestion.checksum import ChecksumType
from datafiles.ingestion.classifier import MIME_TYPE_BAGIT
from datafiles.ingestion.errors import PackageHandlerError
from datafiles.ingestion.models import IngestionResult
from datafiles.ingestion.staging import StagedBatch, StagedFile
from datafiles.ingestion.traversal import directory_label, is_sidecar, short_name
from datafiles.ingestion.unpacking import BaseUnpacker, IngestContext, UnpackOutcome

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Interface
# =============================================================================

class PackageHandler(ABC):
    """Capability that turns one staged package upload into data files."""

    @abstractmethod
    def handle_package(self, staged: StagedFile, filename: str, context: IngestContext) -> IngestionResult:
        """
        Process a staged package.

        Returns a success result with the produced files, or an error result
        when a produced file is rejected by the size/quota guard.

        Raises:
            PackageHandlerError: the package is malformed or fails verification.
        """
        pass


# =============================================================================
# BagIt Handler
# =============================================================================

# Strongest first
MANIFEST_ALGORITHMS = [
    ("sha512", ChecksumType.SHA512),
    ("sha256", ChecksumType.SHA256),
    ("sha1", ChecksumType.SHA1),
    ("md5", ChecksumType.MD5),
]

PAYLOAD_DIR = "data/"

_MANIFEST_LINE = re.compile(r"^([0-9a-fA-F]+)\s+\*?(.+)$")


def _decode_manifest_path(path: str) -> str:
    return path.replace("%0D", "\r").replace("%0A", "\n").replace("%25", "%")


class BagItPackageHandler(PackageHandler):
    """
    Unpacks zipped BagIt bags.

    The bag root is wherever bagit.txt sits (archive root or a single top
    directory). Every payload file under data/ is extracted under the
    size/quota guard and verified against the strongest payload manifest in
    the bag. Sub-directories of data/ become directory labels.
    """

    def handle_package(self, staged: StagedFile, filename: str, context: IngestContext) -> IngestionResult:
        with zipfile.ZipFile(staged.path, metadata_encoding=context.zip_name_encoding) as zf:
            infos = {
                info.filename.replace("\\", "/"): info
                for info in zf.infolist() if not info.is_dir()
            }
            bag_root = self.find_bag_root(infos, filename, context)
            algorithm, manifest = self.read_manifest(zf, infos, bag_root, filename, context)

            missing = sorted(p for p in manifest if f"{bag_root}{p}" not in infos)
            if missing:
                raise self._failure(filename, context, f"missing payload file(s): {', '.join(missing)}")

            payload = sorted(n for n in infos if n.startswith(f"{bag_root}{PAYLOAD_DIR}"))
            logger.info(f"Bag {filename}: {len(payload)} payload file(s), {algorithm.value} manifest")

            files = []
            with StagedBatch() as batch:
                for name in payload:
                    relative = name[len(bag_root):]
                    short = short_name(name)
                    if is_sidecar(short):
                        continue

                    expected = manifest.get(relative)
                    if expected is None:
                        raise self._failure(filename, context, f"{relative} is not listed in the manifest")

                    with zf.open(infos[name]) as src:
                        staged_entry, decision, size = context.stage_admitted(src)
                    if staged_entry is None:
                        message = context.rejection_message(decision, size)
                        logger.error(f"Payload file {relative} of bag {filename} rejected: {message}")
                        return IngestionResult.error(filename, MIME_TYPE_BAGIT, message)
                    batch.add(staged_entry)

                    actual = context.checksum(staged_entry.path, algorithm)
                    if actual.lower() != expected.lower():
                        raise self._failure(filename, context, f"checksum mismatch for {relative}")

                    classified = context.classify(staged_entry.path, short)
                    files.append(context.make_file(
                        staged_entry, short, classified.content_type,
                        directory_label(relative[len(PAYLOAD_DIR):])))

                if not files:
                    raise self._failure(filename, context, "the bag has no payload files")
                batch.release_all()

        return IngestionResult.success(filename, MIME_TYPE_BAGIT, files)

    def find_bag_root(self, infos: Dict[str, zipfile.ZipInfo], filename: str, context: IngestContext) -> str:
        """'' when bagit.txt is at the archive root, 'top/' when it is one level down."""
        candidates = sorted(
            name[:-len("bagit.txt")] for name in infos
            if short_name(name) == "bagit.txt" and name.count("/") <= 1
        )
        if not candidates:
            raise self._failure(filename, context, "bagit.txt not found")
        return candidates[0]

    def read_manifest(
        self,
        zf: zipfile.ZipFile,
        infos: Dict[str, zipfile.ZipInfo],
        bag_root: str,
        filename: str,
        context: IngestContext,
    ) -> Tuple[ChecksumType, Dict[str, str]]:
        """Parse the strongest payload manifest into {relative path: digest}."""
        for suffix, algorithm in MANIFEST_ALGORITHMS:
            info = infos.get(f"{bag_root}manifest-{suffix}.txt")
            if info is None:
                continue
            text = zf.read(info).decode("utf-8-sig")
            return algorithm, self.parse_manifest(text)
        raise self._failure(filename, context, "no payload manifest found")

    @staticmethod
    def parse_manifest(text: str) -> Dict[str, str]:
        manifest = {}
        for line in text.splitlines():
            match = _MANIFEST_LINE.match(line.strip())
            if match:
                manifest[_decode_manifest_path(match.group(2).strip())] = match.group(1)
        return manifest

    @staticmethod
    def _failure(filename: str, context: IngestContext, detail: str) -> PackageHandlerError:
        return PackageHandlerError(context.messages("file.addreplace.error.package.failed", filename, detail))


# =============================================================================
# Unpacker Adapter
# =============================================================================

class PackageUnpacker(BaseUnpacker):
    """Routes package uploads to the configured PackageHandler."""

    def __init__(self, handler: PackageHandler, content_types: Optional[List[str]] = None):
        self.handler = handler
        self._content_types = content_types or [MIME_TYPE_BAGIT]

    def unpack(self, staged: StagedFile, context: IngestContext) -> UnpackOutcome:
        try:
            result = self.handler.handle_package(staged, context.filename, context)
        except PackageHandlerError:
            raise
        except (zipfile.BadZipFile, OSError, ValueError, RuntimeError) as e:
            logger.error(f"Package handler failed on {context.filename}: {e}")
            raise PackageHandlerError(
                context.messages("file.addreplace.error.package.failed", context.filename, str(e))
            ) from e

        if result.ok:
            return UnpackOutcome.success(result.files, result.warning)
        return UnpackOutcome.error(result.error_message)

    def supported_types(self) -> List[str]:
        return list(self._content_types)
