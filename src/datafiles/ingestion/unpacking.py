"""
Unpacker Strategy Interface.

Each unpacker turns one staged upload of a special content type into data
files. It never raises for recoverable problems; it reports them through an
UnpackOutcome so the pipeline can fall back to storing the upload as is.

Adding a new format:
    1. Subclass BaseUnpacker
    2. Implement unpack() and supported_types()
    3. Call registry.register(YourUnpacker())
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from datafiles.ingestion.checksum import ChecksumFunction, ChecksumType, compute_checksum
from datafiles.ingestion.classifier import Sniffer, Source, classify
from datafiles.ingestion.errors import StagingLimitExceeded
from datafiles.ingestion.guard import (
    Admission,
    QuotaState,
    admit,
    bytes_to_human_readable,
    streaming_ceiling,
)
from datafiles.ingestion.messages import MessageBundle, MessageFormatter
from datafiles.ingestion.models import ClassifiedType, UnpackedFile
from datafiles.ingestion.staging import StagedFile, stage

logger = logging.getLogger(__name__)


class UnpackStatus(str, Enum):
    SUCCESS = "success"
    FALLBACK = "fallback"   # recoverable: store the original upload as one file
    ERROR = "error"         # terminal error result for the whole call


@dataclass
class UnpackOutcome:
    status: UnpackStatus
    files: List[UnpackedFile] = field(default_factory=list)
    warning: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, files, warning=None):
        return cls(UnpackStatus.SUCCESS, list(files), warning=warning)

    @classmethod
    def fallback(cls, reason, warning=None):
        return cls(UnpackStatus.FALLBACK, warning=warning, reason=reason)

    @classmethod
    def error(cls, reason):
        return cls(UnpackStatus.ERROR, reason=reason)


@dataclass
class IngestContext:
    """
    Everything one ingest() call hands to its unpackers.

    Owned by the pipeline for the duration of the call. `quota` is replaced
    with a fresh QuotaState before every admission pass, so quota consumed by
    an abandoned unpack attempt is never carried into the fallback.
    """
    filename: str
    scratch_dir: Optional[Path]
    size_limit: Optional[int] = None
    quota_ceiling: Optional[int] = None
    max_entry_count: int = 1000
    fixity_algorithm: ChecksumType = ChecksumType.MD5
    zip_name_encoding: str = "utf-8"
    sniffer: Optional[Sniffer] = None
    checksum: ChecksumFunction = compute_checksum
    messages: MessageFormatter = field(default_factory=MessageBundle)
    quota: QuotaState = field(init=False)

    def __post_init__(self):
        self.quota = QuotaState(self.quota_ceiling)

    def fresh_quota(self) -> QuotaState:
        self.quota = QuotaState(self.quota_ceiling)
        return self.quota

    def classify(self, source: Source, filename: str, supplied_type: Optional[str] = None) -> ClassifiedType:
        return classify(source, filename, supplied_type,
                        sniffer=self.sniffer, zip_encoding=self.zip_name_encoding)

    def make_file(
        self,
        staged: StagedFile,
        filename: str,
        content_type: str,
        directory_label: Optional[str] = None,
    ) -> UnpackedFile:
        """Fingerprint a staged file and describe it as a produced data file."""
        return UnpackedFile(
            filename=filename,
            content_type=content_type,
            size=staged.size,
            storage_location=str(staged.path),
            directory_label=directory_label,
            checksum_type=self.fixity_algorithm,
            checksum=self.checksum(staged.path, self.fixity_algorithm),
        )

    def stage_admitted(self, stream: BinaryIO) -> Tuple[Optional[StagedFile], Admission, int]:
        """
        Stage a stream under the size/quota guard.

        The copy is cut short once the stream can no longer be admitted.
        Returns (staged file or None, admission decision, byte count seen).
        """
        ceiling = streaming_ceiling(self.size_limit, self.quota)
        try:
            staged = stage(stream, self.scratch_dir, max_bytes=ceiling)
        except StagingLimitExceeded as e:
            return None, admit(e.bytes_read, self.size_limit, self.quota), e.bytes_read

        decision = admit(staged.size, self.size_limit, self.quota)
        if decision is not Admission.ADMIT:
            staged.discard()
            return None, decision, staged.size
        return staged, decision, staged.size

    def rejection_message(self, decision: Admission, size: int) -> str:
        if decision is Admission.REJECT_SIZE:
            return self.messages("file.addreplace.error.file_exceeds_limit",
                                 bytes_to_human_readable(size),
                                 bytes_to_human_readable(self.size_limit))
        return self.messages("file.addreplace.error.quota_exceeded",
                             bytes_to_human_readable(size),
                             bytes_to_human_readable(self.quota.remaining))


class BaseUnpacker(ABC):
    """Base interface for all unpackers."""

    @abstractmethod
    def unpack(self, staged: StagedFile, context: IngestContext) -> UnpackOutcome:
        """
        Unpack a staged upload.

        The unpacker owns the files it produces until it returns SUCCESS; on
        any other outcome it must have discarded all of them. The original
        staged upload stays owned by the caller.
        """
        pass

    @abstractmethod
    def supported_types(self) -> List[str]:
        """Return list of content types this unpacker handles."""
        pass
