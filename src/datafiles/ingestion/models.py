"""
Ingestion Data Model.

UploadRequest goes in, IngestionResult comes out; everything else is
transient to one ingest() call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, List, Optional

from datafiles.ingestion.checksum import ChecksumType


@dataclass
class UploadRequest:
    """
    One upload: either a byte stream or a reference to an already-stored
    object, never both.

    `file_size` is only consulted for storage references, where there are no
    local bytes to measure.
    """
    filename: str
    stream: Optional[BinaryIO] = None
    storage_identifier: Optional[str] = None
    content_type: Optional[str] = None
    checksum: Optional[str] = None
    checksum_type: Optional[ChecksumType] = None
    file_size: Optional[int] = None

    def __post_init__(self):
        if (self.stream is None) == (self.storage_identifier is None):
            raise ValueError(
                "An upload must carry either a stream or a storage "
                "identifier (exactly one of them)."
            )
        if self.checksum_type is not None:
            self.checksum_type = ChecksumType.from_string(self.checksum_type)


class TypeSource(str, Enum):
    SUPPLIED = "supplied"
    SNIFFED = "sniffed"
    EXTENSION = "extension"
    DEFAULT = "default"


@dataclass(frozen=True)
class ClassifiedType:
    content_type: str
    source: TypeSource


@dataclass
class UnpackedFile:
    """A data file produced by one ingestion call, ready to be persisted."""
    filename: str
    content_type: str
    size: Optional[int]
    storage_location: str
    directory_label: Optional[str] = None
    checksum_type: Optional[ChecksumType] = None
    checksum: Optional[str] = None
    ingest_warning: Optional[str] = None


class ResultStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class IngestionResult:
    status: ResultStatus
    filename: str
    content_type: Optional[str]
    files: List[UnpackedFile] = field(default_factory=list)
    warning: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def success(cls, filename, content_type, files, warning=None):
        return cls(ResultStatus.SUCCESS, filename, content_type, list(files), warning)

    @classmethod
    def error(cls, filename, content_type, message=None):
        return cls(ResultStatus.ERROR, filename, content_type, error_message=message)

    @property
    def ok(self) -> bool:
        return self.status is ResultStatus.SUCCESS
