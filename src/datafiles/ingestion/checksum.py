"""Content fingerprints for produced data files."""

import hashlib
from enum import Enum
from pathlib import Path
from typing import Callable, Union

CHUNK_SIZE = 1024 * 1024


class ChecksumType(str, Enum):
    MD5 = "MD5"
    SHA1 = "SHA-1"
    SHA256 = "SHA-256"
    SHA512 = "SHA-512"

    @property
    def hashlib_name(self) -> str:
        return self.value.replace("-", "").lower()

    @classmethod
    def from_string(cls, value: Union[str, "ChecksumType"]) -> "ChecksumType":
        """Parse 'md5', 'SHA-256', 'sha256', ... into a ChecksumType."""
        if isinstance(value, ChecksumType):
            return value
        normalized = str(value).strip().upper().replace("_", "-")
        for member in cls:
            if normalized in (member.value, member.value.replace("-", "")):
                return member
        raise ValueError(
            f"Unsupported checksum algorithm: '{value}'. "
            f"Supported: {', '.join(m.value for m in cls)}"
        )


ChecksumFunction = Callable[[Path, ChecksumType], str]


def compute_checksum(path: Path, algorithm: ChecksumType) -> str:
    """Return the hex digest of the file at `path`."""
    digest = hashlib.new(ChecksumType.from_string(algorithm).hashlib_name)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
