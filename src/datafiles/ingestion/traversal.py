"""
Archive Entry Names and Directory Traversal.

Turns archive entry paths into short filenames and sanitized directory
labels, filters out filesystem-metadata artifacts, groups shapefile
components, and walks scratch directory trees.
"""

import os
import re
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Generator, Iterable, List, Optional, Tuple


@dataclass
class FileInfo:
    """Metadata about a discovered file."""
    path: Path
    name: str
    directory_label: Optional[str]   # relative to the walked root, None at top level
    size_bytes: int


# MacOS X resource forks and Finder metadata stored as zip entries
SIDECAR_PREFIXES = ("._", ".DS_Store")
JUNK_DIRS = {"__MACOSX"}

SHAPEFILE_MANDATORY_EXTENSIONS = ("shp", "shx", "dbf", "prj")

_INVALID_LABEL_CHARS = re.compile(r"[^\w\- ./]+")


def short_name(entry_name: str) -> str:
    """Basename of an archive entry; both separators are honoured."""
    return re.sub(r"^.*[\\/]", "", entry_name)


def is_sidecar(name: str) -> bool:
    return name in ("", ".", "..") or name.startswith(SIDECAR_PREFIXES)


def sanitize_file_directory(value: Optional[str]) -> Optional[str]:
    """
    Aggressively sanitize a hierarchical directory name.

    Backslashes become slashes, characters outside [word, '-', ' ', '.', '/']
    become '_', and empty, '.' and '..' segments (i.e. duplicate, leading and
    trailing separators, and traversal) are dropped. Returns None when nothing
    is left.
    """
    if value is None:
        return None
    value = value.replace("\\", "/")
    value = _INVALID_LABEL_CHARS.sub("_", value)
    segments = [s.strip() for s in value.split("/")]
    segments = [s for s in segments if s and s not in (".", "..")]
    return "/".join(segments) or None


def directory_label(entry_name: str) -> Optional[str]:
    """Sanitized directory part of an entry path, or None for top-level entries."""
    if entry_name == short_name(entry_name):
        return None
    directory = re.sub(r"[\\/][\\/]*[^\\/]*$", "", entry_name)
    return sanitize_file_directory(directory)


def split_extension(name: str) -> Tuple[str, str]:
    """('roads', 'shp') for 'roads.SHP'; extension is lowercased, without dot."""
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return name, ""
    return stem, ext.lower()


def group_by_basename(entry_names: Iterable[str]) -> Dict[Tuple[Optional[str], str], List[str]]:
    """
    Group archive entries by (directory label, basename without extension).

    Sidecars and entries under junk directories are left out.
    """
    groups: Dict[Tuple[Optional[str], str], List[str]] = defaultdict(list)
    for entry_name in entry_names:
        if entry_name.endswith(("/", "\\")):
            continue
        parts = PurePosixPath(entry_name.replace("\\", "/")).parts
        if any(part in JUNK_DIRS for part in parts):
            continue
        name = short_name(entry_name)
        if is_sidecar(name):
            continue
        stem, _ = split_extension(name)
        groups[(directory_label(entry_name), stem)].append(entry_name)
    return dict(groups)


def missing_shapefile_components(entry_names: Iterable[str]) -> List[str]:
    """Mandatory shapefile extensions absent from one basename group."""
    extensions = {split_extension(short_name(n))[1] for n in entry_names}
    return [ext for ext in SHAPEFILE_MANDATORY_EXTENSIONS if ext not in extensions]


def is_shapefile_group(entry_names: Iterable[str]) -> bool:
    return any(split_extension(short_name(n))[1] == "shp" for n in entry_names)


def has_complete_shapefile_set(entry_names: Iterable[str]) -> bool:
    for members in group_by_basename(entry_names).values():
        if is_shapefile_group(members) and not missing_shapefile_components(members):
            return True
    return False


def walk_files(root: Path) -> Generator[FileInfo, None, None]:
    """
    Recursively walk a directory, yielding FileInfo for each file, in a
    stable (sorted) order. Sub-directories become directory labels.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in JUNK_DIRS)

        for filename in sorted(filenames):
            if is_sidecar(filename):
                continue

            filepath = Path(dirpath) / filename
            relative_dir = filepath.parent.relative_to(root).as_posix()

            yield FileInfo(
                path=filepath,
                name=filename,
                directory_label=None if relative_dir == "." else relative_dir,
                size_bytes=filepath.stat().st_size,
            )
