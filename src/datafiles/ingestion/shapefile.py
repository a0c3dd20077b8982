"""
Zipped Shapefile Re-packaging.

A shapefile is only usable with its companions (.shp geometry, .shx index,
.dbf attributes, .prj projection). An uploaded zip holding one or more
shapefile sets is split into one zip per complete set, so every set becomes
its own data file; any other entry in the archive is extracted as a file of
its own. The directory structure of the upload survives as directory labels.
"""

import logging
import zipfile
import zlib
from pathlib import Path
from typing import Dict, List, Optional, Set

from datafiles.ingestion.classifier import MIME_TYPE_SHAPEFILE
from datafiles.ingestion.errors import (
    IngestExecutionError,
    ShapefileProcessingError,
    StagingLimitExceeded,
)
from datafiles.ingestion.guard import Admission, admit, streaming_ceiling
from datafiles.ingestion.staging import StagedBatch, StagedFile, adopt, copy_stream, scratch_directory
from datafiles.ingestion.traversal import (
    group_by_basename,
    is_shapefile_group,
    missing_shapefile_components,
    short_name,
    walk_files,
)
from datafiles.ingestion.unpacking import BaseUnpacker, IngestContext, UnpackOutcome

logger = logging.getLogger(__name__)

SHAPEFILE_READ_ERRORS = (
    zipfile.BadZipFile,
    UnicodeDecodeError,
    NotImplementedError,
    RuntimeError,
    EOFError,
    zlib.error,
)


class ShapefileUnpacker(BaseUnpacker):
    """
    Re-packages a zipped shapefile upload.

    Unlike plain zip unpacking there is no fallback: a shapefile set missing
    one of its companions is unusable, so the call ends with an error result.
    Failing to write a re-packaged component is fatal.
    """

    def unpack(self, staged: StagedFile, context: IngestContext) -> UnpackOutcome:
        filename = context.filename
        try:
            with scratch_directory(context.scratch_dir, prefix="shp_") as rezip_folder:
                self.rezip_shapefile_sets(staged.path, rezip_folder, context)
                return self._collect(rezip_folder, context)

        except ShapefileProcessingError as e:
            logger.error(f"Processing of zipped shapefile {filename} failed: {e.message}")
            return UnpackOutcome.error(e.message)
        except StagingLimitExceeded as e:
            decision = admit(e.bytes_read, context.size_limit, context.quota)
            logger.error(
                f"One of the unzipped shape files in {filename} exceeded the size "
                f"limit, or the storage quota; giving up."
            )
            return UnpackOutcome.error(context.rejection_message(decision, e.bytes_read))
        except SHAPEFILE_READ_ERRORS as e:
            logger.error(f"Processing of zipped shapefile {filename} failed: {e}")
            return UnpackOutcome.error(
                context.messages("file.addreplace.error.shapefile.failed", filename))
        except OSError as e:
            raise IngestExecutionError(
                context.messages("file.addreplace.error.shapefile.component", filename)
            ) from e

    def rezip_shapefile_sets(self, zip_path: Path, out_root: Path, context: IngestContext) -> int:
        """
        Write one <basename>.zip per complete shapefile set, and every other
        entry as a plain file, into `out_root/<directory label>/`.

        Returns the number of shapefile sets written.

        Raises:
            ShapefileProcessingError: a set lacks a mandatory component, or
                the archive holds no shapefile set at all, or two entries
                would be written under the same sanitized path.
            StagingLimitExceeded: an entry is larger than the guard allows.
        """
        ceiling = streaming_ceiling(context.size_limit, context.quota)
        sets_written = 0
        # sanitized output paths already taken, relative to out_root
        claimed: Set[str] = set()

        with zipfile.ZipFile(zip_path, metadata_encoding=context.zip_name_encoding) as zf:
            infos: Dict[str, zipfile.ZipInfo] = {
                info.filename: info for info in zf.infolist() if not info.is_dir()
            }
            groups = group_by_basename(infos)

            for (label, stem), members in sorted(groups.items(), key=lambda kv: (kv[0][0] or "", kv[0][1])):
                target_dir = out_root / label if label else out_root
                target_dir.mkdir(parents=True, exist_ok=True)

                if is_shapefile_group(members):
                    missing = missing_shapefile_components(members)
                    if missing:
                        raise ShapefileProcessingError(context.messages(
                            "file.addreplace.error.shapefile.incomplete",
                            stem, ", ".join(f".{ext}" for ext in missing)))
                    inner: Set[str] = set()
                    for member in members:
                        self._claim(inner, None, short_name(member), context)
                    self._claim(claimed, label, f"{stem}.zip", context)
                    self._rezip(zf, [infos[m] for m in sorted(members)],
                                target_dir / f"{stem}.zip", ceiling)
                    sets_written += 1
                else:
                    for member in members:
                        self._claim(claimed, label, short_name(member), context)
                        with zf.open(infos[member]) as src, \
                                open(target_dir / short_name(member), "wb") as dst:
                            copy_stream(src, dst, ceiling)

        if not sets_written:
            raise ShapefileProcessingError(
                context.messages("file.addreplace.error.shapefile.empty", context.filename))
        logger.info(f"Re-packaged {sets_written} shapefile set(s) from {context.filename}")
        return sets_written

    def _claim(self, claimed: Set[str], label: Optional[str], name: str, context: IngestContext):
        path = f"{label}/{name}" if label else name
        if path in claimed:
            logger.error(f"Two entries of {context.filename} map to the same path {path}")
            raise ShapefileProcessingError(context.messages(
                "file.addreplace.error.shapefile.duplicate", context.filename, path))
        claimed.add(path)

    def _rezip(self, zf: zipfile.ZipFile, members: List[zipfile.ZipInfo], target: Path, ceiling):
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as out:
            for info in members:
                with zf.open(info) as src, out.open(short_name(info.filename), "w") as dst:
                    copy_stream(src, dst, ceiling)

    def _collect(self, rezip_folder: Path, context: IngestContext) -> UnpackOutcome:
        files = []
        with StagedBatch() as batch:
            for file_info in walk_files(rezip_folder):
                staged_out = batch.add(adopt(file_info.path, context.scratch_dir))

                decision = admit(staged_out.size, context.size_limit, context.quota)
                if decision is not Admission.ADMIT:
                    logger.error(
                        f"Re-packaged file {file_info.name} exceeded the size limit, "
                        f"or the storage quota; giving up."
                    )
                    return UnpackOutcome.error(context.rejection_message(decision, staged_out.size))

                classified = context.classify(staged_out.path, file_info.name)
                files.append(context.make_file(
                    staged_out, file_info.name, classified.content_type, file_info.directory_label))

            batch.release_all()
        return UnpackOutcome.success(files)

    def supported_types(self) -> List[str]:
        return [MIME_TYPE_SHAPEFILE]
