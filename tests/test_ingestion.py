"""
Unit tests for the building blocks of the upload ingestion pipeline.

Covers the size/quota guard, checksums, entry-name handling and traversal,
content classification, temporary staging, the message bundle, settings,
the unpacker registry and the manifest mapper.
"""

import gzip
import hashlib
import io
import os
import tempfile
import zipfile
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from datafiles.ingestion.checksum import ChecksumType, compute_checksum
from datafiles.ingestion.classifier import (
    MIME_TYPE_BAGIT,
    MIME_TYPE_FITS_GZIPPED,
    MIME_TYPE_GZIP,
    MIME_TYPE_SHAPEFILE,
    MIME_TYPE_TARBALL,
    MIME_TYPE_UNDETERMINED_DEFAULT,
    MIME_TYPE_ZIP,
    classify,
    classify_by_name,
    is_bagit,
    sniff_content_type,
    type_by_name_and_extension,
    use_recognized_type,
)
from datafiles.ingestion.errors import StagingError, StagingLimitExceeded
from datafiles.ingestion.guard import (
    Admission,
    QuotaState,
    admit,
    bytes_to_human_readable,
    streaming_ceiling,
)
from datafiles.ingestion.messages import MessageBundle
from datafiles.ingestion.models import (
    IngestionResult,
    TypeSource,
    UnpackedFile,
    UploadRequest,
)
from datafiles.ingestion.package_handler import BagItPackageHandler
from datafiles.ingestion.registry import UnpackerRegistry, create_default_registry
from datafiles.ingestion.schema_mapper import MANIFEST_COLUMNS, files_to_dataframe
from datafiles.ingestion.settings import IngestSettings
from datafiles.ingestion.shapefile import ShapefileUnpacker
from datafiles.ingestion.staging import (
    StagedBatch,
    copy_stream,
    scratch_directory,
    stage,
)
from datafiles.ingestion.traversal import (
    directory_label,
    group_by_basename,
    has_complete_shapefile_set,
    is_sidecar,
    missing_shapefile_components,
    sanitize_file_directory,
    short_name,
    split_extension,
    walk_files,
)
from datafiles.ingestion.unpacking import IngestContext, UnpackStatus


def _zip_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


SHAPEFILE_SET = {
    "roads.shp": b"\x00\x00\x27\x0a" + b"\x01" * 60,
    "roads.shx": b"\x00\x00\x27\x0a" + b"\x02" * 40,
    "roads.dbf": b"\x03" + b"\x00" * 31,
    "roads.prj": b'GEOGCS["GCS_WGS_1984"]',
}


# =============================================================================
# Size/Quota Guard Tests
# =============================================================================


class TestAdmit:
    def test_admit_without_limits(self):
        quota = QuotaState()
        assert admit(10_000, None, quota) is Admission.ADMIT
        assert quota.remaining is None

    def test_reject_size(self):
        assert admit(101, 100, QuotaState()) is Admission.REJECT_SIZE
        assert admit(100, 100, QuotaState()) is Admission.ADMIT

    def test_quota_is_consumed_on_admit(self):
        quota = QuotaState(1000)
        assert admit(600, None, quota) is Admission.ADMIT
        assert quota.remaining == 400
        assert admit(401, None, quota) is Admission.REJECT_QUOTA
        # rejections leave the quota untouched
        assert quota.remaining == 400
        assert admit(400, None, quota) is Admission.ADMIT
        assert quota.remaining == 0

    def test_size_checked_before_quota(self):
        quota = QuotaState(10)
        assert admit(50, 20, quota) is Admission.REJECT_SIZE
        assert quota.remaining == 10

    def test_zero_bytes_always_admitted(self):
        quota = QuotaState(0)
        assert admit(0, 0, quota) is Admission.ADMIT
        assert quota.remaining == 0

    def test_negative_size_raises(self):
        with pytest.raises(ValueError):
            admit(-1, None, QuotaState())

    def test_streaming_ceiling(self):
        assert streaming_ceiling(None, QuotaState()) is None
        assert streaming_ceiling(100, QuotaState()) == 100
        assert streaming_ceiling(None, QuotaState(50)) == 50
        assert streaming_ceiling(100, QuotaState(50)) == 50

    def test_bytes_to_human_readable(self):
        assert bytes_to_human_readable(None) == "unlimited"
        assert bytes_to_human_readable(500) == "500 bytes"
        assert bytes_to_human_readable(1024) == "1.0 KB"
        assert bytes_to_human_readable(1536) == "1.5 KB"
        assert bytes_to_human_readable(1024 * 1024) == "1.0 MB"


# =============================================================================
# Checksum Tests
# =============================================================================


class TestChecksum:
    def test_from_string(self):
        assert ChecksumType.from_string("md5") is ChecksumType.MD5
        assert ChecksumType.from_string("SHA-1") is ChecksumType.SHA1
        assert ChecksumType.from_string("sha256") is ChecksumType.SHA256
        assert ChecksumType.from_string("sha_512") is ChecksumType.SHA512
        assert ChecksumType.from_string(ChecksumType.MD5) is ChecksumType.MD5

    def test_unsupported_algorithm_raises(self):
        with pytest.raises(ValueError, match="Unsupported checksum algorithm"):
            ChecksumType.from_string("crc32")

    def test_compute_checksum(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "hello.txt"
            path.write_bytes(b"hello")
            assert compute_checksum(path, ChecksumType.MD5) == "5d41402abc4b2a76b9719d911017c592"
            assert compute_checksum(path, ChecksumType.SHA256) == hashlib.sha256(b"hello").hexdigest()

    def test_upload_request_normalizes_checksum_type(self):
        request = UploadRequest(filename="a.txt", storage_identifier="s3://b/k",
                                checksum="abc", checksum_type="sha-1")
        assert request.checksum_type is ChecksumType.SHA1


# =============================================================================
# Entry Name and Traversal Tests
# =============================================================================


class TestEntryNames:
    def test_short_name(self):
        assert short_name("top.txt") == "top.txt"
        assert short_name("a/b/c.txt") == "c.txt"
        assert short_name("a\\b\\c.txt") == "c.txt"

    def test_is_sidecar(self):
        assert is_sidecar("._data.csv")
        assert is_sidecar(".DS_Store")
        assert is_sidecar("")
        assert not is_sidecar("data.csv")
        assert not is_sidecar(".hidden_config")

    def test_directory_label(self):
        assert directory_label("top.txt") is None
        assert directory_label("dir1/sub/file.txt") == "dir1/sub"
        assert directory_label("dir1\\sub\\file.txt") == "dir1/sub"

    def test_directory_label_collapses_separators(self):
        assert directory_label("//a//b///file.txt") == "a/b"

    def test_directory_label_drops_traversal(self):
        assert directory_label("../../file.txt") is None
        assert directory_label("a/../b/file.txt") == "a/b"

    def test_sanitize_invalid_characters(self):
        assert sanitize_file_directory("data$%set/raw") == "data_set/raw"
        assert sanitize_file_directory("a\\b") == "a/b"
        assert sanitize_file_directory("///") is None
        assert sanitize_file_directory(None) is None

    def test_split_extension(self):
        assert split_extension("roads.SHP") == ("roads", "shp")
        assert split_extension("archive.tar.gz") == ("archive.tar", "gz")
        assert split_extension("noext") == ("noext", "")
        assert split_extension(".hidden") == (".hidden", "")


class TestShapefileGrouping:
    def test_group_by_basename(self):
        groups = group_by_basename([
            "maps/roads.shp",
            "maps/roads.shx",
            "maps/",
            "readme.txt",
            "__MACOSX/maps/._roads.shp",
            "maps/._roads.dbf",
        ])
        assert groups == {
            ("maps", "roads"): ["maps/roads.shp", "maps/roads.shx"],
            (None, "readme"): ["readme.txt"],
        }

    def test_same_basename_in_different_folders(self):
        groups = group_by_basename(["a/roads.shp", "b/roads.shp"])
        assert set(groups) == {("a", "roads"), ("b", "roads")}

    def test_missing_components(self):
        assert missing_shapefile_components(["r.shp", "r.DBF"]) == ["shx", "prj"]
        assert missing_shapefile_components(list(SHAPEFILE_SET)) == []

    def test_has_complete_shapefile_set(self):
        assert has_complete_shapefile_set(list(SHAPEFILE_SET) + ["roads.cpg"])
        assert not has_complete_shapefile_set(["roads.shp", "roads.shx", "roads.dbf"])
        assert not has_complete_shapefile_set(["a/roads.shp", "a/roads.shx", "b/roads.dbf", "b/roads.prj"])


class TestWalkFiles:
    def test_walk_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "sub" / "deep").mkdir(parents=True)
            (root / "top.csv").write_text("a,b\n1,2\n")
            (root / "sub" / "inner.txt").write_text("hello")
            (root / "sub" / "deep" / "leaf.txt").write_text("leaf")
            (root / ".DS_Store").write_text("junk")
            (root / "sub" / "._inner.txt").write_text("fork")

            files = list(walk_files(root))
            assert [(f.name, f.directory_label) for f in files] == [
                ("top.csv", None),
                ("inner.txt", "sub"),
                ("leaf.txt", "sub/deep"),
            ]
            assert files[1].size_bytes == 5


# =============================================================================
# Content Classifier Tests
# =============================================================================


class TestClassifier:
    def test_csv_by_extension(self):
        classified = classify(b"a,b\n1,2\n", "a.csv")
        assert classified.content_type == "text/csv"
        assert classified.source is TypeSource.EXTENSION

    def test_plain_text(self):
        assert classify(b"just some words\n", "b.txt").content_type == "text/plain"

    def test_unknown_binary_gets_default_type(self):
        classified = classify(b"\x00\x01\x02\x03binary", "blob.bin")
        assert classified.content_type == MIME_TYPE_UNDETERMINED_DEFAULT
        assert classified.source is TypeSource.DEFAULT

    def test_sniffed_type_overrides_supplied(self):
        classified = classify(b"%PDF-1.4\n...", "report", "application/octet-stream")
        assert classified.content_type == "application/pdf"
        assert classified.source is TypeSource.SNIFFED

    def test_generic_text_does_not_override_supplied_text_type(self):
        classified = classify(b"col1\tcol2\n1\t2\n", "table", "text/tab-separated-values")
        assert classified.content_type == "text/tab-separated-values"
        assert classified.source is TypeSource.SUPPLIED

    def test_supplied_type_kept_when_nothing_recognized(self):
        classified = classify(b"\x00\x00\x00", "mystery", "application/x-custom")
        assert classified.content_type == "application/x-custom"

    def test_gzip_variants(self):
        payload = gzip.compress(b"a,b\n1,2\n")
        assert classify(payload, "data.csv.gz").content_type == MIME_TYPE_GZIP
        assert classify(payload, "image.fits.gz").content_type == MIME_TYPE_FITS_GZIPPED
        assert classify(payload, "bundle.tar.gz").content_type == MIME_TYPE_TARBALL
        assert classify(payload, "bundle.tgz").content_type == MIME_TYPE_TARBALL

    def test_zip_container_inspection(self):
        assert classify(_zip_bytes({"a.txt": "a"}), "a.zip").content_type == MIME_TYPE_ZIP
        assert classify(_zip_bytes(SHAPEFILE_SET), "roads.zip").content_type == MIME_TYPE_SHAPEFILE
        bag = _zip_bytes({"bag/bagit.txt": "BagIt-Version: 0.97\n", "bag/data/x.txt": "x"})
        assert classify(bag, "bag.zip").content_type == MIME_TYPE_BAGIT

    def test_zip_detected_regardless_of_name(self):
        assert classify(_zip_bytes({"a.txt": "a"}), "upload.bin").content_type == MIME_TYPE_ZIP

    def test_classify_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "tmp123upload"
            path.write_bytes(b"a,b\n1,2\n")
            assert classify(path, "survey.csv").content_type == "text/csv"

    def test_custom_sniffer(self):
        classified = classify(b"whatever", "file.dat", sniffer=lambda sample, name: "application/x-custom")
        assert classified.content_type == "application/x-custom"

    def test_failing_sniffer_falls_back_to_extension(self):
        def broken(sample, name):
            raise RuntimeError("sniffer crashed")

        assert classify(b"a,b\n", "a.csv", sniffer=broken).content_type == "text/csv"

    def test_sniff_empty_sample(self):
        assert sniff_content_type(b"", "x.txt") is None

    def test_type_by_name_and_extension(self):
        assert type_by_name_and_extension("notes.md") == "text/markdown"
        assert type_by_name_and_extension("DATA.CSV") == "text/csv"
        assert type_by_name_and_extension("archive.tgz") == MIME_TYPE_TARBALL
        assert type_by_name_and_extension("data.csv.gz") == MIME_TYPE_GZIP
        assert type_by_name_and_extension(None) is None

    def test_use_recognized_type(self):
        assert use_recognized_type(None, "text/csv")
        assert use_recognized_type("application/octet-stream", "application/pdf")
        assert use_recognized_type("text/plain", "text/csv")
        assert not use_recognized_type("text/csv", "text/plain")
        assert not use_recognized_type("text/csv", "application/octet-stream")
        assert not use_recognized_type("text/csv", None)

    def test_is_bagit(self):
        assert is_bagit(["bagit.txt", "data/x.txt"])
        assert is_bagit(["mybag/bagit.txt", "mybag/data/x.txt"])
        assert not is_bagit(["a/bagit.txt", "b/data/x.txt"])
        assert not is_bagit(["readme.txt"])

    def test_classify_by_name(self):
        assert classify_by_name("survey.csv").content_type == "text/csv"
        assert classify_by_name("survey.csv", "application/octet-stream").content_type == "text/csv"
        assert classify_by_name("noext", "application/x-custom").content_type == "application/x-custom"
        assert classify_by_name("noext").content_type == MIME_TYPE_UNDETERMINED_DEFAULT

    def test_classification_is_idempotent(self):
        data = b"x,y\n1,2\n3,4\n"
        first = classify(data, "points.csv")
        second = classify(data, "points.csv", first.content_type)
        assert second.content_type == first.content_type


# =============================================================================
# Temporary Staging Tests
# =============================================================================


class TestStaging:
    def test_stage_and_discard_on_exit(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with stage(io.BytesIO(b"abc"), tmpdir) as staged:
                assert staged.size == 3
                assert staged.path.parent == Path(tmpdir)
                assert staged.path.read_bytes() == b"abc"
            assert not staged.path.exists()
            assert os.listdir(tmpdir) == []

    def test_release_keeps_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with stage(io.BytesIO(b"abc"), tmpdir) as staged:
                path = staged.release()
            assert path.exists()
            assert not staged.owned

    def test_limit_exceeded_leaves_no_partial_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(StagingLimitExceeded) as exc_info:
                stage(io.BytesIO(b"x" * 100), tmpdir, max_bytes=10)
            assert exc_info.value.limit == 10
            assert exc_info.value.bytes_read > 10
            assert os.listdir(tmpdir) == []

    def test_unconfigured_scratch_dir(self):
        with pytest.raises(StagingError, match="not configured"):
            stage(io.BytesIO(b"abc"), None)

    def test_missing_scratch_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(StagingError, match="does not exist"):
                stage(io.BytesIO(b"abc"), Path(tmpdir) / "missing")

    def test_copy_stream(self):
        out = io.BytesIO()
        assert copy_stream(io.BytesIO(b"y" * 200_000), out) == 200_000
        assert out.getvalue() == b"y" * 200_000

    def test_batch_discards_unless_released(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with StagedBatch() as batch:
                batch.add(stage(io.BytesIO(b"1"), tmpdir))
                batch.add(stage(io.BytesIO(b"2"), tmpdir))
                assert len(batch) == 2
            assert os.listdir(tmpdir) == []

            with StagedBatch() as batch:
                batch.add(stage(io.BytesIO(b"1"), tmpdir))
                batch.release_all()
            assert len(os.listdir(tmpdir)) == 1

    def test_scratch_directory_removed_on_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(RuntimeError):
                with scratch_directory(tmpdir) as work_dir:
                    (work_dir / "partial.bin").write_bytes(b"partial")
                    raise RuntimeError("boom")
            assert os.listdir(tmpdir) == []


# =============================================================================
# Message Bundle Tests
# =============================================================================


class TestMessageBundle:
    def setup_method(self):
        self.bundle = MessageBundle()

    def test_format_with_arguments(self):
        text = self.bundle.format("file.addreplace.error.file_exceeds_limit", "2.0 KB", "1.0 KB")
        assert "2.0 KB" in text
        assert "1.0 KB" in text

    def test_callable(self):
        assert self.bundle("file.addreplace.warning.unzip.failed") == \
            "Failed to unzip the file. Saving the file as is."

    def test_unknown_key_returns_key(self):
        assert self.bundle.format("no.such.key", 1) == "no.such.key"

    def test_all_fallback_warnings_present(self):
        keys = set(self.bundle.keys())
        for suffix in ("", ".size", ".quota", ".charset", ".too_many_files"):
            assert f"file.addreplace.warning.unzip.failed{suffix}" in keys

    def test_custom_bundle_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "messages.yaml"
            path.write_text('greeting: "Hello {0}"\n', encoding="utf-8")
            assert MessageBundle(path).format("greeting", "world") == "Hello world"


# =============================================================================
# Settings Tests
# =============================================================================


class TestIngestSettings:
    def _write_config(self, tmpdir, body):
        path = Path(tmpdir) / "config.yaml"
        path.write_text(body, encoding="utf-8")
        return path

    def test_defaults(self):
        settings = IngestSettings()
        assert settings.temp_directory is None
        assert settings.zip_upload_files_limit == 1000
        assert settings.fixity_algorithm is ChecksumType.MD5

    def test_from_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write_config(tmpdir, (
                "ingest:\n"
                f"  temp_directory: {tmpdir}\n"
                "  max_file_upload_size: 2048\n"
                "  zip_upload_files_limit: 10\n"
                "  fixity_algorithm: SHA-256\n"
                "  zip_name_encoding: cp437\n"
                "  bagit_handler_enabled: true\n"
            ))
            with patch.dict(os.environ, {}, clear=False):
                settings = IngestSettings.from_config(path, env_file=Path(tmpdir) / "absent.env")

        assert settings.temp_directory == Path(tmpdir)
        assert settings.max_file_upload_size == 2048
        assert settings.zip_upload_files_limit == 10
        assert settings.fixity_algorithm is ChecksumType.SHA256
        assert settings.zip_name_encoding == "cp437"
        assert settings.bagit_handler_enabled is True

    def test_environment_overrides(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write_config(tmpdir, "ingest:\n  max_file_upload_size: 2048\n")
            env = {"INGEST_MAX_FILE_UPLOAD_SIZE": "4096", "INGEST_FIXITY_ALGORITHM": "sha1"}
            with patch.dict(os.environ, env):
                settings = IngestSettings.from_config(path, env_file=Path(tmpdir) / "absent.env")

        assert settings.max_file_upload_size == 4096
        assert settings.fixity_algorithm is ChecksumType.SHA1

    def test_empty_section_gives_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write_config(tmpdir, "ingest:\n")
            settings = IngestSettings.from_config(path, env_file=Path(tmpdir) / "absent.env")
        assert settings.max_file_upload_size is None
        assert settings.zip_upload_files_limit == 1000

    def test_missing_config_raises(self):
        with pytest.raises(FileNotFoundError):
            IngestSettings.from_config(Path("/nonexistent/config.yaml"))

    def test_missing_section_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write_config(tmpdir, "logger:\n  log_level: INFO\n")
            with pytest.raises(ValueError, match="ingest"):
                IngestSettings.from_config(path)

    def test_malformed_number_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write_config(tmpdir, "ingest:\n  max_file_upload_size: lots\n")
            with pytest.raises(ValueError, match="max_file_upload_size"):
                IngestSettings.from_config(path, env_file=Path(tmpdir) / "absent.env")


# =============================================================================
# Registry Tests
# =============================================================================


class TestUnpackerRegistry:
    def test_default_registry(self):
        registry = create_default_registry()
        supported = registry.supported_types()
        for content_type in (MIME_TYPE_ZIP, MIME_TYPE_GZIP, MIME_TYPE_FITS_GZIPPED, MIME_TYPE_SHAPEFILE):
            assert content_type in supported
        assert MIME_TYPE_BAGIT not in supported

    def test_package_handler_registers_bagit(self):
        registry = create_default_registry(BagItPackageHandler())
        assert registry.get_unpacker(MIME_TYPE_BAGIT) is not None

    def test_lookup_is_case_insensitive(self):
        registry = create_default_registry()
        assert registry.get_unpacker("Application/ZIP") is registry.get_unpacker(MIME_TYPE_ZIP)

    def test_unsupported_returns_none(self):
        registry = create_default_registry()
        assert registry.get_unpacker("text/csv") is None
        assert registry.get_unpacker(None) is None
        assert UnpackerRegistry().supported_types() == []


# =============================================================================
# Shapefile Unpacker Tests
# =============================================================================


class TestShapefileUnpacker:
    def test_archive_without_complete_set_is_an_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            data = _zip_bytes({"notes.txt": "no shapes here"})
            context = IngestContext(filename="notes.zip", scratch_dir=Path(tmpdir))
            with stage(io.BytesIO(data), tmpdir) as staged:
                outcome = ShapefileUnpacker().unpack(staged, context)
            assert outcome.status is UnpackStatus.ERROR
            assert "No complete shapefile set" in outcome.reason
            assert os.listdir(tmpdir) == []

    def test_unreadable_archive_is_an_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            context = IngestContext(filename="roads.zip", scratch_dir=Path(tmpdir))
            with stage(io.BytesIO(b"PK\x03\x04 not really a zip"), tmpdir) as staged:
                outcome = ShapefileUnpacker().unpack(staged, context)
            assert outcome.status is UnpackStatus.ERROR
            assert "roads.zip" in outcome.reason
            assert os.listdir(tmpdir) == []


# =============================================================================
# Manifest Tests
# =============================================================================


class TestFilesToDataframe:
    def test_basic_mapping(self):
        result = IngestionResult.success("upload.zip", MIME_TYPE_ZIP, [
            UnpackedFile("a.csv", "text/csv", 100, "/scratch/tmp1upload", None, ChecksumType.MD5, "abc"),
            UnpackedFile("b.txt", "text/plain", 50, "/scratch/tmp2upload", "docs", ChecksumType.MD5, "def"),
        ])
        df = files_to_dataframe(result)
        assert list(df.columns) == MANIFEST_COLUMNS
        assert len(df) == 2
        assert df["filename"].tolist() == ["a.csv", "b.txt"]
        assert df["size"].tolist() == [100, 50]
        assert df["checksum_type"].tolist() == ["MD5", "MD5"]
        assert df.loc[1, "directory_label"] == "docs"

    def test_unknown_size(self):
        result = IngestionResult.success("stored.csv", "text/csv", [
            UnpackedFile("stored.csv", "text/csv", None, "s3://bucket/key"),
        ])
        df = files_to_dataframe(result)
        assert pd.isna(df.loc[0, "size"])
        assert str(df["size"].dtype) == "Int64"

    def test_missing_text_values_are_none(self):
        result = IngestionResult.success("upload.zip", MIME_TYPE_ZIP, [
            UnpackedFile("a.csv", "text/csv", 100, "/scratch/tmp1upload", "data", ChecksumType.MD5, "abc"),
            UnpackedFile("b.txt", "text/plain", 50, "/scratch/tmp2upload"),
        ])
        df = files_to_dataframe(result)
        assert df["directory_label"].tolist() == ["data", None]
        assert df["checksum"].tolist() == ["abc", None]
        assert df["ingest_warning"].tolist() == [None, None]

    def test_error_result_gives_empty_frame(self):
        df = files_to_dataframe(IngestionResult.error("big.bin", None, "too big"))
        assert df.empty
        assert list(df.columns) == MANIFEST_COLUMNS
