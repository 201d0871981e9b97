from pathlib import Path

import pytest

from texture_service.conversion import (
    BatchReport,
    ConversionDirection,
    ConversionError,
    ConversionResult,
    UploadedFile,
)


class TestConversionDirection:
    def test_parse_form_values(self):
        assert ConversionDirection.parse("btx2png") is ConversionDirection.BTX_TO_PNG
        assert ConversionDirection.parse(" PNG2BTX ") is ConversionDirection.PNG_TO_BTX

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="unknown conversion type"):
            ConversionDirection.parse("png2jpg")


class TestUploadedFile:
    def test_size_and_base_name(self):
        upload = UploadedFile(name="texture.btx", data=b"12345")
        assert upload.size == 5
        assert upload.safe_name == "texture.btx"
        assert upload.base_name == "texture"

    def test_directory_parts_are_dropped(self):
        assert UploadedFile(name="../../etc/evil.png", data=b"").safe_name == "evil.png"
        assert UploadedFile(name="C:\\textures\\wall.btx", data=b"").safe_name == "wall.btx"

    def test_degenerate_names_fall_back(self):
        assert UploadedFile(name="", data=b"").safe_name == "upload"
        assert UploadedFile(name="..", data=b"").safe_name == "upload"
        assert UploadedFile(name="..", data=b"").base_name == "upload"

    def test_only_last_suffix_is_removed(self):
        assert UploadedFile(name="atlas.v2.btx", data=b"").base_name == "atlas.v2"


class TestBatchReport:
    def _result(self, name):
        return ConversionResult(name, Path("/out") / name, name)

    def test_summary_counts_successes_over_total(self):
        report = BatchReport.from_outcomes(
            [self._result("a.png"), ConversionError("b.btx", "too short"), self._result("c.png")]
        )
        assert report.total == 3
        assert [r.output_name for r in report.results] == ["a.png", "c.png"]
        assert report.errors == [ConversionError("b.btx", "too short")]
        assert report.succeeded
        assert report.summary == "Converted 2/3 files"

    def test_all_failed(self):
        report = BatchReport.from_outcomes([ConversionError("a.btx", "x")])
        assert not report.succeeded
        assert report.summary == "All conversions failed"

    def test_empty_batch(self):
        report = BatchReport.from_outcomes([])
        assert report.total == 0
        assert not report.succeeded
