import io

import pytest

from docmerge.registry.exceptions import FileTooLargeError, UnsupportedKindError, ValidationError
from docmerge.registry.intake import DOCX_MIME_TYPE, PDF_MIME_TYPE, FileIntake, detect_kind
from docmerge.registry.models import MimeKind, UploadedFile


class TestDetectKind:
    def test_pdf_mime_type(self) -> None:
        assert detect_kind("a.bin", PDF_MIME_TYPE) is MimeKind.PDF

    def test_docx_mime_type(self) -> None:
        assert detect_kind("a.bin", DOCX_MIME_TYPE) is MimeKind.WORD_PROCESSOR

    def test_mime_parameters_are_ignored(self) -> None:
        assert detect_kind("a.pdf", "Application/PDF; charset=binary") is MimeKind.PDF

    def test_generic_mime_falls_back_to_suffix(self) -> None:
        assert detect_kind("Contract.DOCX", "application/octet-stream") is MimeKind.WORD_PROCESSOR
        assert detect_kind("scan.pdf", "") is MimeKind.PDF

    def test_specific_foreign_mime_is_not_overridden_by_suffix(self) -> None:
        assert detect_kind("photo.pdf", "image/png") is None

    def test_unknown_suffix(self) -> None:
        assert detect_kind("notes.txt", "") is None


class TestFileIntake:
    def test_accepts_pdf_within_limit(self) -> None:
        intake = FileIntake(max_file_size_bytes=100)
        file = UploadedFile(name="a.pdf", mime_type=PDF_MIME_TYPE, size=100)
        assert intake.validate(file) is MimeKind.PDF

    def test_rejects_oversized_file_without_reading_it(self) -> None:
        stream = io.BytesIO(b"x" * 10)
        file = UploadedFile(name="big.pdf", mime_type=PDF_MIME_TYPE, size=101, stream=stream)
        with pytest.raises(FileTooLargeError) as exc_info:
            FileIntake(max_file_size_bytes=100).validate(file)
        assert exc_info.value.file_name == "big.pdf"
        assert stream.tell() == 0

    def test_rejects_unsupported_kind(self) -> None:
        file = UploadedFile.from_bytes("image.png", "image/png", b"\x89PNG")
        with pytest.raises(UnsupportedKindError, match="only PDF and DOCX"):
            FileIntake().validate(file)

    def test_intake_errors_are_validation_errors(self) -> None:
        file = UploadedFile.from_bytes("image.png", "image/png", b"\x89PNG")
        with pytest.raises(ValidationError):
            FileIntake().validate(file)

    def test_default_ceiling(self) -> None:
        assert FileIntake().max_file_size_bytes == 10 * 1024 * 1024


class TestUploadedFile:
    def test_from_path_reads_lazily(self, tmp_path, sample_pdf_bytes: bytes) -> None:
        path = tmp_path / "doc.pdf"
        path.write_bytes(sample_pdf_bytes)
        file = UploadedFile.from_path(path)
        assert file.name == "doc.pdf"
        assert file.size == len(sample_pdf_bytes)
        assert file.data is None
        assert file.read() == sample_pdf_bytes

    def test_stream_is_read_once_and_closed(self) -> None:
        stream = io.BytesIO(b"payload")
        file = UploadedFile(name="a.pdf", mime_type=PDF_MIME_TYPE, size=7, stream=stream)
        assert file.read() == b"payload"
        assert file.read() == b"payload"
        file.close()
        assert stream.closed
        assert file.data is None

    def test_read_without_content_raises(self) -> None:
        file = UploadedFile(name="a.pdf", mime_type=PDF_MIME_TYPE, size=0)
        with pytest.raises(ValueError, match="no content"):
            file.read()
