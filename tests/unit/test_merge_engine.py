import pymupdf
import pytest

from docmerge.merge.engine import MergeEngine
from docmerge.merge.exceptions import ArtifactPendingError, ConcatenationError
from docmerge.merge.models import MergedArtifact
from docmerge.merge.offsets import project_artifact
from docmerge.normalization.exceptions import NormalizationCancelledError
from docmerge.registry.models import DocumentStatus, MimeKind, SourceDocument


def _doc(doc_id: str, pages: int, status: DocumentStatus = DocumentStatus.NORMALIZED) -> SourceDocument:
    return SourceDocument(
        id=doc_id,
        original_name=f"{doc_id}.pdf",
        mime_kind=MimeKind.PDF,
        byte_size=10,
        page_count=pages,
        status=status,
    )


def _page_texts(pdf_bytes: bytes) -> list[str]:
    with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text().strip() for page in doc]


class TestBuildMergedArtifact:
    def test_returns_projection_and_remembers_it(self) -> None:
        engine = MergeEngine()
        artifact = engine.build_merged_artifact([_doc("a", 2), _doc("b", 1)])
        assert artifact.total_pages == 3
        assert engine.latest_artifact == artifact

    def test_changed_artifact_releases_merged_bytes(
        self, sample_pdf_bytes: bytes
    ) -> None:
        engine = MergeEngine()
        artifact = engine.build_merged_artifact([_doc("a", 1)])
        engine.concatenate(artifact, lambda _: sample_pdf_bytes)
        assert engine.latest_bytes is not None

        engine.build_merged_artifact([_doc("a", 1)])
        assert engine.latest_bytes is not None

        engine.build_merged_artifact([_doc("a", 1), _doc("b", 2)])
        assert engine.latest_bytes is None


class TestConcatenate:
    def test_concatenates_in_artifact_order(
        self, sample_pdf_bytes: bytes, multi_page_pdf_bytes: bytes
    ) -> None:
        sources = {"two": multi_page_pdf_bytes, "one": sample_pdf_bytes}
        artifact = project_artifact([_doc("two", 2), _doc("one", 1)])

        merged = MergeEngine().concatenate(artifact, sources.get)

        assert _page_texts(merged) == ["Page one content", "Page two content", "Hello PDF World"]

    def test_skipped_documents_are_not_included(self, sample_pdf_bytes: bytes) -> None:
        artifact = project_artifact(
            [_doc("bad", 0, DocumentStatus.FAILED), _doc("ok", 1)]
        )
        merged = MergeEngine().concatenate(artifact, {"ok": sample_pdf_bytes}.get)
        assert _page_texts(merged) == ["Hello PDF World"]

    def test_zero_pages_yield_empty_bytes(self) -> None:
        assert MergeEngine().concatenate(MergedArtifact(), lambda _: None) == b""

    def test_pending_artifact_is_refused(self) -> None:
        artifact = project_artifact([_doc("a", 0, DocumentStatus.RAW)])
        with pytest.raises(ArtifactPendingError):
            MergeEngine().concatenate(artifact, lambda _: None)

    def test_missing_pdf_raises(self) -> None:
        artifact = project_artifact([_doc("a", 1)])
        with pytest.raises(ConcatenationError, match="no normalized PDF"):
            MergeEngine().concatenate(artifact, lambda _: None)

    def test_page_count_mismatch_raises(self, sample_pdf_bytes: bytes) -> None:
        artifact = project_artifact([_doc("a", 3)])
        with pytest.raises(ConcatenationError, match="expected 3"):
            MergeEngine().concatenate(artifact, lambda _: sample_pdf_bytes)

    def test_unreadable_pdf_is_wrapped(self) -> None:
        artifact = project_artifact([_doc("a", 1)])
        with pytest.raises(ConcatenationError):
            MergeEngine().concatenate(artifact, lambda _: b"not a pdf")

    def test_cancel_check_stops_concatenation(self, sample_pdf_bytes: bytes) -> None:
        artifact = project_artifact([_doc("a", 1)])
        with pytest.raises(NormalizationCancelledError):
            MergeEngine().concatenate(artifact, lambda _: sample_pdf_bytes, lambda: True)

    def test_result_is_retained_until_release(self, sample_pdf_bytes: bytes) -> None:
        engine = MergeEngine()
        artifact = project_artifact([_doc("a", 1)])
        merged = engine.concatenate(artifact, lambda _: sample_pdf_bytes)
        assert engine.latest_bytes == merged

        engine.release()
        assert engine.latest_bytes is None
