import asyncio
import threading
from unittest.mock import MagicMock, patch

import pymupdf
import pytest

from docmerge.config.settings import Settings
from docmerge.database.repositories.template_repository import PostgresTemplateRepository
from docmerge.editor.session import EditorSession, SessionEvent
from docmerge.fields.models import FieldType, Position
from docmerge.fields.store import FieldStore
from docmerge.geometry.transform import Point
from docmerge.merge.engine import MergeEngine
from docmerge.normalization.factory import NormalizerFactory
from docmerge.normalization.models import CancelCheck, NormalizationResult
from docmerge.normalization.normalizer import DocumentNormalizer
from docmerge.registry.intake import DOCX_MIME_TYPE, PDF_MIME_TYPE
from docmerge.registry.models import DocumentStatus, MimeKind, UploadedFile
from docmerge.registry.registry import DocumentRegistry
from docmerge.templates.memory_repository import InMemoryTemplateRepository


class _GatedNormalizer(DocumentNormalizer):
    """Blocks every conversion until ``gate`` is set."""

    def __init__(self, inner: DocumentNormalizer) -> None:
        super().__init__({})
        self._inner = inner
        self.gate = threading.Event()
        self.started = threading.Event()

    def normalize(
        self,
        source_bytes: bytes,
        kind: MimeKind,
        cancel_check: CancelCheck | None = None,
    ) -> NormalizationResult:
        self.started.set()
        self.gate.wait(5)
        return self._inner.normalize(source_bytes, kind, cancel_check)


def _session() -> EditorSession:
    return EditorSession.from_settings(Settings(), repository=InMemoryTemplateRepository())


def _gated_session() -> tuple[_GatedNormalizer, EditorSession]:
    registry = DocumentRegistry()
    gated = _GatedNormalizer(NormalizerFactory.create(Settings()))
    return gated, EditorSession(registry, FieldStore(registry), gated, MergeEngine())


def _pdf(data: bytes, name: str = "terms.pdf") -> UploadedFile:
    return UploadedFile.from_bytes(name, PDF_MIME_TYPE, data)


def _docx(data: bytes, name: str = "addendum.docx") -> UploadedFile:
    return UploadedFile.from_bytes(name, DOCX_MIME_TYPE, data)


class TestUploadAndRebuild:
    def test_normalizes_and_merges(
        self, multi_page_pdf_bytes: bytes, sample_docx_bytes: bytes
    ) -> None:
        async def scenario() -> None:
            session = _session()
            result = await session.upload(
                [_pdf(multi_page_pdf_bytes), _docx(sample_docx_bytes)]
            )
            pdf_id, docx_id = (d.id for d in result.accepted)

            artifact = await session.rebuild(wait=True)
            assert not artifact.pending
            assert artifact.page_offsets == {pdf_id: 0, docx_id: 2}
            assert artifact.total_pages == 3

            merged = await session.render_merged_pdf()
            with pymupdf.open(stream=merged, filetype="pdf") as doc:
                assert doc.page_count == 3
                assert "Sales Agreement" in doc[2].get_text()
            await session.close()

        asyncio.run(scenario())

    def test_rebuild_without_waiting_is_pending(self, sample_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            session = _session()
            await session.upload([_pdf(sample_pdf_bytes)])

            artifact = await session.rebuild(wait=False)
            assert artifact.pending
            assert session.has_pending_normalization()

            artifact = await session.rebuild(wait=True)
            assert not artifact.pending
            assert artifact.total_pages == 1
            await session.close()

        asyncio.run(scenario())

    def test_rejected_upload_starts_no_work(self) -> None:
        async def scenario() -> None:
            session = _session()
            result = await session.upload([UploadedFile.from_bytes("car.png", "image/png", b"png")])
            assert len(result.rejected) == 1
            assert not session.has_pending_normalization()
            assert session.registry.document_ids() == []
            await session.close()

        asyncio.run(scenario())

    def test_corrupt_docx_is_skipped_and_can_be_replaced(
        self, sample_pdf_bytes: bytes, multi_page_pdf_bytes: bytes
    ) -> None:
        async def scenario() -> None:
            session = _session()
            result = await session.upload([_pdf(sample_pdf_bytes), _docx(b"corrupt", "bad.docx")])
            pdf_id, bad_id = (d.id for d in result.accepted)

            artifact = await session.rebuild()
            assert artifact.skipped_document_ids == [bad_id]
            assert artifact.total_pages == 1
            assert session.registry.get(bad_id).needs_substitute

            await session.replace(bad_id, _pdf(multi_page_pdf_bytes, "bad.pdf"))
            artifact = await session.rebuild()
            assert session.registry.get(bad_id).status is DocumentStatus.NORMALIZED
            assert artifact.page_offsets == {pdf_id: 0, bad_id: 1}
            assert artifact.total_pages == 3
            await session.close()

        asyncio.run(scenario())


class TestCancellation:
    def test_removing_document_mid_normalization_discards_result(
        self, sample_pdf_bytes: bytes
    ) -> None:
        async def scenario() -> None:
            gated, session = _gated_session()

            result = await session.upload([_pdf(sample_pdf_bytes)])
            doc_id = result.accepted[0].id
            await asyncio.to_thread(gated.started.wait, 5)

            await session.remove(doc_id)
            gated.gate.set()
            await session.wait_for_normalization()
            await asyncio.sleep(0.05)

            assert session.registry.document_ids() == []
            artifact = await session.rebuild()
            assert artifact.is_empty
            await session.close()

        asyncio.run(scenario())

    def test_close_cancels_outstanding_work(self, sample_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            gated, session = _gated_session()
            file = _pdf(sample_pdf_bytes)

            await session.upload([file])
            await asyncio.to_thread(gated.started.wait, 5)
            await session.close()
            gated.gate.set()

            assert not session.has_pending_normalization()
            assert file.data is None

        asyncio.run(scenario())

    def test_close_awaits_cancelled_tasks(self, sample_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            gated, session = _gated_session()
            await session.upload([_pdf(sample_pdf_bytes), _pdf(sample_pdf_bytes, "b.pdf")])
            await asyncio.to_thread(gated.started.wait, 5)

            await session.close()
            gated.gate.set()

            running = [
                task for task in asyncio.all_tasks() if task.get_name().startswith("normalize-")
            ]
            assert running == []

        asyncio.run(scenario())


class TestFieldsAndEvents:
    def test_subscribers_are_notified(self, sample_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            session = _session()
            events: list[SessionEvent] = []
            unsubscribe = session.subscribe(events.append)

            result = await session.upload([_pdf(sample_pdf_bytes)])
            await session.rebuild()
            session.place_field(result.accepted[0].id, 1, FieldType.TEXT, Position(10, 10))
            unsubscribe()
            await session.rebuild()

            assert events == [
                SessionEvent.DOCUMENTS_CHANGED,
                SessionEvent.DOCUMENT_NORMALIZED,
                SessionEvent.ARTIFACT_REBUILT,
                SessionEvent.FIELDS_CHANGED,
            ]
            await session.close()

        asyncio.run(scenario())

    def test_failing_subscriber_does_not_break_session(self, sample_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            session = _session()

            def _broken(event: SessionEvent) -> None:
                raise RuntimeError("ui crashed")

            session.subscribe(_broken)
            await session.upload([_pdf(sample_pdf_bytes)])
            artifact = await session.rebuild()
            assert artifact.total_pages == 1
            await session.close()

        asyncio.run(scenario())

    def test_gesture_at_zoom_and_merged_page(
        self, sample_pdf_bytes: bytes, multi_page_pdf_bytes: bytes
    ) -> None:
        async def scenario() -> None:
            session = _session()
            result = await session.upload([_pdf(sample_pdf_bytes), _pdf(multi_page_pdf_bytes)])
            second = result.accepted[1].id
            await session.rebuild()

            field = session.place_field(second, 2, FieldType.SIGNATURE, Position(100, 100))
            assert session.merged_page_of(field.id) == 3

            assert session.set_zoom(5.0) == 2.0
            session.start_gesture(field.id, Point(0, 0))
            session.drag_to(Point(50, 20))
            moved = session.finish_gesture()
            assert moved is not None
            assert moved.position == Position(125, 110)

            session.reorder([second, result.accepted[0].id])
            assert session.merged_page_of(field.id) == 2

            await session.remove(second)
            assert session.fields.list_all() == []
            await session.close()

        asyncio.run(scenario())

    def test_edit_and_delete_field_notify(self, multi_page_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            session = _session()
            result = await session.upload([_pdf(multi_page_pdf_bytes)])
            await session.rebuild()
            field = session.place_field(result.accepted[0].id, 1, FieldType.TEXT, Position(0, 0))
            events: list[SessionEvent] = []
            session.subscribe(events.append)

            edited = session.edit_field(field.id, {"page_in_document": 2, "label": "Buyer"})
            session.delete_field(field.id)

            assert edited.page_in_document == 2
            assert edited.label == "Buyer"
            assert session.fields.list_all() == []
            assert events == [SessionEvent.FIELDS_CHANGED, SessionEvent.FIELDS_CHANGED]
            await session.close()

        asyncio.run(scenario())

    def test_generate_uses_current_artifact(self, multi_page_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            session = _session()
            result = await session.upload([_pdf(multi_page_pdf_bytes)])
            await session.rebuild()
            session.place_field(
                result.accepted[0].id, 2, FieldType.TEXT, Position(0, 0), merge_field="customer_name"
            )

            generated = session.generate({"customer_name": "Jane"}, "Hello {{customer_name}}")

            assert generated.filled_body_text == "Hello Jane"
            (value,) = generated.field_values.values()
            assert value.value == "Jane"
            assert value.merged_page == 2
            await session.close()

        asyncio.run(scenario())


class TestTemplates:
    def test_save_and_open_in_new_session(self, multi_page_pdf_bytes: bytes) -> None:
        repository = InMemoryTemplateRepository()

        async def scenario() -> None:
            session = EditorSession.from_settings(Settings(), repository=repository)
            result = await session.upload([_pdf(multi_page_pdf_bytes)])
            await session.rebuild()
            session.place_field(result.accepted[0].id, 2, FieldType.DATE, Position(5, 5))
            before = await session.rebuild()
            session.save(session.to_template("tpl-1", "Purchase", body_text="{{agreement_date}}"))
            await session.close()

            reopened = EditorSession.from_settings(Settings(), repository=repository)
            template = reopened.open("tpl-1")
            after = await reopened.rebuild()

            assert template.body_text == "{{agreement_date}}"
            assert after.page_offsets == before.page_offsets
            assert after.total_pages == before.total_pages
            assert len(reopened.fields.list_all()) == 1
            stamp = reopened.fields.next_stamp()
            assert stamp > reopened.fields.list_all()[0].version
            await reopened.close()

        asyncio.run(scenario())

    def test_load_into_non_empty_session_raises(self, sample_pdf_bytes: bytes) -> None:
        async def scenario() -> None:
            session = _session()
            await session.upload([_pdf(sample_pdf_bytes)])
            await session.rebuild()
            template = session.to_template("t", "T")
            with pytest.raises(ValueError, match="empty session"):
                session.load_template(template)
            await session.close()

        asyncio.run(scenario())


class TestPostgresTemplateStore:
    @patch("docmerge.database.repositories.template_repository.close_pool")
    @patch("docmerge.database.repositories.template_repository.ensure_schema")
    @patch("docmerge.database.repositories.template_repository.init_pool")
    @patch.object(PostgresTemplateRepository, "save")
    def test_session_opens_and_closes_pool(
        self,
        mock_save: MagicMock,
        mock_init_pool: MagicMock,
        mock_ensure_schema: MagicMock,
        mock_close_pool: MagicMock,
    ) -> None:
        settings = Settings(template_store="postgres")

        async def scenario() -> None:
            session = EditorSession.from_settings(settings)
            mock_init_pool.assert_called_once_with(settings)
            mock_ensure_schema.assert_called_once()

            template = session.to_template("tpl-1", "Lease")
            session.save(template)
            mock_save.assert_called_once_with(template)

            await session.close()
            mock_close_pool.assert_called_once()

        asyncio.run(scenario())

    @patch("docmerge.database.repositories.template_repository.close_pool")
    def test_injected_repository_is_not_closed(self, mock_close_pool: MagicMock) -> None:
        repository = PostgresTemplateRepository(owns_pool=True)

        async def scenario() -> None:
            session = EditorSession.from_settings(Settings(), repository=repository)
            await session.close()

        asyncio.run(scenario())
        mock_close_pool.assert_not_called()
