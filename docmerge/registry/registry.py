import uuid
from collections.abc import Iterable
from dataclasses import dataclass, replace

from docmerge.logging.logger import Log
from docmerge.merge.models import MergedArtifact
from docmerge.merge.offsets import project_artifact
from docmerge.registry.exceptions import (
    DocumentNotFoundError,
    FileIntakeError,
    InvalidOrderError,
    StaleResultError,
)
from docmerge.registry.intake import FileIntake
from docmerge.registry.models import (
    AddDocumentsResult,
    DocumentStatus,
    PageCountListener,
    RemovalListener,
    SourceDocument,
    UploadedFile,
)


@dataclass
class _Entry:
    """Registry-owned state for one document, including its byte buffers."""

    document: SourceDocument
    source: UploadedFile | None
    generation: int
    pdf_bytes: bytes | None = None

    def release_source(self) -> None:
        if self.source is not None:
            self.source.close()
            self.source = None

    def release(self) -> None:
        self.release_source()
        self.pdf_bytes = None


class DocumentRegistry:
    """Ordered set of uploaded source documents.

    The registry exclusively owns document records and their buffers; other
    components refer to documents by id only. Every mutation bumps ``version``
    and each entry remembers the version at which its content was set, which
    lets async normalization results be matched against the current content.
    """

    def __init__(self, intake: FileIntake | None = None) -> None:
        self._intake = intake if intake is not None else FileIntake()
        self._entries: dict[str, _Entry] = {}
        self._order: list[str] = []
        self._version = 0
        self._removal_listeners: list[RemovalListener] = []
        self._page_count_listeners: list[PageCountListener] = []

    @property
    def version(self) -> int:
        return self._version

    def add_removal_listener(self, listener: RemovalListener) -> None:
        self._removal_listeners.append(listener)

    def add_page_count_listener(self, listener: PageCountListener) -> None:
        self._page_count_listeners.append(listener)

    def add_documents(self, files: Iterable[UploadedFile]) -> AddDocumentsResult:
        """Validate and append files in submission order.

        A rejected file does not abort the rest of the batch.
        """
        result = AddDocumentsResult()
        for file in files:
            try:
                kind = self._intake.validate(file)
            except FileIntakeError as exc:
                Log.warning(f"Rejected upload: {exc}", file=file.name)
                result.rejected.append(exc)
                continue
            document = SourceDocument(
                id=uuid.uuid4().hex,
                original_name=file.name,
                mime_kind=kind,
                byte_size=file.size,
            )
            self._version += 1
            self._entries[document.id] = _Entry(
                document=document, source=file, generation=self._version
            )
            self._order.append(document.id)
            result.accepted.append(replace(document))
            Log.info(
                f"Accepted document '{file.name}'",
                document=document.id,
                kind=kind.value,
            )
        return result

    def restore(self, documents: Iterable[SourceDocument]) -> None:
        """Load persisted document metadata (no bytes) after existing entries."""
        for document in documents:
            if document.id in self._entries:
                raise ValueError(f"Document {document.id} is already registered")
            self._version += 1
            self._entries[document.id] = _Entry(
                document=replace(document), source=None, generation=self._version
            )
            self._order.append(document.id)

    def replace_document(self, document_id: str, file: UploadedFile) -> SourceDocument:
        """Swap in new content for an existing document, keeping its id and fields.

        Raises:
            DocumentNotFoundError: if the id is unknown.
            FileIntakeError: if the substitute file is rejected.
        """
        entry = self._require(document_id)
        kind = self._intake.validate(file)
        entry.release()
        self._version += 1
        entry.document = SourceDocument(
            id=document_id,
            original_name=file.name,
            mime_kind=kind,
            byte_size=file.size,
            page_count=0,
            status=DocumentStatus.RAW,
        )
        entry.source = file
        entry.generation = self._version
        Log.info(f"Replaced document content with '{file.name}'", document=document_id)
        return replace(entry.document)

    def remove_document(self, document_id: str) -> None:
        """Remove a document, cascade its fields and release its buffers.

        Raises:
            DocumentNotFoundError: if the id is unknown.
        """
        entry = self._require(document_id)
        del self._entries[document_id]
        self._order.remove(document_id)
        self._version += 1
        try:
            for listener in self._removal_listeners:
                listener(document_id)
        finally:
            entry.release()
        Log.info("Removed document", document=document_id)

    def reorder(self, new_order: list[str]) -> None:
        """Set a new merge order.

        Raises:
            InvalidOrderError: if ``new_order`` is not a permutation of the ids.
        """
        if len(new_order) != len(self._order) or set(new_order) != set(self._order):
            raise InvalidOrderError(
                f"New order {new_order} is not a permutation of {self._order}"
            )
        self._order = list(new_order)
        self._version += 1
        Log.info("Reordered documents", order=",".join(new_order))

    def recompute_merged_artifact(self) -> MergedArtifact:
        return project_artifact(self.ordered_documents())

    def get(self, document_id: str) -> SourceDocument:
        return replace(self._require(document_id).document)

    def contains(self, document_id: str) -> bool:
        return document_id in self._entries

    def document_ids(self) -> list[str]:
        return list(self._order)

    def ordered_documents(self) -> list[SourceDocument]:
        return [replace(self._entries[doc_id].document) for doc_id in self._order]

    def page_count(self, document_id: str) -> int:
        return self._require(document_id).document.page_count

    def generation(self, document_id: str) -> int:
        return self._require(document_id).generation

    def read_source(self, document_id: str) -> bytes:
        """Read the uploaded bytes for a document that still holds its source."""
        entry = self._require(document_id)
        if entry.source is None:
            raise DocumentNotFoundError(
                f"Document {document_id} has no source content loaded"
            )
        return entry.source.read()

    def pdf_bytes(self, document_id: str) -> bytes | None:
        return self._require(document_id).pdf_bytes

    def mark_normalized(
        self,
        document_id: str,
        generation: int,
        pdf_bytes: bytes,
        page_count: int,
    ) -> SourceDocument:
        """Apply a successful normalization result.

        Raises:
            StaleResultError: if the document was removed or replaced since
                the normalization task started.
        """
        entry = self._current_entry(document_id, generation)
        entry.pdf_bytes = pdf_bytes
        entry.release_source()
        entry.document.page_count = page_count
        entry.document.status = DocumentStatus.NORMALIZED
        entry.document.failure_reason = None
        self._version += 1
        Log.info(
            f"Document normalized with {page_count} pages", document=document_id
        )
        for listener in self._page_count_listeners:
            listener(document_id, page_count)
        return replace(entry.document)

    def mark_failed(self, document_id: str, generation: int, reason: str) -> SourceDocument:
        """Keep the document visible in a degraded state instead of dropping it."""
        entry = self._current_entry(document_id, generation)
        entry.pdf_bytes = None
        entry.document.status = DocumentStatus.FAILED
        entry.document.failure_reason = reason
        self._version += 1
        Log.warning(f"Document normalization failed: {reason}", document=document_id)
        return replace(entry.document)

    def release_all(self) -> None:
        for entry in self._entries.values():
            entry.release()

    def _current_entry(self, document_id: str, generation: int) -> _Entry:
        entry = self._entries.get(document_id)
        if entry is None or entry.generation != generation:
            raise StaleResultError(
                f"Result for document {document_id} (generation {generation}) is stale"
            )
        return entry

    def _require(self, document_id: str) -> _Entry:
        entry = self._entries.get(document_id)
        if entry is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return entry
