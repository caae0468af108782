import asyncio
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from docmerge.config.settings import Settings
from docmerge.fields.models import Field, FieldType, Position, Size
from docmerge.fields.store import FieldStore
from docmerge.generation.generator import generate
from docmerge.generation.models import GenerationResult
from docmerge.geometry.interaction import Handle, InteractionController
from docmerge.geometry.transform import Point, clamp_zoom
from docmerge.logging.logger import Log
from docmerge.merge.engine import MergeEngine
from docmerge.merge.models import MergedArtifact
from docmerge.merge.translation import translate_page
from docmerge.normalization.exceptions import NormalizationCancelledError, NormalizationFailure
from docmerge.normalization.factory import NormalizerFactory
from docmerge.normalization.normalizer import DocumentNormalizer
from docmerge.registry.exceptions import StaleResultError
from docmerge.registry.intake import FileIntake
from docmerge.registry.models import AddDocumentsResult, SourceDocument, UploadedFile
from docmerge.registry.registry import DocumentRegistry
from docmerge.templates.factory import TemplateRepositoryFactory
from docmerge.templates.models import TemplateCategory, TemplateRecord, TemplateStatus
from docmerge.templates.repository import TemplateRepository
from docmerge.tokens.vocabulary import TokenVocabulary


class SessionEvent(str, Enum):
    DOCUMENTS_CHANGED = "documents_changed"
    DOCUMENT_NORMALIZED = "document_normalized"
    DOCUMENT_FAILED = "document_failed"
    FIELDS_CHANGED = "fields_changed"
    ARTIFACT_REBUILT = "artifact_rebuilt"


Subscriber = Callable[[SessionEvent], None]


@dataclass
class _NormalizationTask:
    document_id: str
    generation: int
    cancel_event: threading.Event
    task: "asyncio.Task[None]"


class EditorSession:
    """One template-editing session over a registry, field store and merge engine.

    All state changes happen on the event loop. Conversion and concatenation
    run in worker threads and poll a cancel flag between pages. Each
    normalization result is applied only if its document still has the
    content the task started from; otherwise it is dropped as stale.
    """

    def __init__(
        self,
        registry: DocumentRegistry,
        store: FieldStore,
        normalizer: DocumentNormalizer,
        engine: MergeEngine,
        *,
        vocabulary: TokenVocabulary | None = None,
        repository: TemplateRepository | None = None,
        min_zoom: float = 0.5,
        max_zoom: float = 2.0,
        owns_repository: bool = False,
    ) -> None:
        self._registry = registry
        self._store = store
        self._normalizer = normalizer
        self._engine = engine
        self._vocabulary = vocabulary if vocabulary is not None else TokenVocabulary.default()
        self._repository = repository
        self._owns_repository = owns_repository
        self._interaction = InteractionController(store)
        self._min_zoom = min_zoom
        self._max_zoom = max_zoom
        self._zoom = 1.0
        self._tasks: dict[str, _NormalizationTask] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._subscribers: list[Subscriber] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        vocabulary: TokenVocabulary | None = None,
        repository: TemplateRepository | None = None,
    ) -> "EditorSession":
        vocabulary = vocabulary if vocabulary is not None else TokenVocabulary.default()
        registry = DocumentRegistry(FileIntake(settings.max_file_size_bytes))
        store = FieldStore(
            registry,
            vocabulary=vocabulary,
            min_width=settings.min_field_width,
            min_height=settings.min_field_height,
            default_width=settings.default_field_width,
            default_height=settings.default_field_height,
        )
        return cls(
            registry,
            store,
            NormalizerFactory.create(settings),
            MergeEngine(),
            vocabulary=vocabulary,
            repository=repository or TemplateRepositoryFactory.create(settings),
            owns_repository=repository is None,
            min_zoom=settings.min_zoom,
            max_zoom=settings.max_zoom,
        )

    @property
    def registry(self) -> DocumentRegistry:
        return self._registry

    @property
    def fields(self) -> FieldStore:
        return self._store

    @property
    def engine(self) -> MergeEngine:
        return self._engine

    @property
    def interaction(self) -> InteractionController:
        return self._interaction

    @property
    def vocabulary(self) -> TokenVocabulary:
        return self._vocabulary

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register for state-change notifications; returns an unsubscribe function."""
        self._subscribers.append(subscriber)
        return lambda: self._subscribers.remove(subscriber)

    # Documents

    async def upload(self, files: Iterable[UploadedFile]) -> AddDocumentsResult:
        result = self._registry.add_documents(files)
        for document in result.accepted:
            self._start_normalization(document.id)
        if result.accepted:
            self._notify(SessionEvent.DOCUMENTS_CHANGED)
        return result

    async def replace(self, document_id: str, file: UploadedFile) -> SourceDocument:
        """Swap a document's content (e.g. a PDF substitute for a failed DOCX)."""
        self._cancel_normalization(document_id)
        document = self._registry.replace_document(document_id, file)
        self._start_normalization(document_id)
        self._notify(SessionEvent.DOCUMENTS_CHANGED)
        return document

    async def remove(self, document_id: str) -> None:
        self._cancel_normalization(document_id)
        self._registry.remove_document(document_id)
        self._locks.pop(document_id, None)
        self._notify(SessionEvent.DOCUMENTS_CHANGED)
        self._notify(SessionEvent.FIELDS_CHANGED)

    def reorder(self, new_order: list[str]) -> None:
        self._registry.reorder(new_order)
        self._notify(SessionEvent.DOCUMENTS_CHANGED)

    async def wait_for_normalization(self) -> None:
        while self._tasks:
            pending = [entry.task for entry in self._tasks.values()]
            await asyncio.gather(*pending, return_exceptions=True)

    def has_pending_normalization(self) -> bool:
        return bool(self._tasks)

    # Merged artifact

    async def rebuild(self, wait: bool = True) -> MergedArtifact:
        """Recompute the merged artifact.

        With ``wait=False`` the result may be marked ``pending`` when some
        documents are still being normalized.
        """
        if wait:
            await self.wait_for_normalization()
        artifact = self._engine.build_merged_artifact(self._registry.ordered_documents())
        self._notify(SessionEvent.ARTIFACT_REBUILT)
        return artifact

    async def render_merged_pdf(self, cancel_event: threading.Event | None = None) -> bytes:
        artifact = await self.rebuild(wait=True)
        cancel_event = cancel_event or threading.Event()
        return await asyncio.to_thread(
            self._engine.concatenate,
            artifact,
            self._registry.pdf_bytes,
            cancel_event.is_set,
        )

    def merged_page_of(self, field_id: str) -> int:
        """Translate a field's page against the registry as it is right now."""
        artifact = self._registry.recompute_merged_artifact()
        return translate_page(artifact, self._store.get(field_id))

    # Fields

    def place_field(
        self,
        document_id: str,
        page_in_document: int,
        type: FieldType | str,
        position: Position,
        size: Size | None = None,
        **attributes: Any,
    ) -> Field:
        field = self._store.create(
            document_id, page_in_document, type, position, size, **attributes
        )
        self._notify(SessionEvent.FIELDS_CHANGED)
        return field

    def edit_field(
        self,
        field_id: str,
        changes: Mapping[str, Any],
        stamp: int | None = None,
    ) -> Field:
        field = self._store.update(field_id, changes, stamp)
        self._notify(SessionEvent.FIELDS_CHANGED)
        return field

    def delete_field(self, field_id: str) -> None:
        self._store.delete(field_id)
        self._notify(SessionEvent.FIELDS_CHANGED)

    # Canvas

    @property
    def zoom(self) -> float:
        return self._zoom

    def set_zoom(self, scale: float) -> float:
        self._zoom = clamp_zoom(scale, self._min_zoom, self._max_zoom)
        return self._zoom

    def select_at(self, point: Point, document_id: str, page_in_document: int) -> Field | None:
        """Select the topmost field under a screen-pixel click at the current zoom."""
        return self._interaction.select_at(point, self._zoom, document_id, page_in_document)

    def start_gesture(self, field_id: str, pointer: Point, handle: Handle = Handle.BODY) -> Field | None:
        return self._interaction.pointer_down(field_id, pointer, handle)

    def drag_to(self, pointer: Point) -> Field | None:
        return self._interaction.pointer_move(pointer, self._zoom)

    def finish_gesture(self) -> Field | None:
        field = self._interaction.pointer_up()
        if field is not None:
            self._notify(SessionEvent.FIELDS_CHANGED)
        return field

    # Generation and persistence

    def generate(
        self,
        values_by_token: Mapping[str, object],
        body_text: str = "",
        field_values: Mapping[str, object] | None = None,
    ) -> GenerationResult:
        return generate(
            self._registry.recompute_merged_artifact(),
            self._store.list_all(),
            values_by_token,
            body_text,
            field_values,
        )

    def to_template(
        self,
        template_id: str,
        name: str,
        *,
        category: TemplateCategory = TemplateCategory.CUSTOM,
        description: str = "",
        status: TemplateStatus = TemplateStatus.DRAFT,
        body_text: str = "",
        created_at: datetime | None = None,
    ) -> TemplateRecord:
        now = datetime.now(timezone.utc)
        return TemplateRecord(
            id=template_id,
            name=name,
            category=category,
            description=description,
            files=self._registry.ordered_documents(),
            fields=self._store.list_all(),
            status=status,
            body_text=body_text,
            created_at=created_at or now,
            updated_at=now,
        )

    def load_template(self, template: TemplateRecord) -> None:
        """Populate an empty session from a stored template (metadata only)."""
        if self._registry.document_ids():
            raise ValueError("Templates can only be loaded into an empty session")
        self._registry.restore(template.files)
        known = set(self._registry.document_ids())
        orphans = [f.id for f in template.fields if f.document_id not in known]
        if orphans:
            Log.warning(f"Dropping {len(orphans)} fields whose document is missing")
        self._store.load([f for f in template.fields if f.document_id in known])
        self._notify(SessionEvent.DOCUMENTS_CHANGED)
        self._notify(SessionEvent.FIELDS_CHANGED)

    def save(self, template: TemplateRecord) -> None:
        if self._repository is None:
            raise RuntimeError("No template repository configured for this session")
        self._repository.save(template)

    def open(self, template_id: str) -> TemplateRecord:
        if self._repository is None:
            raise RuntimeError("No template repository configured for this session")
        template = self._repository.load(template_id)
        self.load_template(template)
        return template

    async def close(self) -> None:
        """Cancel outstanding work and release every retained buffer.

        A template store created by ``from_settings`` is closed as well.
        """
        cancelled = [entry.task for entry in self._tasks.values()]
        for document_id in list(self._tasks):
            self._cancel_normalization(document_id)
        outcomes = await asyncio.gather(*cancelled, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                Log.error(f"Normalization task failed during shutdown: {outcome}")
        await self.wait_for_normalization()
        self._registry.release_all()
        self._engine.release()
        if self._owns_repository and self._repository is not None:
            self._repository.close()

    # Internals

    def _start_normalization(self, document_id: str) -> None:
        generation = self._registry.generation(document_id)
        cancel_event = threading.Event()
        task = asyncio.create_task(
            self._normalize(document_id, generation, cancel_event),
            name=f"normalize-{document_id}",
        )
        entry = _NormalizationTask(document_id, generation, cancel_event, task)
        self._tasks[document_id] = entry
        task.add_done_callback(lambda _: self._forget(entry))

    def _cancel_normalization(self, document_id: str) -> None:
        entry = self._tasks.pop(document_id, None)
        if entry is None:
            return
        entry.cancel_event.set()
        entry.task.cancel()
        Log.debug("Cancelled normalization", document=document_id)

    def _forget(self, entry: _NormalizationTask) -> None:
        if self._tasks.get(entry.document_id) is entry:
            del self._tasks[entry.document_id]

    async def _normalize(
        self,
        document_id: str,
        generation: int,
        cancel_event: threading.Event,
    ) -> None:
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        async with lock:
            try:
                kind = self._registry.get(document_id).mime_kind
                source = await asyncio.to_thread(self._registry.read_source, document_id)
                result = await asyncio.to_thread(
                    self._normalizer.normalize, source, kind, cancel_event.is_set
                )
            except NormalizationCancelledError:
                Log.debug("Normalization stopped on request", document=document_id)
                return
            except NormalizationFailure as exc:
                self._apply_failure(document_id, generation, str(exc))
                return
            except asyncio.CancelledError:
                cancel_event.set()
                raise
            except Exception as exc:
                self._apply_failure(document_id, generation, f"Unexpected error: {exc}")
                return

            try:
                self._registry.mark_normalized(
                    document_id, generation, result.pdf_bytes, result.page_count
                )
            except StaleResultError as exc:
                Log.debug(f"Discarding stale normalization result: {exc}")
                return
        self._notify(SessionEvent.DOCUMENT_NORMALIZED)

    def _apply_failure(self, document_id: str, generation: int, reason: str) -> None:
        try:
            self._registry.mark_failed(document_id, generation, reason)
        except StaleResultError as exc:
            Log.debug(f"Discarding stale normalization failure: {exc}")
            return
        self._notify(SessionEvent.DOCUMENT_FAILED)

    def _notify(self, event: SessionEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as exc:
                Log.error(f"Subscriber failed on {event.value}: {exc}")
