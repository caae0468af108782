import math
from dataclasses import dataclass, replace
from enum import Enum

from docmerge.fields.exceptions import FieldError
from docmerge.fields.models import Field, Position, Size
from docmerge.fields.store import FieldStore
from docmerge.geometry.hit_test import hit_test
from docmerge.geometry.transform import Point, screen_to_document
from docmerge.logging.logger import Log
from docmerge.merge.exceptions import MergeError
from docmerge.registry.exceptions import RegistryError


class Handle(str, Enum):
    BODY = "body"
    RESIZE = "resize"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Moving:
    field_id: str
    start_pointer: Point
    start_position: Position


@dataclass(frozen=True)
class Resizing:
    field_id: str
    start_pointer: Point
    start_size: Size


InteractionState = Idle | Moving | Resizing


class InteractionController:
    """Pointer-gesture state machine: Idle -> Moving | Resizing -> Idle.

    Pointer coordinates are screen pixels; deltas are divided by the zoom
    scale so the same pointer motion gives the same document-space motion at
    any zoom. Intermediate frames only update ``preview``; the final value is
    committed through the field store on pointer-up. A field that disappears
    mid-gesture turns the gesture into a no-op.
    """

    def __init__(self, store: FieldStore) -> None:
        self._store = store
        self._state: InteractionState = Idle()
        self._preview: Field | None = None
        self._selected_id: str | None = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def preview(self) -> Field | None:
        return self._preview

    @property
    def selected_id(self) -> str | None:
        if self._selected_id is not None and self._store.find(self._selected_id) is None:
            self._selected_id = None
        return self._selected_id

    def select_at(
        self,
        point: Point,
        scale: float,
        document_id: str,
        page_in_document: int,
    ) -> Field | None:
        """Click-to-select: ``point`` is in screen pixels relative to the page."""
        try:
            doc_point = screen_to_document(point, scale)
        except ValueError as exc:
            Log.warning(f"Ignoring click: {exc}")
            return None
        field = hit_test(self._store.list_all(), doc_point, document_id, page_in_document)
        self._selected_id = field.id if field is not None else None
        return field

    def pointer_down(self, field_id: str, pointer: Point, handle: Handle = Handle.BODY) -> Field | None:
        field = self._store.find(field_id)
        if field is None:
            Log.debug("Pointer down on a missing field ignored", field=field_id)
            self._reset()
            return None
        if handle is Handle.RESIZE:
            self._state = Resizing(field_id, pointer, field.size)
        else:
            self._state = Moving(field_id, pointer, field.position)
        self._preview = field
        self._selected_id = field_id
        return field

    def pointer_move(self, pointer: Point, scale: float) -> Field | None:
        """Return the clamped preview for this frame, or None when idle."""
        state = self._state
        if isinstance(state, Idle):
            return None
        field = self._store.find(state.field_id)
        if field is None:
            Log.debug("Dragged field no longer exists", field=state.field_id)
            self._reset()
            return None
        try:
            delta = screen_to_document(pointer - state.start_pointer, scale)
        except ValueError as exc:
            Log.warning(f"Ignoring pointer move: {exc}")
            return self._preview
        if not (math.isfinite(delta.x) and math.isfinite(delta.y)):
            Log.warning("Ignoring pointer move with non-finite coordinates", field=state.field_id)
            return self._preview

        if isinstance(state, Moving):
            position = Position(
                x=max(0.0, state.start_position.x + delta.x),
                y=max(0.0, state.start_position.y + delta.y),
            )
            self._preview = replace(field, position=position)
        else:
            size = Size(
                width=max(self._store.min_width, state.start_size.width + delta.x),
                height=max(self._store.min_height, state.start_size.height + delta.y),
            )
            self._preview = replace(field, size=size)
        return self._preview

    def pointer_up(self) -> Field | None:
        """Commit the gesture and return the stored field, or None if nothing was committed."""
        state = self._state
        preview = self._preview
        self._reset()
        if isinstance(state, Idle) or preview is None:
            return None
        if isinstance(state, Moving):
            changes: dict[str, object] = {"position": preview.position}
        else:
            changes = {"size": preview.size}
        try:
            return self._store.update(state.field_id, changes)
        except (FieldError, MergeError, RegistryError) as exc:
            Log.warning(f"Gesture dropped: {exc}", field=state.field_id)
            return None

    def cancel(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._state = Idle()
        self._preview = None
