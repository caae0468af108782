from dataclasses import dataclass, field


@dataclass(frozen=True)
class MergedArtifact:
    """Read-only projection of the registry's ordered documents.

    ``page_offsets[doc]`` is the number of merged pages preceding ``doc``.
    Failed documents are excluded and listed in ``skipped_document_ids``.
    ``pending`` is set while any included document still awaits normalization,
    in which case its page count (and every offset after it) is provisional.
    """

    ordered_document_ids: list[str] = field(default_factory=list)
    page_offsets: dict[str, int] = field(default_factory=dict)
    page_counts: dict[str, int] = field(default_factory=dict)
    total_pages: int = 0
    skipped_document_ids: list[str] = field(default_factory=list)
    pending: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.ordered_document_ids


@dataclass(frozen=True)
class MergedPage:
    """A merged-artifact page resolved back to its source document."""

    document_id: str
    page_in_document: int
