from dataclasses import dataclass, field


@dataclass(frozen=True)
class ResolvedFieldValue:
    """Final value for one field, with its page in the merged artifact."""

    field_id: str
    label: str
    value: object
    merged_page: int | None = None


@dataclass
class GenerationResult:
    """Output of the generation boundary.

    ``errors`` lists every problem found; generation itself never aborts.
    """

    filled_body_text: str
    field_values: dict[str, ResolvedFieldValue] = field(default_factory=dict)
    errors: list[Exception] = field(default_factory=list)
    unresolved_tokens: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
