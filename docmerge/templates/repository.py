from abc import ABC, abstractmethod

from docmerge.templates.models import TemplateRecord


class TemplateRepository(ABC):
    """Contract for template persistence adapters."""

    @abstractmethod
    def load(self, template_id: str) -> TemplateRecord:
        """Load a stored template.

        Raises:
            TemplateNotFoundError: if no template has this id.
            TemplateFormatError: if the stored record is malformed.
        """

    @abstractmethod
    def save(self, template: TemplateRecord) -> None:
        """Insert or overwrite a template."""

    def close(self) -> None:
        """Release resources held by the store. Most stores hold none."""
