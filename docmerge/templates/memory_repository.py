from copy import deepcopy

from docmerge.templates.exceptions import TemplateNotFoundError
from docmerge.templates.models import TemplateRecord
from docmerge.templates.repository import TemplateRepository


class InMemoryTemplateRepository(TemplateRepository):
    """Keeps copies of templates in a dict; used for tests and local sessions."""

    def __init__(self) -> None:
        self._templates: dict[str, TemplateRecord] = {}

    def load(self, template_id: str) -> TemplateRecord:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template {template_id} not found")
        return deepcopy(template)

    def save(self, template: TemplateRecord) -> None:
        self._templates[template.id] = deepcopy(template)
