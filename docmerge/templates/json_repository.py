import json
from pathlib import Path

from docmerge.logging.logger import Log
from docmerge.templates.exceptions import TemplateError, TemplateFormatError, TemplateNotFoundError
from docmerge.templates.models import TemplateRecord
from docmerge.templates.repository import TemplateRepository
from docmerge.templates.serializer import template_from_dict, template_to_dict


class JsonFileTemplateRepository(TemplateRepository):
    """Stores each template as ``{root}/{template_id}.json``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def load(self, template_id: str) -> TemplateRecord:
        path = self._path(template_id)
        if not path.exists():
            raise TemplateNotFoundError(f"Template {template_id} not found")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise TemplateFormatError(f"Invalid JSON in {path}: {exc}") from exc
        except OSError as exc:
            raise TemplateError(f"Failed to read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise TemplateFormatError(f"{path} must contain a JSON object")
        return template_from_dict(data)

    def save(self, template: TemplateRecord) -> None:
        path = self._path(template.id)
        payload = json.dumps(template_to_dict(template), indent=2)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise TemplateError(f"Failed to write {path}: {exc}") from exc
        Log.info(f"Saved template to {path}", template=template.id)

    def _path(self, template_id: str) -> Path:
        if not template_id or "/" in template_id or "\\" in template_id or template_id.startswith("."):
            raise TemplateError(f"Invalid template id {template_id!r}")
        return self._root / f"{template_id}.json"
