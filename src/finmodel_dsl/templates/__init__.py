"""
Bundled seed models.

Each template is a YAML document in `catalog/` named after its slug:

    slug, name, description, lab_scope, tags, difficulty
    model:        {version, steps, outputs}
    input_schema: {fields}

Templates are loaded on demand and materialized as `ModelTemplate`. All
bundled templates pass `validate_dsl_model`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from finmodel_dsl.core.model import DslModel, InputSchema, load_model_document


CATALOG_DIR = Path(__file__).with_name("catalog")


class TemplateNotFoundError(LookupError):
    """Raised when no bundled template has the requested slug."""


@dataclass(frozen=True)
class ModelTemplate:
    slug: str
    name: str
    description: str
    lab_scope: str
    tags: Tuple[str, ...]
    difficulty: str
    model: DslModel
    input_schema: Optional[InputSchema] = None

    def default_inputs(self) -> Dict[str, Any]:
        """Schema defaults, for fields that declare one."""
        if self.input_schema is None:
            return {}
        return {f.name: f.default for f in self.input_schema.fields if f.default is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "lab_scope": self.lab_scope,
            "tags": list(self.tags),
            "difficulty": self.difficulty,
            "model": self.model.to_dict(),
        }


def list_templates() -> List[str]:
    """Slugs of all bundled templates, sorted."""
    return sorted(p.stem for p in CATALOG_DIR.glob("*.yaml"))


def load_template(slug: str) -> ModelTemplate:
    """
    Load and materialize the bundled template `slug`.

    Raises:
        TemplateNotFoundError: if no template has that slug.
    """
    path = CATALOG_DIR / f"{slug}.yaml"
    if not path.exists():
        raise TemplateNotFoundError(
            f"Unknown template: {slug!r}. Available templates: {', '.join(list_templates())}"
        )

    doc = load_model_document(path)
    raw_schema = doc.get("input_schema")
    model = DslModel.from_dict({**doc["model"], "input_schema": raw_schema})

    return ModelTemplate(
        slug=doc.get("slug", slug),
        name=doc["name"],
        description=doc.get("description", ""),
        lab_scope=doc.get("lab_scope", "econ"),
        tags=tuple(doc.get("tags") or ()),
        difficulty=doc.get("difficulty", "basic"),
        model=model,
        input_schema=model.input_schema,
    )


__all__ = [
    "CATALOG_DIR",
    "ModelTemplate",
    "TemplateNotFoundError",
    "list_templates",
    "load_template",
]
