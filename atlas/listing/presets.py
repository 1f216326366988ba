"""Field presets and entity schemas.

Each entity kind declares its allowed fields, three verbosity presets, the
sortable fields, the fixed projections applied to embedded child collections,
and how its filters are interpreted. A single ``FieldPresetRegistry`` class
serves every kind.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger("atlas.presets")

FilterKind = Literal["single", "list", "text"]


@dataclass(frozen=True, slots=True)
class EntitySchema:
    """Static description of one entity kind.

    Attributes:
        kind: Entity kind name.
        collection_key: Envelope key for a list of this kind.
        fields: Allowed fields in canonical order.
        presets: Verbosity level to ordered field list.
        sortable_fields: Fields accepted by ``sortBy``.
        default_sort: Sort field used when none (or an unknown one) is given.
        nested: Embedded collection name to its fixed field projection.
        filters: Filter parameter name to how its value is interpreted.
    """

    kind: str
    collection_key: str
    fields: tuple[str, ...]
    presets: dict[str, tuple[str, ...]]
    sortable_fields: tuple[str, ...]
    default_sort: str
    nested: dict[str, tuple[str, ...]] = field(default_factory=dict)
    filters: dict[str, FilterKind] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FieldValidation:
    """Partition of requested field names by allow-list membership."""

    valid: list[str]
    invalid: list[str]


NESTED_TASK_FIELDS = ("id", "title", "status", "priority")
NESTED_KNOWLEDGE_FIELDS = ("id", "domain", "tags")

PROJECT_SCHEMA = EntitySchema(
    kind="project",
    collection_key="projects",
    fields=(
        "id",
        "name",
        "status",
        "taskType",
        "createdAt",
        "description",
        "updatedAt",
        "urls",
        "completionRequirements",
        "outputFormat",
    ),
    presets={
        "minimal": ("id", "name", "status", "taskType"),
        "standard": ("id", "name", "status", "taskType", "createdAt"),
        "full": (
            "id",
            "name",
            "status",
            "taskType",
            "createdAt",
            "description",
            "updatedAt",
            "urls",
            "completionRequirements",
            "outputFormat",
        ),
    },
    sortable_fields=("name", "status", "taskType", "createdAt", "updatedAt"),
    default_sort="updatedAt",
    nested={
        "tasks": NESTED_TASK_FIELDS,
        "knowledge": NESTED_KNOWLEDGE_FIELDS,
    },
    filters={"status": "single", "taskType": "text", "search": "text"},
)

TASK_SCHEMA = EntitySchema(
    kind="task",
    collection_key="tasks",
    fields=(
        "id",
        "title",
        "status",
        "priority",
        "projectId",
        "createdAt",
        "description",
        "updatedAt",
        "assignedTo",
        "tags",
        "taskType",
        "completionRequirements",
        "outputFormat",
        "urls",
    ),
    presets={
        "minimal": ("id", "title", "status", "priority"),
        "standard": ("id", "title", "status", "priority", "projectId", "createdAt"),
        "full": (
            "id",
            "title",
            "status",
            "priority",
            "projectId",
            "createdAt",
            "description",
            "updatedAt",
            "assignedTo",
            "tags",
            "taskType",
            "completionRequirements",
            "outputFormat",
            "urls",
        ),
    },
    sortable_fields=("priority", "createdAt", "status", "title", "updatedAt"),
    default_sort="createdAt",
    filters={
        "status": "single",
        "priority": "single",
        "assignedTo": "text",
        "tags": "list",
        "taskType": "text",
    },
)

KNOWLEDGE_SCHEMA = EntitySchema(
    kind="knowledge",
    collection_key="knowledge",
    fields=(
        "id",
        "domain",
        "tags",
        "projectId",
        "createdAt",
        "text",
        "updatedAt",
        "citations",
        "projectName",
    ),
    presets={
        "minimal": ("id", "domain", "tags"),
        "standard": ("id", "domain", "tags", "projectId", "createdAt"),
        "full": (
            "id",
            "domain",
            "tags",
            "projectId",
            "createdAt",
            "text",
            "updatedAt",
            "citations",
            "projectName",
        ),
    },
    sortable_fields=("domain", "createdAt", "updatedAt"),
    default_sort="createdAt",
    filters={"domain": "text", "tags": "list", "search": "text"},
)

SCHEMAS: dict[str, EntitySchema] = {
    schema.kind: schema for schema in (PROJECT_SCHEMA, TASK_SCHEMA, KNOWLEDGE_SCHEMA)
}


class FieldPresetRegistry:
    """Resolves the visible field set for one entity kind."""

    def __init__(self, schema: EntitySchema) -> None:
        self.schema = schema
        self._allowed = frozenset(schema.fields)

    @property
    def kind(self) -> str:
        return self.schema.kind

    def validate(self, fields: list[str] | tuple[str, ...]) -> FieldValidation:
        """Partition field names into allowed and unknown ones."""
        valid: list[str] = []
        invalid: list[str] = []
        for name in fields:
            if name in self._allowed:
                valid.append(name)
            else:
                invalid.append(name)
        return FieldValidation(valid=valid, invalid=invalid)

    def resolve(
        self,
        verbosity: str = "standard",
        explicit_fields: list[str] | tuple[str, ...] | None = None,
        request_id: str | None = None,
    ) -> list[str]:
        """Resolve the field list for a request.

        Explicit fields take precedence over the verbosity preset. Unknown
        names are dropped with a warning; if nothing valid remains, the
        ``standard`` preset is used.

        Args:
            verbosity: Preset name (minimal, standard, full).
            explicit_fields: Optional caller supplied field override.
            request_id: Request identifier for log correlation.

        Returns:
            Field names in canonical schema order.
        """
        if explicit_fields:
            result = self.validate(explicit_fields)
            if result.invalid:
                logger.warning(
                    "Invalid fields ignored for %s: %s",
                    self.kind,
                    ", ".join(result.invalid),
                    extra={
                        "kind": self.kind,
                        "invalid_fields": result.invalid,
                        "request_id": request_id,
                    },
                )
            if result.valid:
                return self._canonical(result.valid)
            return list(self.schema.presets["standard"])

        preset = self.schema.presets.get(verbosity, self.schema.presets["standard"])
        return list(preset)

    def _canonical(self, names: list[str]) -> list[str]:
        wanted = set(names)
        return [name for name in self.schema.fields if name in wanted]


_REGISTRIES: dict[str, FieldPresetRegistry] = {
    kind: FieldPresetRegistry(schema) for kind, schema in SCHEMAS.items()
}


def get_schema(kind: str) -> EntitySchema:
    """Look up the schema for an entity kind.

    Raises:
        KeyError: If the kind is unknown.
    """
    return SCHEMAS[kind]


def get_registry(kind: str) -> FieldPresetRegistry:
    """Look up the shared field preset registry for an entity kind.

    Raises:
        KeyError: If the kind is unknown.
    """
    return _REGISTRIES[kind]
