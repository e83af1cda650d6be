"""Duplicate detection and relationship validation for imported records."""

import logging
from dataclasses import dataclass, field
from typing import Any

from memorial.database import DocumentStore

from .converters import to_store_value
from .registry import REGISTRY, Relation, SchemaRegistry

logger = logging.getLogger(__name__)


@dataclass
class DuplicateCheck:
    is_duplicate: bool
    existing_record: dict[str, Any] | None = None


@dataclass
class RelationCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)


class DuplicateDetector:
    """Looks up records by their collection's natural key.

    Lookups are memoized for the lifetime of the detector, so one detector
    should be used per import run. Records imported during the run are
    registered with ``remember`` so a repeated row is caught without a
    further store query.
    """

    def __init__(self, store: DocumentStore, registry: SchemaRegistry = REGISTRY):
        self._store = store
        self._registry = registry
        self._seen: dict[tuple[str, tuple], dict[str, Any] | None] = {}

    def _key(self, collection_name: str, record: dict[str, Any]) -> tuple | None:
        schema = self._registry.get(collection_name)
        if schema is None:
            return None
        return tuple(to_store_value(record.get(name)) for name in schema.natural_key)

    async def is_duplicate(self, collection_name: str, record: dict[str, Any]) -> DuplicateCheck:
        key = self._key(collection_name, record)
        if key is None:
            return DuplicateCheck(is_duplicate=False)

        memo_key = (collection_name, key)
        if memo_key in self._seen:
            existing = self._seen[memo_key]
            return DuplicateCheck(is_duplicate=existing is not None, existing_record=existing)

        schema = self._registry.require(collection_name)
        filters = dict(zip(schema.natural_key, key))
        try:
            matches = await self._store.find(collection_name, filters, limit=1)
        except Exception as e:
            # Not memoized, the next row retries the lookup
            logger.warning("Duplicate check failed for %s: %s", collection_name, e)
            return DuplicateCheck(is_duplicate=False)

        existing = matches[0] if matches else None
        self._seen[memo_key] = existing
        return DuplicateCheck(is_duplicate=existing is not None, existing_record=existing)

    def remember(self, collection_name: str, record: dict[str, Any]) -> None:
        """Register a record persisted during this run."""
        key = self._key(collection_name, record)
        if key is not None:
            self._seen[(collection_name, key)] = record


class RelationshipValidator:
    """Checks that soft foreign keys point at existing records.

    Resolved references are cached for the lifetime of the validator.
    Missing references are not cached, since a later sheet or an operator
    retry may create them.
    """

    def __init__(self, store: DocumentStore, registry: SchemaRegistry = REGISTRY):
        self._store = store
        self._registry = registry
        self._resolved: set[tuple[str, str, str]] = set()

    async def _exists(self, relation: Relation, value: Any) -> bool:
        cache_key = (relation.collection, relation.field, str(value))
        if cache_key in self._resolved:
            return True

        if relation.field == "id":
            found = await self._store.get(relation.collection, str(value)) is not None
        else:
            matches = await self._store.find(
                relation.collection, {relation.field: value}, limit=1
            )
            found = bool(matches)

        if found:
            self._resolved.add(cache_key)
        return found

    async def validate_relations(
        self, collection_name: str, record: dict[str, Any]
    ) -> RelationCheck:
        schema = self._registry.get(collection_name)
        if schema is None:
            return RelationCheck(valid=True)

        errors: list[str] = []
        for field_name, relation in schema.relations.items():
            value = record.get(field_name)
            # Optional relation
            if not value:
                continue
            try:
                if not await self._exists(relation, value):
                    errors.append(
                        f'{relation.label} with ID "{value}" does not exist in '
                        f"{relation.collection}"
                    )
            except Exception as e:
                errors.append(f"Failed to validate {relation.label}: {e}")

        return RelationCheck(valid=not errors, errors=errors)
