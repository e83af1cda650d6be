"""Schema registry for the importable content collections.

One registry entry per collection describes every field (kind, header
aliases, default, relation target), the natural key used for duplicate
detection and the sheet name used in workbooks. The row parser, duplicate
detector, relationship validator, drift detector and exporter all read it.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .constants import LEADING_SYSTEM_COLUMNS, TRAILING_SYSTEM_COLUMNS
from .errors import UnknownCollectionError


class FieldKind(str, Enum):
    """How a field's cell value is coerced on import and rendered on export."""

    TEXT = "text"
    URL = "url"  # single media URL
    REFERENCE = "reference"  # id of another record, None when unset
    NUMBER = "number"
    DATE = "date"
    MEDIA = "media"  # list of media items or URLs
    ID_LIST = "id_list"
    OBJECT = "object"
    FLAG = "flag"


@dataclass(frozen=True)
class Relation:
    """Soft foreign key: the field holds the id of a record in another collection."""

    collection: str
    label: str
    field: str = "id"


@dataclass(frozen=True)
class FieldSpec:
    """One importable field of a collection."""

    name: str
    kind: FieldKind
    aliases: tuple[str, ...] = ()
    default: Any = None
    nullable: bool = False
    relation: Relation | None = None

    @property
    def header_keys(self) -> tuple[str, ...]:
        """Header names tried on import, canonical name first."""
        return (self.name, *self.aliases)


@dataclass(frozen=True)
class CollectionSchema:
    """Static description of one importable collection."""

    name: str
    sheet_name: str
    fields: tuple[FieldSpec, ...]
    natural_key: tuple[str, ...]
    title_fields: tuple[str, ...] = ("nameEn", "nameAr")
    _by_name: dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_name", {f.name: f for f in self.fields})
        missing = [key for key in self.natural_key if key not in self._by_name]
        if missing:
            raise ValueError(f"{self.name}: natural key fields {missing} are not declared")

    def get_field(self, name: str) -> FieldSpec | None:
        return self._by_name.get(name)

    @property
    def relations(self) -> dict[str, Relation]:
        """Relation fields keyed by field name."""
        return {f.name: f.relation for f in self.fields if f.relation is not None}

    @property
    def import_columns(self) -> list[str]:
        """Canonical names of the fields the row parser reads."""
        return [f.name for f in self.fields]

    @property
    def export_columns(self) -> list[str]:
        """Column order of an exported sheet."""
        return [*LEADING_SYSTEM_COLUMNS, *self.import_columns, *TRAILING_SYSTEM_COLUMNS]

    @property
    def known_columns(self) -> set[str]:
        """Every header the collection recognises, legacy aliases included."""
        known = set(self.export_columns)
        for spec in self.fields:
            known.update(spec.aliases)
        return known

    def fields_of_kind(self, *kinds: FieldKind) -> list[FieldSpec]:
        return [f for f in self.fields if f.kind in kinds]


class SchemaRegistry:
    """Lookup of collection schemas by collection name or sheet name.

    The import order is derived from the relation graph: a collection comes
    after every collection it references, ties keep declaration order.
    """

    def __init__(self, schemas: Iterable[CollectionSchema]):
        self._schemas: dict[str, CollectionSchema] = {}
        self._by_sheet: dict[str, CollectionSchema] = {}
        for schema in schemas:
            if schema.name in self._schemas:
                raise ValueError(f"Duplicate collection schema: {schema.name}")
            if schema.sheet_name in self._by_sheet:
                raise ValueError(f"Duplicate sheet name: {schema.sheet_name}")
            self._schemas[schema.name] = schema
            self._by_sheet[schema.sheet_name] = schema

        self._check_relation_targets()
        self._import_order = self._resolve_import_order()

    def _check_relation_targets(self) -> None:
        for schema in self._schemas.values():
            for field_name, relation in schema.relations.items():
                if relation.collection not in self._schemas:
                    raise ValueError(
                        f"{schema.name}.{field_name} references unknown collection "
                        f"'{relation.collection}'"
                    )

    def _resolve_import_order(self) -> tuple[str, ...]:
        ordered: list[str] = []
        remaining = list(self._schemas)
        while remaining:
            for name in remaining:
                dependencies = {
                    relation.collection
                    for relation in self._schemas[name].relations.values()
                    if relation.collection != name
                }
                if dependencies.issubset(ordered):
                    ordered.append(name)
                    remaining.remove(name)
                    break
            else:
                raise ValueError(f"Cyclic relations between collections: {remaining}")
        return tuple(ordered)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[CollectionSchema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)

    @property
    def names(self) -> list[str]:
        return list(self._schemas)

    @property
    def import_order(self) -> tuple[str, ...]:
        return self._import_order

    def get(self, name: str) -> CollectionSchema | None:
        return self._schemas.get(name)

    def require(self, name: str) -> CollectionSchema:
        """Get a schema or raise UnknownCollectionError."""
        schema = self._schemas.get(name)
        if schema is None:
            raise UnknownCollectionError(name)
        return schema

    def by_sheet_name(self, sheet_name: str) -> CollectionSchema | None:
        return self._by_sheet.get(sheet_name)


# =============================================================================
# Field helpers
# =============================================================================


def _text(name: str, *aliases: str, default: str = "") -> FieldSpec:
    return FieldSpec(name, FieldKind.TEXT, aliases, default=default)


def _url(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.URL, aliases, default="")


def _reference(name: str, *aliases: str, relation: Relation | None = None) -> FieldSpec:
    return FieldSpec(name, FieldKind.REFERENCE, aliases, nullable=True, relation=relation)


def _number(name: str, *aliases: str, nullable: bool = False) -> FieldSpec:
    return FieldSpec(
        name, FieldKind.NUMBER, aliases, default=None if nullable else 0, nullable=nullable
    )


def _date(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.DATE, aliases, nullable=True)


def _media(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.MEDIA, aliases)


def _flag(name: str, default: bool) -> FieldSpec:
    return FieldSpec(name, FieldKind.FLAG, default=default)


def _names() -> tuple[FieldSpec, ...]:
    return (
        _text("nameEn", "Name (English)"),
        _text("nameAr", "Name (Arabic)"),
    )


def _descriptions() -> tuple[FieldSpec, ...]:
    return (
        _text("descriptionEn", "Description (English)"),
        _text("descriptionAr", "Description (Arabic)"),
    )


def _gallery() -> tuple[FieldSpec, ...]:
    return (
        _media("photos", "Photos URLs"),
        _media("videos", "Videos URLs"),
    )


_MAIN_IMAGE = _url("mainImage", "Main Image URL")
_MAIN_ICON = _url("mainIcon", "Main Icon URL")
_IS_ACTIVE = _flag("isActive", default=True)
_PRAYER_TIMINGS = FieldSpec("locationPrayerTimings", FieldKind.OBJECT, nullable=True)

_LOCATION = Relation("locations", "Location")
_NAME_KEY = ("nameEn", "nameAr")


WARS = CollectionSchema(
    name="wars",
    sheet_name="Wars",
    fields=(
        *_names(),
        *_descriptions(),
        _date("startDate", "Start Date"),
        _date("endDate", "End Date"),
        _MAIN_IMAGE,
        *_gallery(),
        _IS_ACTIVE,
    ),
    natural_key=_NAME_KEY,
)

SECTORS = CollectionSchema(
    name="sectors",
    sheet_name="Sectors",
    fields=(
        *_names(),
        *_descriptions(),
        _MAIN_IMAGE,
        FieldSpec("locationIds", FieldKind.ID_LIST),
        _PRAYER_TIMINGS,
        _IS_ACTIVE,
    ),
    natural_key=_NAME_KEY,
)

VILLAGES = CollectionSchema(
    name="villages",
    sheet_name="Villages",
    fields=(*_names(), *_descriptions(), _MAIN_IMAGE, _IS_ACTIVE),
    natural_key=_NAME_KEY,
)

ACTIVITY_TYPES = CollectionSchema(
    name="activityTypes",
    sheet_name="Activity Types",
    fields=(*_names(), *_descriptions(), _IS_ACTIVE),
    natural_key=_NAME_KEY,
)

LOCATIONS = CollectionSchema(
    name="locations",
    sheet_name="Locations",
    fields=(
        *_names(),
        *_descriptions(),
        _reference("sectorId", "Sector ID", relation=Relation("sectors", "Sector")),
        # Legends reference locations, so this back-reference stays unvalidated
        _reference("legendId"),
        _number("latitude", "Latitude", nullable=True),
        _number("longitude", "Longitude", nullable=True),
        _MAIN_IMAGE,
        *_gallery(),
        _media("photos360"),
        _PRAYER_TIMINGS,
        _IS_ACTIVE,
    ),
    natural_key=_NAME_KEY,
)

MARTYRS = CollectionSchema(
    name="martyrs",
    sheet_name="Martyrs",
    fields=(
        *_names(),
        _text("fatherNameEn", "Father Name (English)"),
        _text("fatherNameAr", "Father Name (Arabic)"),
        _text("motherNameEn", "Mother Name (English)"),
        _text("motherNameAr", "Mother Name (Arabic)"),
        _text("nicknameEn", "Nickname (English)"),
        _text("nicknameAr", "Nickname (Arabic)"),
        _text("jihadistNameEn", "Jihadist Name (English)"),
        _text("jihadistNameAr", "Jihadist Name (Arabic)"),
        _date("dob", "Birth Date", "Date of Birth"),
        _date("dateOfShahada", "Martyrdom Date", "Date of Shahada"),
        _number("age", "Age"),
        _text("storyEn", "Story (English)"),
        _text("storyAr", "Story (Arabic)"),
        _text("bioEn", "Bio (English)"),
        _text("bioAr", "Bio (Arabic)"),
        _text("placeOfBirthEn", "Place of Birth (English)"),
        _text("placeOfBirthAr", "Place of Birth (Arabic)"),
        _text("burialPlaceEn", "Burial Place (English)"),
        _text("burialPlaceAr", "Burial Place (Arabic)"),
        _text("familyStatus", "Family Status"),
        _number("numberOfChildren", "Number of Children"),
        _reference("warId", "War ID", relation=Relation("wars", "War")),
        _reference("locationId", "Location ID", relation=_LOCATION),
        _MAIN_ICON,
        *_gallery(),
        _url("qrCode"),
        _IS_ACTIVE,
        _flag("isApproved", default=True),
    ),
    natural_key=_NAME_KEY,
)

LEGENDS = CollectionSchema(
    name="legends",
    sheet_name="Legends",
    fields=(
        *_names(),
        *_descriptions(),
        _reference("locationId", "Location ID", relation=_LOCATION),
        _MAIN_ICON,
        _MAIN_IMAGE,
        *_gallery(),
        _IS_ACTIVE,
    ),
    natural_key=_NAME_KEY,
)

ACTIVITIES = CollectionSchema(
    name="activities",
    sheet_name="Activities",
    fields=(
        *_names(),
        *_descriptions(),
        _date("date", "Date"),
        _text("time", "Time"),
        _number("durationHours", "Duration Hours"),
        _reference("villageId", "Village ID", relation=Relation("villages", "Village")),
        _reference(
            "activityTypeId",
            "Activity Type ID",
            relation=Relation("activityTypes", "Activity Type"),
        ),
        _MAIN_IMAGE,
        *_gallery(),
        _IS_ACTIVE,
        _flag("isPrivate", default=False),
        _text("status", default="active"),
        _flag("isManuallyReactivated", default=False),
        _reference("createdBy"),
        _reference("approvedBy"),
    ),
    natural_key=("nameEn", "date"),
)

NEWS = CollectionSchema(
    name="news",
    sheet_name="News",
    fields=(
        _text("titleEn", "Title (English)"),
        _text("titleAr", "Title (Arabic)"),
        *_descriptions(),
        _date("publishDate", "Publish Date"),
        _text("publishTime", "Publish Time"),
        _text("type", default="regular"),
        _flag("isPressNews", default=False),
        _number("liveDurationHours"),
        _MAIN_IMAGE,
        *_gallery(),
        _IS_ACTIVE,
    ),
    natural_key=("titleEn", "titleAr"),
    title_fields=("titleEn", "titleAr"),
)

# Declaration order doubles as the tie-break for the import order
REGISTRY = SchemaRegistry(
    [WARS, SECTORS, VILLAGES, ACTIVITY_TYPES, LOCATIONS, MARTYRS, LEGENDS, ACTIVITIES, NEWS]
)
