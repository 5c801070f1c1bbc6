# app/services/collections.py
from dataclasses import dataclass
from typing import Optional, Tuple

from app.exceptions import ValidationError
from app.models import CONFIG_ID, Advertisement, AppConfig, Facility, Operator, Terminal
from app.schemas import AdvertisementIn, AppConfigIn, FacilityIn, OperatorIn, TerminalIn
from app.services.denormalization import UNKNOWN_OPERATOR, DenormalizedReference


@dataclass(frozen=True)
class CollectionSpec:
    """How one collection is validated, derived, denormalized and indexed on write."""

    name: str
    model: type
    schema: type
    default_order: str
    keyword_fields: Tuple[str, ...] = ()
    lowercase_fields: Tuple[Tuple[str, str], ...] = ()   # (target attribute, source attribute)
    reference: Optional[DenormalizedReference] = None
    toggles: Tuple[str, ...] = ()
    singleton_id: Optional[str] = None
    prefix_fields: Tuple[Tuple[str, str], ...] = ()      # (wire field, its lowercase wire field)

    def search_field(self, wire_field: str) -> str:
        """Lowercase field that serves prefix search for ``wire_field``."""
        return dict(self.prefix_fields).get(wire_field, wire_field)

    def is_prefix_field(self, wire_field: str) -> bool:
        return any(wire_field == lower for _, lower in self.prefix_fields)


OPERATOR_REFERENCE = DenormalizedReference(
    field="operator_id",
    parent_model=Operator,
    parent_collection="operators",
    copies=(
        ("operator_name", "name"),
        ("operator_name_lower", "name_lower"),
        ("operator_verified", "verified"),
    ),
    display=(
        ("operatorName", "name", UNKNOWN_OPERATOR),
        ("operatorVerified", "verified", False),
    ),
)

OPERATORS = CollectionSpec(
    name="operators",
    model=Operator,
    schema=OperatorIn,
    default_order="nameLower",
    keyword_fields=("name",),
    lowercase_fields=(("name_lower", "name"),),
    toggles=("verified",),
    prefix_fields=(("name", "nameLower"),),
)

TERMINALS = CollectionSpec(
    name="terminals",
    model=Terminal,
    schema=TerminalIn,
    default_order="cityLower",
    keyword_fields=("operator_name", "city", "address"),
    lowercase_fields=(("city_lower", "city"),),
    reference=OPERATOR_REFERENCE,
    prefix_fields=(("operatorName", "operatorNameLower"), ("city", "cityLower")),
)

FACILITIES = CollectionSpec(
    name="facilities",
    model=Facility,
    schema=FacilityIn,
    default_order="nameLower",
    keyword_fields=("name", "city", "type"),
    lowercase_fields=(("name_lower", "name"), ("city_lower", "city")),
    toggles=("verified",),
    prefix_fields=(("name", "nameLower"), ("city", "cityLower")),
)

ADVERTISEMENTS = CollectionSpec(
    name="advertisements",
    model=Advertisement,
    schema=AdvertisementIn,
    default_order="titleLower",
    keyword_fields=("title", "description", "address"),
    lowercase_fields=(("title_lower", "title"),),
    toggles=("verified", "enabled"),
    prefix_fields=(("title", "titleLower"),),
)

CONFIG = CollectionSpec(
    name="config",
    model=AppConfig,
    schema=AppConfigIn,
    default_order="id",
    singleton_id=CONFIG_ID,
)

# Fields the live terminal view is searched on
TERMINAL_SEARCH_FIELDS = ("operatorName", "city", "address")

REGISTRY = {spec.name: spec for spec in (OPERATORS, TERMINALS, FACILITIES, ADVERTISEMENTS, CONFIG)}


def get_spec(name: str) -> CollectionSpec:
    try:
        return REGISTRY[name]
    except KeyError:
        raise ValidationError(f"Unknown collection '{name}'.")
