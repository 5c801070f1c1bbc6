# app/schemas.py
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RequiredText = Annotated[str, Field(min_length=1)]


def clean_list(value: Any) -> List[str]:
    """Split a comma separated string (or list) into trimmed, non-empty entries."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class CatalogModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        extra="ignore",
    )

    @classmethod
    def wire_fields(cls) -> List[str]:
        return [field.alias or name for name, field in cls.model_fields.items()]


class FacilityType(str, Enum):
    private_hospital = "private_hospital"
    public_hospital = "public_hospital"
    clinic = "clinic"


# ---------------------------
# Entity inputs
# ---------------------------
class OperatorIn(CatalogModel):
    name: RequiredText
    verified: bool = False


class TerminalIn(CatalogModel):
    operator_id: RequiredText
    terminal_name: Optional[str] = None
    city: RequiredText
    address: RequiredText
    phones: List[str] = []

    @field_validator("phones", mode="before")
    @classmethod
    def split_phones(cls, value):
        return clean_list(value)


class FacilityIn(CatalogModel):
    name: RequiredText
    type: FacilityType = FacilityType.private_hospital
    city: RequiredText
    address: RequiredText
    phones: List[str] = []
    verified: bool = False

    @field_validator("phones", mode="before")
    @classmethod
    def split_phones(cls, value):
        return clean_list(value)


class AdvertisementIn(CatalogModel):
    title: RequiredText
    description: Optional[str] = None
    contact: Annotated[List[str], Field(min_length=1)]
    address: RequiredText
    map: Optional[str] = None
    image: Optional[str] = None
    website: Optional[str] = None
    facebook: Optional[str] = None
    telegram: Optional[str] = None
    tiktok: Optional[str] = None
    enabled: bool = True
    verified: bool = False

    @field_validator("contact", mode="before")
    @classmethod
    def split_contact(cls, value):
        return clean_list(value)


class AppConfigIn(CatalogModel):
    maintenance_on: bool = False
    maintenance_message: str = ""
    welcome_message: str = ""


# ---------------------------
# Request bodies
# ---------------------------
class BulkDeleteRequest(BaseModel):
    ids: List[str]


class BatchOpIn(BaseModel):
    op: Literal["insert", "update", "delete"]
    collection: str
    id: Optional[str] = None
    data: Dict[str, Any] = {}


class BatchRequest(BaseModel):
    ops: List[BatchOpIn]
