# app/models.py
import uuid
from typing import Dict, Optional

from pydantic.alias_generators import to_camel
from sqlalchemy import Column, Integer, String, Text, Boolean, JSON, Index

from .database import Base

CONFIG_ID = "main_settings"


def new_id() -> str:
    return uuid.uuid4().hex


class RecordMixin:
    """Record helpers shared by every catalog table.

    Wire field names are the camelCase form of the column attribute
    (``name_lower`` -> ``nameLower``), so the ORM and the CSV/JSON surface
    agree byte-for-byte on field names.
    """

    id = Column(String(32), primary_key=True, default=new_id)

    @classmethod
    def wire_fields(cls) -> Dict[str, str]:
        return {to_camel(column.key): column.key for column in cls.__table__.columns}

    @classmethod
    def attribute_for(cls, wire_name: str) -> Optional[str]:
        return cls.wire_fields().get(wire_name)

    @classmethod
    def is_indexed(cls, attribute: str) -> bool:
        column = cls.__table__.columns[attribute]
        return bool(column.primary_key or column.index)

    def to_record(self) -> dict:
        record = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, list):
                value = list(value)
            record[to_camel(column.key)] = value
        return record


class Operator(RecordMixin, Base):
    __tablename__ = "bus_operators"

    name = Column(String, nullable=False)
    name_lower = Column(String, nullable=False, index=True)
    verified = Column(Boolean, nullable=False, default=False)
    keywords = Column(JSON, nullable=False, default=list)


class Terminal(RecordMixin, Base):
    __tablename__ = "bus_terminals"

    # No foreign key: operator deletes never cascade or block, see DESIGN.md
    operator_id = Column(String(32), nullable=False, index=True)
    operator_name = Column(String, nullable=False)
    operator_name_lower = Column(String, nullable=False, index=True)
    operator_verified = Column(Boolean, nullable=False, default=False)
    terminal_name = Column(String, nullable=True)
    city = Column(String, nullable=False, index=True)
    city_lower = Column(String, nullable=False, index=True)
    address = Column(Text, nullable=False)
    phones = Column(JSON, nullable=False, default=list)
    keywords = Column(JSON, nullable=False, default=list)


class Facility(RecordMixin, Base):
    __tablename__ = "medical_facilities"

    name = Column(String, nullable=False)
    name_lower = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False, index=True)
    city = Column(String, nullable=False, index=True)
    city_lower = Column(String, nullable=False, index=True)
    address = Column(Text, nullable=False)
    phones = Column(JSON, nullable=False, default=list)
    verified = Column(Boolean, nullable=False, default=False)
    keywords = Column(JSON, nullable=False, default=list)


class Advertisement(RecordMixin, Base):
    __tablename__ = "custom_ads"

    title = Column(String, nullable=False, index=True)
    title_lower = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    contact = Column(JSON, nullable=False, default=list)
    address = Column(Text, nullable=False)
    map = Column(String, nullable=True)
    image = Column(String, nullable=True)
    website = Column(String, nullable=True)
    facebook = Column(String, nullable=True)
    telegram = Column(String, nullable=True)
    tiktok = Column(String, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True, index=True)
    verified = Column(Boolean, nullable=False, default=False)
    keywords = Column(JSON, nullable=False, default=list)


class AppConfig(RecordMixin, Base):
    __tablename__ = "app_config"

    maintenance_on = Column(Boolean, nullable=False, default=False)
    maintenance_message = Column(Text, nullable=False, default="")
    welcome_message = Column(Text, nullable=False, default="")


class SearchKeyword(Base):
    """One row per (record, token); backs exact-token membership queries."""

    __tablename__ = "search_keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(32), nullable=False)
    record_id = Column(String(32), nullable=False, index=True)
    token = Column(String, nullable=False)

    __table_args__ = (
        Index("ix_search_keywords_collection_token", "collection", "token"),
    )
