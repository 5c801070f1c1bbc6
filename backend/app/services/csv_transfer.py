# app/services/csv_transfer.py
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from app.exceptions import ValidationError
from app.schemas import FacilityType, clean_list
from app.services.batch_executor import Insert
from app.services.collections import get_spec

logger = logging.getLogger(__name__)

# ---------------------------
# Column contracts
# ---------------------------
IMPORT_COLUMNS = {
    "operators": ["name", "isVerified"],
    "terminals": ["operatorName", "terminalName", "city", "address", "phones"],
    "facilities": ["name", "type", "city", "address", "phones", "isVerified"],
}

REQUIRED_COLUMNS = {
    "operators": ["name"],
    "terminals": ["operatorName", "city", "address"],
    "facilities": ["name", "type", "city", "address"],
}

TEMPLATE_ROWS = {
    "operators": {"name": "Shwe Mandalar", "isVerified": "TRUE"},
    "terminals": {"operatorName": "Shwe Mandalar", "terminalName": "Aung Mingalar",
                  "city": "Yangon", "address": "Unit 1, Aung Mingalar Highway Station", "phones": "09-123"},
    "facilities": {"name": "Asia Royal", "type": "private_hospital", "city": "Yangon",
                   "address": "No. 14, Baho Road", "phones": "09-123", "isVerified": "TRUE"},
}

# (header, record field)
EXPORT_COLUMNS = {
    "operators": [("name", "name"), ("isVerified", "verified")],
    "terminals": [("operatorId", "operatorId"), ("operatorName", "operatorName"),
                  ("terminalName", "terminalName"), ("city", "city"), ("address", "address"),
                  ("phones", "phones")],
    "facilities": [("name", "name"), ("type", "type"), ("city", "city"), ("address", "address"),
                   ("phones", "phones"), ("isVerified", "verified")],
    "advertisements": [("title", "title"), ("description", "description"), ("contact", "contact"),
                       ("address", "address"), ("map", "map"), ("image", "image"),
                       ("website", "website"), ("facebook", "facebook"), ("telegram", "telegram"),
                       ("tiktok", "tiktok"), ("isEnabled", "enabled"), ("isVerified", "verified")],
}


class RowRejected(Exception):
    pass


@dataclass
class ImportReport:
    collection: str
    imported: int = 0
    rejected: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"collection": self.collection, "imported": self.imported, "rejected": self.rejected}


def read_csv(source) -> pd.DataFrame:
    """Parse an uploaded CSV with every cell as text and blanks as ''."""
    try:
        return pd.read_csv(source, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValidationError(f"Failed to parse CSV: {e}", original_error=e)


def _flag(value) -> bool:
    return str(value or "").strip().upper() == "TRUE"


def _text(row: dict, column: str) -> str:
    return str(row.get(column) or "").strip()


# ---------------------------
# Row builders
# ---------------------------
def _operator_row(row: dict, context: dict) -> dict:
    name = _text(row, "name")
    if not name:
        raise RowRejected("Missing required field 'name'.")
    if name.lower() in context["seen_names"]:
        raise RowRejected(f"Duplicate 'name' ({name}) found in the file.")
    context["seen_names"].add(name.lower())
    return {"name": name, "verified": _flag(row.get("isVerified"))}


def _terminal_row(row: dict, context: dict) -> dict:
    operator_name, city, address = _text(row, "operatorName"), _text(row, "city"), _text(row, "address")
    if not operator_name or not city or not address:
        raise RowRejected("Missing required field (operatorName, city, or address).")
    # Name matching only here: import rows carry no operator id yet
    operator = context["operators_by_name"].get(operator_name.lower())
    if operator is None:
        raise RowRejected(f"Operator \"{operator_name}\" not found. Please import it first.")
    return {
        "operatorId": operator["id"],
        "terminalName": _text(row, "terminalName") or None,
        "city": city,
        "address": address,
        "phones": clean_list(row.get("phones")),
    }


def _facility_row(row: dict, context: dict) -> dict:
    values = {column: _text(row, column) for column in ("name", "type", "city", "address")}
    if not all(values.values()):
        raise RowRejected("Missing required field (name, type, city, or address).")
    valid_types = [member.value for member in FacilityType]
    if values["type"] not in valid_types:
        raise RowRejected(f"Invalid 'type'. Must be one of: {', '.join(valid_types)}")
    values["phones"] = clean_list(row.get("phones"))
    values["verified"] = _flag(row.get("isVerified"))
    return values


ROW_BUILDERS: Dict[str, Callable[[dict, dict], dict]] = {
    "operators": _operator_row,
    "terminals": _terminal_row,
    "facilities": _facility_row,
}


# ---------------------------
# Import / export
# ---------------------------
def import_frame(store, collection: str, frame: pd.DataFrame) -> ImportReport:
    """
    Insert every valid row of ``frame``; invalid rows are rejected one by one.

    Valid rows are committed in sequential batches of the executor's limit.
    """
    if collection not in ROW_BUILDERS:
        raise ValidationError(f"Import is not supported for '{collection}'.")
    missing = [column for column in REQUIRED_COLUMNS[collection] if column not in frame.columns]
    if missing:
        raise ValidationError(f"CSV must contain columns: {', '.join(missing)}")

    spec = get_spec(collection)
    context = {"seen_names": set()}
    if collection == "terminals":
        context["operators_by_name"] = {op["nameLower"]: op for op in store.operators.list_all()}

    report = ImportReport(collection)
    ops = []
    for position, row in enumerate(frame.to_dict(orient="records")):
        line = position + 2
        try:
            data = ROW_BUILDERS[collection](row, context)
            spec.schema.model_validate(data)
        except RowRejected as e:
            report.rejected.append(f"Row {line}: {e}")
            continue
        except PydanticValidationError as e:
            report.rejected.append(f"Row {line}: {e.errors()[0]['msg']}")
            continue
        ops.append(Insert(collection, data))

    store.executor.commit_in_batches(ops)
    report.imported = len(ops)
    logger.info(f"Imported {report.imported} {collection} record(s), rejected {len(report.rejected)}")
    return report


def _cell(value) -> str:
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    return "" if value is None else str(value)


def export_frame(store, collection: str) -> pd.DataFrame:
    if collection not in EXPORT_COLUMNS:
        raise ValidationError(f"Export is not supported for '{collection}'.")
    columns = EXPORT_COLUMNS[collection]
    records = store.list_all(collection)
    rows = [{header: _cell(record.get(name)) for header, name in columns} for record in records]
    return pd.DataFrame(rows, columns=[header for header, _ in columns])


def template_frame(collection: str) -> pd.DataFrame:
    if collection not in TEMPLATE_ROWS:
        raise ValidationError(f"No import template for '{collection}'.")
    return pd.DataFrame([TEMPLATE_ROWS[collection]], columns=IMPORT_COLUMNS[collection])


def to_csv_text(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False)
