"""Export and import of table records, built on TableService."""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from tablekit.auth.permissions import assert_capability
from tablekit.config.types import QueryOptions
from tablekit.errors import NotFoundError, TableError

if TYPE_CHECKING:
    from tablekit.auth.types import Caller
    from tablekit.engine.service import TableService

logger = logging.getLogger(__name__)

EXPORT_PAGE_SIZE = 1000
MAX_EXPORT_ROWS = 10_000
IMPORT_MODES = ("create", "update", "upsert")


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(_csv_cell(v) for v in value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


@dataclass
class ExportResult:
    content: str
    media_type: str
    filename: str
    total: int


@dataclass
class ImportResult:
    total: int
    created: int = 0
    updated: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
        }


async def export_table(
    service: TableService,
    entity_key: str,
    caller: Caller | None = None,
    format: str = "json",
    options: QueryOptions | None = None,
) -> ExportResult:
    """Export up to MAX_EXPORT_ROWS matching records as JSON or CSV.

    Grouping is not exported; filters, search, sorts and view still apply.
    """
    if format not in ("json", "csv"):
        raise ValueError(f"Unsupported export format: {format}")

    config = service.configs.require_for_user(entity_key, caller)
    assert_capability(config, "export", caller)

    base = replace(options) if options else QueryOptions()
    base.flat = True
    base.limit = EXPORT_PAGE_SIZE

    records: list[dict[str, Any]] = []
    page = 1
    while len(records) < MAX_EXPORT_ROWS:
        base.page = page
        result = await service.list(entity_key, base, caller)
        records.extend(result.data)
        if not result.meta.has_next:
            break
        page += 1
    records = records[:MAX_EXPORT_ROWS]
    columns = result.config["columns"]
    logger.info("Exported %d %s records as %s", len(records), entity_key, format)

    if format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow([c["label"] for c in columns])
        for record in records:
            writer.writerow([_csv_cell(record.get(c["key"])) for c in columns])
        return ExportResult(
            content=buffer.getvalue(),
            media_type="text/csv",
            filename=f"{entity_key}-export.csv",
            total=len(records),
        )

    payload = {
        "entityKey": entity_key,
        "exportedAt": datetime.now(UTC).isoformat(),
        "totalRecords": len(records),
        "config": result.config,
        "data": records,
    }
    return ExportResult(
        content=json.dumps(payload, default=_json_default),
        media_type="application/json",
        filename=f"{entity_key}-export.json",
        total=len(records),
    )


async def import_records(
    service: TableService,
    entity_key: str,
    rows: list[dict[str, Any]],
    caller: Caller | None = None,
    mode: str = "create",
) -> ImportResult:
    """Import rows one by one, collecting per-row failures.

    Rows without a primary key are always created. In "update" mode a
    missing record is an error; "upsert" creates it instead.
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unsupported import mode: {mode}")

    config = service.configs.require_for_user(entity_key, caller)
    assert_capability(config, "import", caller)

    result = ImportResult(total=len(rows))
    pk = config.primary_key
    for index, row in enumerate(rows):
        try:
            record_id = row.get(pk)
            if mode == "create" or not record_id:
                await service.create(entity_key, row, caller)
                result.created += 1
                continue
            try:
                await service.update(entity_key, str(record_id), row, caller)
                result.updated += 1
            except NotFoundError:
                if mode != "upsert":
                    raise
                await service.create(entity_key, row, caller)
                result.created += 1
        except TableError as e:
            result.errors.append({"index": index, "error": e.message, "kind": e.kind})

    logger.info(
        "Imported %s: %d created, %d updated, %d failed",
        entity_key,
        result.created,
        result.updated,
        len(result.errors),
    )
    return result
