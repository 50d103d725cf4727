"""Plain-text and JSON rendering for CLI output."""
import json
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

EMPTY_MARKER = "-"
MAX_CELL_WIDTH = 60


def to_json(data: Any) -> str:
    """Serialize pydantic models (or lists/dicts of them) as indented JSON."""
    return json.dumps(_jsonable(data), indent=2)


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, dict):
        return {k: _jsonable(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_jsonable(v) for v in data]
    if hasattr(data, "isoformat"):
        return data.isoformat()
    if data is None or isinstance(data, str | int | float | bool):
        return data
    return str(data)


def _cell(value: Any) -> str:
    if value is None or value == "" or value == []:
        return EMPTY_MARKER
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value)
    text = str(value).replace("\n", " ")
    if len(text) > MAX_CELL_WIDTH:
        text = text[:MAX_CELL_WIDTH - 3] + "..."
    return text


def format_table(rows: Sequence[dict[str, Any]], columns: Sequence[str]) -> str:
    """
    Format rows as a left-aligned text table.

    Each column is as wide as its widest cell (header included). Lists are
    joined with commas, long cells are truncated and empty values shown as "-".
    """
    if not rows:
        return "No results."
    cells = [[_cell(row.get(col)) for col in columns] for row in rows]
    widths = [
        max(len(col), *(len(r[i]) for r in cells))
        for i, col in enumerate(columns)
    ]
    header = "  ".join(col.upper().ljust(w) for col, w in zip(columns, widths))
    divider = "  ".join("-" * w for w in widths)
    lines = [header, divider]
    lines.extend("  ".join(c.ljust(w) for c, w in zip(r, widths)).rstrip() for r in cells)
    return "\n".join(lines)


def format_record(record: dict[str, Any], body_field: str | None = None) -> str:
    """Format one record as `key: value` lines, with an optional body printed last."""
    lines = []
    width = max(len(k) for k in record)
    for key, value in record.items():
        if key == body_field:
            continue
        lines.append(f"{key.ljust(width)}  {_cell(value)}")
    if body_field and record.get(body_field) is not None:
        lines.extend(["", str(record[body_field])])
    return "\n".join(lines)


def format_search_results(result: dict[str, Any]) -> str:
    """Ranked search hits with excerpts, followed by a paging footer."""
    hits = result["results"]
    if not hits:
        return "No results."
    lines = []
    for rank, hit in enumerate(hits, start=result["offset"] + 1):
        label = hit["title"] or hit["name"]
        lines.append(
            f"{rank}. [{hit['type']}] {hit['project_slug']}/{hit['name']}  "
            f"{label if label != hit['name'] else ''}".rstrip(),
        )
        lines.append(f"   score {hit['score']}  {hit['excerpt']}")
    shown = result["offset"] + len(hits)
    footer = f"\nShowing {result['offset'] + 1}-{shown} of {result['total']}"
    if result["has_more"]:
        footer += f" (next: --offset {shown})"
    lines.append(footer)
    return "\n".join(lines)


def format_todo_stats(stats: dict[str, Any]) -> str:
    """Todo counts by status, then by priority."""
    lines = [f"total        {stats['total']}"]
    for status in ("pending", "in_progress", "completed", "cancelled"):
        lines.append(f"{status.ljust(12)} {stats.get(status, 0)}")
    lines.append("")
    lines.append("by priority")
    for priority, count in stats["by_priority"].items():
        lines.append(f"  {priority.ljust(10)} {count}")
    return "\n".join(lines)
