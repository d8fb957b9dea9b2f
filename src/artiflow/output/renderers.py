"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO); the caller
extracts the text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from artiflow.output.console import (
    create_console,
    get_output,
    style_for_category,
    style_for_confidence,
)

if TYPE_CHECKING:
    from rich.console import Console

    from artiflow.infrastructure.watcher import PipelineEvent
    from artiflow.services.result import ServiceResult

# Longest text body shown inside a ``query get`` panel.
_MAX_CONTENT_CHARS = 4000


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: ids only where there are any."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} - {msg}"

    items = result.data.get("items") or result.data.get("recently_added")
    if items and isinstance(items, list):
        return "\n".join(str(item.get("id", "")) for item in items if isinstance(item, dict))

    artifact = result.data.get("artifact")
    if isinstance(artifact, dict) and "id" in artifact:
        return str(artifact["id"])
    if "suggested_path" in result.data:
        return str(result.data["suggested_path"])
    return f"OK: {result.op}"


def render_notice(notice: PipelineEvent) -> str:
    """One line per watcher notice."""
    console = create_console()
    event = notice.event
    path = event.path if event is not None else "?"
    kind = str(notice.kind)

    if kind == "file":
        event_kind = str(event.kind) if event is not None else "?"
        console.print(
            Text(f"{event_kind:>6}", style="flow.key"),
            Text(f"  {path}", style="flow.path"),
            sep="",
        )
    elif kind == "artifact" and notice.artifact is not None:
        art = notice.artifact
        label = "stored" if notice.created else "dup"
        console.print(
            Text(f"{label:>6}", style="flow.ok"),
            Text(f"  {art.id}", style="flow.id"),
            Text(f"  {art.category.value}", style=style_for_category(art.category.value)),
            Text(f"  {art.storage_path}", style="flow.path"),
            sep="",
        )
    elif kind == "low_confidence" and notice.classification is not None:
        cls = notice.classification
        console.print(
            Text(f"{'skip':>6}", style="flow.warning"),
            Text(f"  {path}"),
            Text(f"  {cls.category.value} {cls.confidence:.2f}", style="flow.confidence.low"),
            sep="",
        )
    else:
        console.print(
            Text(f"{'error':>6}", style="flow.error"),
            Text(f"  {path}: {notice.error}"),
            sep="",
        )
    return get_output(console).rstrip("\n")


def notice_to_json(notice: PipelineEvent) -> str:
    """One JSON object per watcher notice (``--json`` mode)."""
    payload: dict[str, Any] = {"kind": str(notice.kind)}
    if notice.event is not None:
        payload["event"] = {
            "kind": str(notice.event.kind),
            "path": notice.event.path,
            "size": notice.event.size,
            "timestamp": notice.event.timestamp.isoformat(),
        }
    if notice.artifact is not None:
        payload["artifact"] = notice.artifact.model_dump(mode="json")
        payload["created"] = notice.created
    if notice.classification is not None:
        payload["classification"] = notice.classification.model_dump(mode="json")
    if notice.error is not None:
        payload["error"] = notice.error
    return _json.dumps(payload, separators=(",", ":"))


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="flow.ok")
    op = Text(f"  {result.op}", style="flow.op")
    console.print(label, op, sep="", end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="flow.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="flow.id")
    elif key.endswith("path") or key == "archived_to":
        v = Text(str(value), style="flow.path")
    elif key == "category":
        v = Text(str(value), style=style_for_category(str(value)))
    elif key == "confidence" and isinstance(value, (int, float)):
        v = Text(f"{value:.2f}", style=style_for_confidence(float(value)))
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":"), default=str))
    else:
        v = Text(str(value))
    console.print(k, v, sep="", end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry" and isinstance(v, dict):
            duration = v.get("duration_ms", 0.0)
            style = "yellow" if duration > 100 else "dim"
            console.print(f"    [{style}]{duration:>8.2f}ms[/{style}]  {v.get('name', '?')}")
        else:
            console.print(f"    {k}: {v}")


def _artifact_fields(console: Console, artifact: dict[str, Any], *, verbose: bool) -> None:
    keys = ["id", "file_name", "category", "subcategory", "element", "gate", "owner"]
    keys.append("storage_path")
    if verbose:
        keys.extend(["original_path", "checksum", "created_at", "updated_at"])
    for key in keys:
        val = artifact.get(key)
        if val is not None:
            _field(console, key, val)
    if artifact.get("tags"):
        _field(console, "tags", ", ".join(artifact["tags"]))


def _artifact_table(
    items: list[dict[str, Any]],
    *,
    score: bool = False,
    verbose: bool = False,
) -> Table:
    """Build a Rich Table for a list of artifact dicts."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="flow.id", no_wrap=True)
    table.add_column("File", style="flow.name")
    table.add_column("Category")
    table.add_column("Element")
    if score:
        table.add_column("Score", style="flow.score", justify="right")
    if verbose:
        table.add_column("Path", style="flow.path")
        table.add_column("Created", style="dim")

    for item in items:
        category = str(item.get("category", ""))
        row: list[str | Text] = [
            str(item.get("id", "")),
            str(item.get("file_name", "")),
            Text(category, style=style_for_category(category)),
            str(item.get("element") or ""),
        ]
        if score:
            row.append(f"{float(item.get('score', 0.0)):.2f}")
        if verbose:
            row.append(str(item.get("storage_path", "")))
            row.append(str(item.get("created_at", "")))
        table.add_row(*row)
    return table


def _counts_table(title: str, counts: dict[str, int]) -> Table:
    table = Table(title=title, show_header=True, pad_edge=False, expand=False)
    table.add_column(title.split()[-1].title())
    table.add_column("Count", justify="right")
    for key, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
        table.add_row(Text(key, style=style_for_category(key)), str(count))
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="flow.error")
    op = Text(f"  {result.op}", style="flow.op")
    code = Text(f" [{err.code}]" if err else "", style="flow.key")
    console.print(label, op, code, Text(" - "), msg, sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_store(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "created", d.get("created"))
    _artifact_fields(console, d.get("artifact", {}), verbose=verbose)
    classification = d.get("classification", {})
    if "confidence" in classification:
        _field(console, "confidence", classification["confidence"])
    if verbose:
        _field(console, "reasoning", classification.get("reasoning", ""))
        _render_meta(console, result)


def _render_update(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _artifact_fields(console, result.data.get("artifact", {}), verbose=verbose)
    _field(console, "fields_changed", ", ".join(result.data.get("fields_changed", [])))
    if verbose:
        _render_meta(console, result)


def _render_delete(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "id", result.data.get("id"))
    _field(console, "archived_to", result.data.get("archived_to"))
    if verbose:
        _render_meta(console, result)


# ── Classification renderer ───────────────────────────────────────────


def _render_classify(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    cls = d.get("classification", {})
    _field(console, "file_name", d.get("file_name"))
    for key in ("category", "subcategory", "confidence", "element", "gate", "owner"):
        val = cls.get(key)
        if val is not None:
            _field(console, key, val)
    if cls.get("tags"):
        _field(console, "tags", ", ".join(cls["tags"]))
    _field(console, "reasoning", cls.get("reasoning", ""))
    _field(console, "suggested_path", d.get("suggested_path"))
    if verbose:
        if cls.get("metadata"):
            _field(console, "metadata", cls["metadata"])
        _render_meta(console, result)


# ── Query renderers ───────────────────────────────────────────────────


def _render_get(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render get_artifact as a panel: metadata, then the text content."""
    d = result.data
    art = d.get("artifact", {})
    lines: list[str] = []
    for key in ("category", "subcategory", "element", "gate", "owner", "storage_path"):
        val = art.get(key)
        if val is not None:
            lines.append(f"{key}: {val}")
    if art.get("tags"):
        lines.append(f"tags: {', '.join(art['tags'])}")
    if verbose:
        for key in ("checksum", "original_path", "created_at", "updated_at"):
            if art.get(key) is not None:
                lines.append(f"{key}: {art[key]}")

    body = "\n".join(lines)
    content = d.get("content")
    if d.get("content_encoding") == "base64":
        body += f"\n\n<binary content, {len(content or '')} base64 chars>"
    elif content:
        text = content if len(content) <= _MAX_CONTENT_CHARS else content[:_MAX_CONTENT_CHARS]
        body += f"\n\n{text.strip()}"

    title = f"{art.get('id', '?')} - {art.get('file_name', '?')}"
    style = style_for_category(str(art.get("category", "")))
    console.print(Panel(Text(body), title=title, border_style=style or "dim", expand=False))


def _render_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render search or list results as a table."""
    items = result.data.get("items", [])
    table = _artifact_table(items, score=result.op == "search_artifacts", verbose=verbose)
    console.print(table)
    summary = f"\n{result.data.get('count', len(items))} items"
    if "total" in result.data:
        summary += f" of {result.data['total']}"
    console.print(summary)


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "total", d.get("total", 0))
    if d.get("by_category"):
        console.print(_counts_table("By category", d["by_category"]))
    if d.get("by_element"):
        console.print(_counts_table("By element", d["by_element"]))
    recent = d.get("recently_added", [])
    if recent:
        console.print(Text("\n  recently added:", style="flow.key"))
        console.print(_artifact_table(recent, verbose=verbose))


# ── Init renderer ─────────────────────────────────────────────────────


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    d = result.data
    _field(console, "root", d.get("root"))
    config = d.get("config", {})
    watch_paths = config.get("watch_paths", [])
    _field(console, "watch_paths", ", ".join(watch_paths) if watch_paths else "(none)")
    for key in ("auto_classify", "auto_store", "debounce_ms", "stability_threshold_ms"):
        if key in config:
            _field(console, key, config[key])
    directories = d.get("directories", [])
    _field(console, "directories", len(directories))
    if verbose:
        for directory in directories:
            console.print(f"    {directory}")
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "init_studio": _render_init,
    "store_artifact": _render_store,
    "classify_only": _render_classify,
    "update_artifact": _render_update,
    "delete_artifact": _render_delete,
    "get_artifact": _render_get,
    "search_artifacts": _render_table,
    "list_artifacts": _render_table,
    "get_stats": _render_stats,
}
