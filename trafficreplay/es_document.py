"""Helpers for turning captured payloads into Elasticsearch bulk entries."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _marshal(value: Any) -> bytes:
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def extract_status(data: bytes) -> str:
    """Return the status code of an HTTP response, or ``"000"`` if absent."""
    data = bytes(data)
    end = data.find(b"\n")
    first_line = data if end == -1 else data[:end]
    parts = first_line.split(b" ")
    if len(parts) >= 3:
        return parts[1].decode("utf-8", "replace")
    return "000"


def is_request_or_response(meta: bytes) -> bool:
    """Return True for request payload meta (type ``1``), False otherwise."""
    first = bytes(meta).split(b" ")[0]
    if not first:
        raise ValueError("empty payload meta")
    return first[:1] == b"1"


def bulk_entry(
    index: str,
    action: str,
    doc_id: str,
    doc: Mapping[str, Any],
    upsert: Optional[Mapping[str, Any]] = None,
) -> bytes:
    """Return the two NDJSON lines of a bulk ``index`` or ``update`` operation."""
    if action == "index":
        meta = {"index": {"_index": index, "_id": doc_id}}
        body: Any = doc
    elif action == "update":
        meta = {"update": {"_index": index, "_id": doc_id, "retry_on_conflict": 3}}
        body = {"doc": doc, "upsert": upsert}
    else:
        raise ValueError(f"unsupported bulk action {action!r}")
    return _marshal(meta) + b"\n" + _marshal(body) + b"\n"