# courier/escape/tools.py
"""
Tool Unlock Gate plus the workbench transforms.

The gate only ever adds tool ids to unlockedTools. The transforms are
stateless helpers; the engine refuses them while a tool is locked.
"""

from __future__ import annotations

import datetime as dt
import re
from collections import Counter
from typing import Any, Callable, Dict, List

from .activity import LogCategory, append_entry
from .catalog import TOOLS, TOOLS_BY_ID
from .progress import ProgressRecord

MAX_TOOL_INPUT_CHARS = 10_000


def earned_tool_ids(record: ProgressRecord) -> List[str]:
    return [t.id for t in TOOLS if record.is_completed(t.unlock_phase)]


def apply_tool_gate(record: ProgressRecord, now: dt.datetime, tz) -> ProgressRecord:
    for tool_id in earned_tool_ids(record):
        if tool_id in record.unlocked_tools:
            continue
        record = record.evolve(unlocked_tools=tuple(record.unlocked_tools) + (tool_id,))
        record = append_entry(record, f"Tool unlocked: {TOOLS_BY_ID[tool_id].name}", LogCategory.SUCCESS, now, tz)
    return record


def is_tool_unlocked(record: ProgressRecord, tool_id: str) -> bool:
    return tool_id in record.unlocked_tools


def tool_listing(record: ProgressRecord) -> List[Dict[str, Any]]:
    return [
        {
            "id": t.id,
            "name": t.name,
            "icon": t.icon,
            "description": t.description,
            "unlock_phase": t.unlock_phase,
            "unlocked": is_tool_unlocked(record, t.id),
        }
        for t in TOOLS
    ]


# ---- Workbench transforms ----

def run_byte_grouper(payload: Dict[str, Any]) -> Dict[str, Any]:
    bits = re.sub(r"[^01]", "", str(payload.get("text") or ""))
    groups = [bits[i:i + 8] for i in range(0, len(bits), 8)]
    stats = {
        "total_bits": len(bits),
        "complete_bytes": sum(1 for g in groups if len(g) == 8),
    }
    if len(bits) % 8:
        stats["incomplete_bits"] = len(bits) % 8
    return {"result": " ".join(groups) or "No binary data found.", "stats": stats}


def run_integrity_check(payload: Dict[str, Any]) -> Dict[str, Any]:
    value = str(payload.get("text") or "")
    stray = re.sub(r"[01\s]", "", value)
    lines = [ln for ln in value.split("\n") if ln.strip()]

    if not value.strip():
        verdict, passed = "No data provided.", None
    elif not stray:
        verdict, passed = "INTEGRITY CHECK: PASSED\nStructure valid. Only binary characters detected.", True
    else:
        preview = stray[:20] + ("..." if len(stray) > 20 else "")
        verdict, passed = f'INTEGRITY CHECK: FAILED\nInvalid characters detected: "{preview}"', False

    return {
        "result": verdict,
        "passed": passed,
        "stats": {
            "lines": len(lines),
            "total_bits": len(re.sub(r"[^01]", "", value)),
            "zeros": value.count("0"),
            "ones": value.count("1"),
        },
    }


def run_symbol_counter(payload: Dict[str, Any]) -> Dict[str, Any]:
    value = re.sub(r"[\r\n]", "", str(payload.get("text") or ""))
    counts = Counter(value)
    # Counter.most_common keeps first-seen order for ties
    top = counts.most_common(15)
    if not top:
        result = "No data provided."
    else:
        result = "\n".join(f"'{'SPACE' if ch == ' ' else ch}': {n}" for ch, n in top)
    return {
        "result": result,
        "counts": [{"symbol": ch, "count": n} for ch, n in top],
        "stats": {"total_chars": len(value), "unique": len(counts)},
    }


BASE_REFERENCE = (
    {"base": "Base-2", "name": "Binary", "digits": "0, 1", "example": "01000001 = 65 = 'A'"},
    {"base": "Base-10", "name": "Decimal", "digits": "0-9", "example": "65 = 'A' in ASCII"},
    {"base": "Base-16", "name": "Hexadecimal", "digits": "0-9, A-F", "example": "41 = 65 = 'A'"},
    {"base": "Base-64", "name": "Base64", "digits": "A-Z, a-z, 0-9, +, /", "example": "QQ== = 'A'"},
)


def run_base_reference(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"result": [dict(row) for row in BASE_REFERENCE]}


TOOL_HANDLERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "byte-grouper": run_byte_grouper,
    "integrity-check": run_integrity_check,
    "base-reference": run_base_reference,
    "symbol-counter": run_symbol_counter,
}


def run_tool(tool_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    handler = TOOL_HANDLERS.get(tool_id)
    if handler is None:
        raise KeyError(f"unknown tool: {tool_id!r}")
    text = payload.get("text")
    if text is not None and not isinstance(text, str):
        raise ValueError('"text" must be a string.')
    if text and len(text) > MAX_TOOL_INPUT_CHARS:
        raise ValueError(f"Input is too large. Limit is {MAX_TOOL_INPUT_CHARS} characters.")
    return handler(payload)
