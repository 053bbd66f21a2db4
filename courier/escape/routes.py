# -*- coding: utf-8 -*-
"""
Redstone Courier Protocol - Routes (Blueprint endpoints)

JSON only. The page itself is a static client that polls /api/state and
/api/reveal; every rule lives in the engine.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, abort, current_app, jsonify, request

from .catalog import PHASES_BY_ID, TOOLS_BY_ID, Checkpoint
from .core import get_engine
from .engine import ToolLocked
from .hints import Hint

RESET_DENIED = "Invalid key. Reset denied."
RESET_DISABLED = "Reset is disabled for this deployment."


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _json_body_or_400() -> Dict[str, Any]:
    if not request.data:
        abort(_abort_json(400, "Request body required"))
    try:
        data = request.get_json(force=True, silent=False)
    except Exception:
        abort(_abort_json(400, "Invalid JSON"))
    if not isinstance(data, dict):
        abort(_abort_json(400, "Request body must be a JSON object"))
    return data


def _abort_json(status: int, message: str):
    resp = jsonify({"ok": False, "error": message})
    resp.status_code = status
    return resp


def _bad(message: str):
    abort(_abort_json(400, message))


def _checkpoint_or_404(raw: Any) -> Checkpoint:
    try:
        return Checkpoint.parse(raw)
    except ValueError:
        abort(_abort_json(404, f"Unknown checkpoint: {raw}"))


def _hint_json(hint: Optional[Hint]) -> Optional[Dict[str, Any]]:
    return hint.to_json() if hint else None


# ---------------------------------------------------------------------
# Blueprint initializer (idempotent)
# ---------------------------------------------------------------------

def init_routes(bp: Blueprint):
    """Attach all route handlers to the provided blueprint."""
    if getattr(bp, "_escape_inited", False):
        return bp
    bp._escape_inited = True

    @bp.route("/api/state", methods=["GET"])
    def api_state():
        engine = get_engine()
        engine.tick()
        remaining = engine.time_remaining()
        return jsonify({
            "ok": True,
            "progress": engine.get_progress_snapshot(),
            "frozen": engine.is_frozen(),
            "time_remaining": remaining.to_json(),
            "urgency": remaining.urgency.value,
            "navigation": engine.navigation(),
        })

    @bp.route("/api/login", methods=["POST"])
    def api_login():
        data = _json_body_or_400()
        verdict = get_engine().authenticate(data.get("operator"), data.get("session_key"))
        payload = {"ok": True, **verdict.to_json()}
        if not verdict.accepted:
            payload["hints"] = [h.to_json() for h in get_engine().issued_hints(Checkpoint.LOGIN)]
        return jsonify(payload)

    @bp.route("/api/phases/<int:phase_id>", methods=["GET"])
    def api_phase(phase_id: int):
        if phase_id not in PHASES_BY_ID:
            return _abort_json(404, "Phase not found")
        view = get_engine().view_phase(phase_id)
        if view is None:
            return _abort_json(403, f"Phase {phase_id} is locked")
        return jsonify({"ok": True, "phase": view})

    @bp.route("/api/submit", methods=["POST"])
    def api_submit():
        data = _json_body_or_400()
        cp = _checkpoint_or_404(str(data.get("checkpoint") or "").strip())
        if cp is Checkpoint.LOGIN:
            return _bad("Use /api/login for credentials")

        if cp is Checkpoint.PHASE6:
            answer = {"shards": data.get("shards"), "ordering": data.get("ordering")}
        else:
            answer = data.get("answer")
            if answer is not None and not isinstance(answer, str):
                return _bad("answer must be a string")

        try:
            verdict = get_engine().submit_answer(cp, answer)
        except ValueError as e:
            return _bad(str(e))

        payload = {"ok": True, **verdict.to_json()}
        if verdict.earns_hint:
            payload["hint"] = _hint_json(verdict.hint)
        return jsonify(payload)

    @bp.route("/api/hint", methods=["POST"])
    def api_hint():
        data = _json_body_or_400()
        cp = _checkpoint_or_404(str(data.get("checkpoint") or "").strip())
        hint = get_engine().request_hint(cp)
        return jsonify({"ok": True, "hint": _hint_json(hint)})

    @bp.route("/api/reset", methods=["POST"])
    def api_reset():
        data = _json_body_or_400()
        engine = get_engine()
        if not engine.settings.admin_reset_enabled:
            return _abort_json(403, RESET_DISABLED)
        if not engine.reset_progress(data.get("key")):
            current_app.logger.warning("[escape] reset denied")
            return _abort_json(403, RESET_DENIED)
        current_app.logger.info("[escape] progress reset via api")
        return jsonify({"ok": True, "progress": engine.get_progress_snapshot()})

    @bp.route("/api/reveal", methods=["GET"])
    def api_reveal():
        return jsonify({"ok": True, "reveal": get_engine().reveal_status()})

    @bp.route("/api/final", methods=["GET"])
    def api_final():
        screen = get_engine().final_screen()
        if screen is None:
            return _abort_json(403, "Courier path not yet decrypted")
        return jsonify({"ok": True, "final": screen})

    @bp.route("/api/tools", methods=["GET"])
    def api_tools():
        return jsonify({"ok": True, "tools": get_engine().tools()})

    @bp.route("/api/tools/<tool_id>", methods=["POST"])
    def api_tool_run(tool_id: str):
        if tool_id not in TOOLS_BY_ID:
            return _abort_json(404, "Tool not found")
        data = _json_body_or_400() if request.data else {}
        try:
            result = get_engine().run_tool(tool_id, data)
        except ToolLocked:
            return _abort_json(403, "Tool locked")
        except ValueError as e:
            return _bad(str(e))
        return jsonify({"ok": True, "result": result})

    return bp
