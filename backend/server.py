"""
WebSocket server that runs the encoding analysis and feeds the lab UI.

The UI sends the current input on every change and renders what comes back:
  - per-character code points, UTF-8 and Shift-JIS bytes (hex + binary)
  - whether each character survives a Shift-JIS round trip
  - mojibake previews for both mismatch directions

One request -> one response. Tutor requests (questions, generated quizzes)
run in the background so a slow answer never blocks the live analysis.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Dict, Optional, Set, Tuple

import websockets

from analyzer import analyze_text
from encoders import DEFAULT_LEGACY_CODEC, LEGACY_CODEC_NAMES, LegacyCodec, load_legacy_codec
from mojibake import simulate_mojibake
from tutor import (
    ASK_FAILED_MESSAGE,
    DEFAULT_MODEL,
    Tutor,
    TutorError,
    build_context,
    build_tutor,
    pick_static_quiz,
)


HOST = "localhost"
PORT = 8765

MAX_TEXT_CHARS = 64
MAX_QUESTION_CHARS = 500
MAX_MESSAGE_BYTES = 64 * 1024


def _resolve_legacy_codec() -> Optional[LegacyCodec]:
    """
    Legacy codec selection.

    Default: shift_jis.
    Override via env var:
      - MOJIBAKE_LEGACY_CODEC=shift_jis (default)
      - MOJIBAKE_LEGACY_CODEC=cp932 (or shift_jis_2004, shift_jisx0213)
      - MOJIBAKE_LEGACY_CODEC=none   (run without a legacy codec)
    """
    name = os.environ.get("MOJIBAKE_LEGACY_CODEC", DEFAULT_LEGACY_CODEC).strip().lower()
    if name in ("", "none", "off"):
        return None
    codec = load_legacy_codec(name)
    if codec is None:
        choices = "|".join(LEGACY_CODEC_NAMES + ("none",))
        raise RuntimeError(f"Unsupported MOJIBAKE_LEGACY_CODEC={name!r}. Use {choices}.")
    return codec


def _resolve_tutor() -> Optional[Tutor]:
    api_key = os.environ.get("GEMINI_API_KEY", "")
    model = os.environ.get("MOJIBAKE_TUTOR_MODEL", "").strip() or DEFAULT_MODEL
    return build_tutor(api_key, model=model)


def _dump(payload: Dict[str, Any]) -> str:
    """
    JSON text for one reply. Lone surrogates (valid in a Python str, not in
    UTF-8) are sent as \\uXXXX escapes so the frame can still be encoded.
    """
    text = json.dumps(payload, ensure_ascii=False)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return json.dumps(payload, ensure_ascii=True)
    return text


def _build_error(message: str, **extra: Any) -> str:
    return _dump({"error": message, **extra})


def _extract_text(req: Dict[str, Any], key: str) -> str:
    value = req.get(key, "")
    if value is None:
        return ""
    return str(value)


def _prepare_analysis(text: str, legacy: Optional[LegacyCodec]) -> Dict[str, Any]:
    analysis = analyze_text(text, legacy)
    mojibake = simulate_mojibake(text, legacy)
    return {
        "action": "analyze",
        "text": text,
        "records": [r.to_json() for r in analysis.records],
        "totals": analysis.totals_json(),
        "mojibake": {direction: m.to_json() for direction, m in mojibake.items()},
        "meta": {
            "legacy_codec": legacy.name if legacy is not None else "",
            "legacy_available": legacy is not None,
            "max_text_chars": MAX_TEXT_CHARS,
        },
    }


async def _prepare_answer(tutor: Optional[Tutor], req: Dict[str, Any]) -> str:
    request_id = req.get("id")
    if tutor is None:
        return _build_error("Tutor is not configured.", action="ask", id=request_id, fallback=ASK_FAILED_MESSAGE)

    question = _extract_text(req, "question")[:MAX_QUESTION_CHARS]
    context = _extract_text(req, "context")
    if not context and "text" in req:
        context = build_context(_extract_text(req, "text"))

    try:
        answer = await tutor.ask(question, context)
    except TutorError as e:
        return _build_error(str(e), action="ask", id=request_id, fallback=ASK_FAILED_MESSAGE)
    return _dump({"action": "ask", "id": request_id, "answer": answer})


async def _prepare_quiz(tutor: Optional[Tutor], req: Dict[str, Any]) -> Dict[str, Any]:
    mode = _extract_text(req, "mode").strip().lower() or "static"
    quiz = None
    source = "static"
    if mode == "ai" and tutor is not None:
        quiz = await tutor.generate_quiz()
        if quiz is not None:
            source = "ai"
    if quiz is None:
        quiz = pick_static_quiz()
    return {"action": "quiz", "id": req.get("id"), "source": source, "quiz": quiz.to_json()}


def parse_request(raw: Any) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Returns (request, "") on success or (None, error_json) for bad input.
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        req = json.loads(raw)
    except Exception as e:
        return None, _build_error(f"Invalid JSON: {e}")
    if not isinstance(req, dict):
        return None, _build_error("Request must be a JSON object.")
    return req, ""


def request_action(req: Dict[str, Any]) -> str:
    return _extract_text(req, "action").strip().lower() or "analyze"


def runs_in_background(req: Dict[str, Any]) -> bool:
    """
    Requests that wait on the tutor: questions and generated quizzes.
    """
    action = request_action(req)
    if action == "ask":
        return True
    return action == "quiz" and _extract_text(req, "mode").strip().lower() == "ai"


async def handle_request(
    req: Dict[str, Any],
    *,
    legacy: Optional[LegacyCodec],
    tutor: Optional[Tutor],
) -> str:
    """
    Turn one parsed request into one outgoing message.
    """
    action = request_action(req)

    if action == "analyze":
        text = _extract_text(req, "text")
        if len(text) > MAX_TEXT_CHARS:
            return _build_error(f"Text is too long (max {MAX_TEXT_CHARS} characters).", action="analyze")
        try:
            return _dump(_prepare_analysis(text, legacy))
        except Exception as e:
            return _build_error(f"Server error: {e}", action="analyze")

    if action == "quiz":
        return _dump(await _prepare_quiz(tutor, req))

    if action == "ask":
        return await _prepare_answer(tutor, req)

    return _build_error(f"Unknown action {action!r}. Use analyze|ask|quiz.")


async def main() -> None:
    legacy = _resolve_legacy_codec()
    tutor = _resolve_tutor()

    print(f"[backend] legacy_codec={legacy.name if legacy is not None else 'unavailable'}")
    print(f"[backend] tutor={'enabled model=' + tutor.model if tutor is not None else 'disabled (no GEMINI_API_KEY)'}")
    print(f"[backend] serving ws://{HOST}:{PORT}")

    async def handler(conn: websockets.ServerConnection) -> None:
        pending: Set[asyncio.Task] = set()

        async def answer(req: Dict[str, Any]) -> None:
            reply = await handle_request(req, legacy=legacy, tutor=tutor)
            try:
                await conn.send(reply)
            except websockets.exceptions.ConnectionClosed:
                pass

        print("[backend] client connected")
        try:
            async for raw in conn:
                req, error = parse_request(raw)
                if req is None:
                    await conn.send(error)
                    continue

                if runs_in_background(req):
                    # Several tutor requests may be in flight; each reply carries
                    # its id and the UI keeps the last one to resolve.
                    task = asyncio.create_task(answer(req))
                    pending.add(task)
                    task.add_done_callback(pending.discard)
                    continue

                await conn.send(await handle_request(req, legacy=legacy, tutor=tutor))
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            for task in list(pending):
                task.cancel()
            print("[backend] client disconnected")

    async with websockets.serve(handler, HOST, PORT, max_size=MAX_MESSAGE_BYTES):
        await asyncio.Future()  # run forever


if __name__ == "__main__":
    asyncio.run(main())
