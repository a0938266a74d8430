from __future__ import annotations

import json
from typing import Any, Optional


def sse_frame(event: str, data: Any, event_id: Optional[str] = None) -> bytes:
    """
    One server-sent-events frame. Multi-line payloads are split across
    `data:` lines as the wire format requires.
    """
    body = data if isinstance(data, str) else json.dumps(data, default=str, separators=(",", ":"))
    lines = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event}")
    for chunk in body.splitlines() or [""]:
        lines.append(f"data: {chunk}")
    return ("\n".join(lines) + "\n\n").encode("utf-8")
