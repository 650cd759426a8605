from __future__ import annotations

ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"

READ_ONLY = {"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True}


def annotations(title: str) -> dict:
    return {"title": title, **READ_ONLY}
