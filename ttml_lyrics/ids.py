from __future__ import annotations

import uuid


def new_id() -> str:
    """Random id, unique for the lifetime of the process."""
    return uuid.uuid4().hex
