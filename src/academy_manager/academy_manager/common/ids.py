from __future__ import annotations

import uuid


def generate_id() -> str:
    """Client-side id; every row gets one before it is written anywhere."""
    return str(uuid.uuid4())
