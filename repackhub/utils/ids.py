"""Client-side identifier generation for new records."""

from __future__ import annotations

import uuid


def new_identifier() -> str:
    """Return a fresh UUID4 string, assigned before the insert is sent."""
    return str(uuid.uuid4())
