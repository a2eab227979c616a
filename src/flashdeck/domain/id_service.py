"""Service for generating stable flashdeck IDs."""

from ulid import ULID


def generate_id() -> str:
    """Generate a sortable, stable ID using ULID."""
    return str(ULID())
