"""Small helpers shared across services."""


def short(value: str | None, length: int = 8) -> str:
    """Truncate an address or signature for log fields.

    Example:
        short("9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM") -> "9WzDXwBb..."
    """
    if not value:
        return ""
    return value[:length] + "..." if len(value) > length else value
