"""Header lookup and manipulation utilities for the secure escrow middleware.

Header dictionaries arrive with whatever casing the framework produced
(Starlette lowercases, hand-built responses often do not), so every lookup
here is case-insensitive.
"""

from typing import Any


def get_header_value(
    headers: dict[str, Any],
    header_name: str,
    default: Any = None,
) -> Any:
    """Get header value with case-insensitive lookup.

    Args:
        headers: Headers dictionary
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value (a list for a repeated header) or default

    Example:
        >>> headers = {"Location": "/thanks"}
        >>> get_header_value(headers, "location")
        '/thanks'
        >>> get_header_value(headers, "missing", "default")
        'default'
    """
    header_name_lower = header_name.lower()

    for key, value in headers.items():
        if key.lower() == header_name_lower:
            return value

    return default


def set_header(
    headers: dict[str, Any],
    header_name: str,
    value: str,
) -> dict[str, Any]:
    """Set a header, replacing any existing value regardless of case.

    The existing key's casing is kept; a new header uses ``header_name``.

    Returns:
        A new headers dictionary

    Example:
        >>> set_header({"location": "https://a/x"}, "Location", "http://b/x")
        {'location': 'http://b/x'}
    """
    header_name_lower = header_name.lower()
    result = headers.copy()

    for key in headers:
        if key.lower() == header_name_lower:
            result[key] = value
            return result

    result[header_name] = value
    return result
