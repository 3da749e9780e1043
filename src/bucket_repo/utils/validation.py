"""Input validation utilities."""

from urllib.parse import unquote

MAX_KEY_LENGTH = 1024


def validate_key(key: str, name: str = "key") -> str:
    """Validate a blob key taken from a request path.

    Rejects traversal segments, absolute keys, backslashes and control
    characters, including URL-encoded forms.

    Args:
        key: The key to validate
        name: Name of the field for error messages

    Returns:
        The validated key

    Raises:
        ValueError: If the key is invalid
    """
    if len(key.encode()) > MAX_KEY_LENGTH:
        raise ValueError(f"{name} exceeds maximum length of {MAX_KEY_LENGTH} bytes")

    decoded = unquote(key)

    if decoded.startswith("/"):
        raise ValueError(f"Invalid {name}: must be relative")

    if "\\" in decoded or any(ord(c) < 0x20 for c in decoded):
        raise ValueError(f"Invalid {name}: contains forbidden characters")

    if any(segment in (".", "..") for segment in decoded.split("/")):
        raise ValueError(f"Invalid {name}: contains relative path segments")

    return key
