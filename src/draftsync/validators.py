"""
Input validation for values arriving from MCP tool calls.

Each validator returns ``(is_valid, error_message)`` so handlers can turn
failures into structured error responses before touching the store.
"""

from .sync.catalog import (
    FILE_ID_PATTERN,
    MAX_FILE_ID_LENGTH,
    MAX_FILE_NAME_LENGTH,
)

MAX_DOCUMENT_BYTES = 5_000_000


def format_validation_error(field_name: str, reason: str) -> str:
    """Consistent "<field> <reason>" message for validation failures."""
    return f"{field_name} {reason}"


def validate_file_id(file_id: str) -> tuple[bool, str]:
    """
    Validate a document id.

    Rules:
        - Cannot be empty
        - At most 128 characters
        - Letters, digits, '.', '_' and '-' only, starting alphanumeric
        - Cannot contain '..'
    """
    if not isinstance(file_id, str) or not file_id.strip():
        return False, format_validation_error("File id", "cannot be empty")

    if len(file_id) > MAX_FILE_ID_LENGTH:
        return False, format_validation_error(
            "File id", f"exceeds {MAX_FILE_ID_LENGTH} characters"
        )

    if ".." in file_id:
        return False, format_validation_error("File id", "cannot contain '..'")

    if not FILE_ID_PATTERN.fullmatch(file_id):
        return False, format_validation_error(
            "File id", "may only contain letters, digits, '.', '_' and '-'"
        )

    return True, ""


def validate_file_name(name: str) -> tuple[bool, str]:
    """
    Validate a display name before it is sanitized.

    Rules:
        - Must be a string with at least one visible character
        - At most 80 characters once surrounding whitespace is removed
    """
    if not isinstance(name, str) or not name.strip():
        return False, format_validation_error("Name", "cannot be empty")

    if len(name.strip()) > MAX_FILE_NAME_LENGTH:
        return False, format_validation_error(
            "Name", f"exceeds {MAX_FILE_NAME_LENGTH} characters"
        )

    return True, ""


def validate_document_text(
    text: str, max_size: int = MAX_DOCUMENT_BYTES
) -> tuple[bool, str]:
    """
    Validate document text.  Empty text is allowed (it clears the draft).

    Rules:
        - Must be a string
        - Cannot exceed max_size bytes as UTF-8
    """
    if not isinstance(text, str):
        return False, format_validation_error("Text", "must be a string")

    if len(text.encode("utf-8")) > max_size:
        return False, format_validation_error(
            "Text", f"exceeds maximum size of {max_size} bytes"
        )

    return True, ""
