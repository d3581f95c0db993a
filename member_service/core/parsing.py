"""Parsing helpers for query-string values."""

from collections.abc import Collection, Sequence

from member_service.core.exceptions import BadRequestError


def parse_comma_separated_string(
    s: str | None, allowed_values: Collection[str] | None = None
) -> list[str] | None:
    """Parse a comma separated string into its values.

    Values are returned exactly as given (no trimming); a value made only of
    whitespace counts as empty.

    Args:
        s: The string to parse, e.g. ``"handle,email"``.
        allowed_values: Optional whitelist every value must belong to.

    Returns:
        list[str] | None: The parsed values, or None for empty/absent input.

    Raises:
        BadRequestError: On an empty, disallowed or duplicate value.
    """
    if not s:
        return None

    values = s.split(",")
    seen: set[str] = set()
    for value in values:
        if not value.strip():
            raise BadRequestError("Empty value.")
        if allowed_values is not None and value not in allowed_values:
            raise BadRequestError(f"Invalid value: {value}", context={"value": value})
        if value in seen:
            raise BadRequestError(
                f"Duplicate values: {value}", context={"value": value}
            )
        seen.add(value)
    return values


def check_if_exists(source: Sequence[str], term: str | Sequence[str]) -> bool:
    """Check whether any term occurs in source, ignoring case.

    Args:
        source: Values to search in.
        term: A space separated string of terms, or a sequence of terms.

    Returns:
        bool: True if at least one term is in source.

    Raises:
        TypeError: If source is not a list/tuple or term has an unsupported type.
    """
    if not isinstance(source, (list, tuple)):
        msg = "Source argument should be a list or tuple"
        raise TypeError(msg)

    lowered_source = {s.lower() for s in source}

    if isinstance(term, str):
        terms = term.lower().split(" ")
    elif isinstance(term, (list, tuple)):
        terms = [t.lower() for t in term]
    else:
        msg = "Term argument should be either a string or a list"
        raise TypeError(msg)

    return any(t in lowered_source for t in terms)
