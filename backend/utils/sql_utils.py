"""
Shared SQL utility functions.
"""

# Column/table names in the business schema that collide with SQL keywords.
_RESERVED_WORDS = {
    "order", "user", "group", "select", "where", "from", "table", "limit",
    "status", "date", "time", "location",
}


def quote_identifier(name: str) -> str:
    """
    Quote SQL identifiers that need it.

    Identifiers with spaces or special characters, a leading digit, upper
    case letters or a reserved-word name are wrapped in double quotes (with
    embedded quotes doubled); plain lowercase identifiers are left as-is.

    Examples:
        >>> quote_identifier("total_amount")
        'total_amount'
        >>> quote_identifier("order")
        '"order"'
        >>> quote_identifier("Sales Amount")
        '"Sales Amount"'
    """
    if name == "*":
        return "*"

    needs_quotes = (
        not name
        or name[0].isdigit()
        or name.lower() in _RESERVED_WORDS
        or name != name.lower()
        or any(not (ch.isalnum() or ch == "_") for ch in name)
    )
    if needs_quotes:
        return '"' + name.replace('"', '""') + '"'
    return name
