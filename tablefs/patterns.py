"""LIKE pattern construction for prefix matching"""

from .constants import LIKE_ESCAPE, PATH_SEPARATOR

_METACHARACTERS = (LIKE_ESCAPE, "%", "_")


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters so `value` only matches literally

    The escape character itself is escaped first so the escapes added for
    '%' and '_' are not doubled.
    """
    for char in _METACHARACTERS:
        value = value.replace(char, LIKE_ESCAPE + char)
    return value


def descendants_pattern(path: str) -> str:
    """Pattern matching every strict descendant of `path`

    An empty `path` is the unprefixed root, whose descendants are all rows.
    """
    if not path:
        return "%"
    return escape_like(path + PATH_SEPARATOR) + "%"
