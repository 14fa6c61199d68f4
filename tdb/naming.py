# naming.py
DB_CODE_PREFIX = "acgapplication_"

_ASCII_LETTERS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
_ASCII_DIGITS = frozenset("0123456789")


def is_db_code(name: str) -> bool:
    """Return True for a database code: 3 ASCII letters followed by 2 ASCII digits."""
    if len(name) != 5:
        return False
    return all(c in _ASCII_LETTERS for c in name[:3]) and all(
        c in _ASCII_DIGITS for c in name[3:]
    )


def resolve_db_name(name: str) -> str:
    """
    Expand a database code to its full database name.
    Anything that is not a code passes through unchanged.
    """
    if is_db_code(name):
        return DB_CODE_PREFIX + name
    return name
