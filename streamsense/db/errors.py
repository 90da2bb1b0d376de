"""Classification of user-data store errors."""

from sqlalchemy.exc import DBAPIError

# SQLSTATE for "relation does not exist"
UNDEFINED_TABLE_SQLSTATE = "42P01"


def is_missing_table_error(exc: BaseException) -> bool:
    """True when ``exc`` means the backing table has not been created yet.

    Covers asyncpg (SQLSTATE 42P01 / UndefinedTableError) and SQLite
    ("no such table"), both surfacing through SQLAlchemy's DBAPIError.
    """
    if not isinstance(exc, DBAPIError):
        return False

    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == UNDEFINED_TABLE_SQLSTATE:
            return True
    cause = getattr(orig, "__cause__", None)
    if getattr(cause, "sqlstate", None) == UNDEFINED_TABLE_SQLSTATE:
        return True

    message = str(orig if orig is not None else exc).lower()
    if "no such table" in message:
        return True
    return "relation" in message and "does not exist" in message
