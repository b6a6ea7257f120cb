"""
Database type enumeration for driver-specific SQL fragments.
"""

from enum import Enum


class DatabaseType(str, Enum):
    """
    Enumeration of supported database types.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"
    SQLITE = "sqlite"
    UNKNOWN = "unknown"

    @classmethod
    def from_cursor(cls, cursor) -> "DatabaseType":
        """
        Detect database type from cursor class and module name.

        Args:
            cursor: Database cursor object

        Returns:
            DatabaseType enum value
        """
        cursor_class = cursor.__class__
        name = f"{cursor_class.__module__}.{cursor_class.__name__}".lower()

        if "psycopg" in name or "postgres" in name:
            return cls.POSTGRESQL
        elif "pyodbc" in name or "odbc" in name:
            return cls.SQLSERVER
        elif "sqlite" in name:
            return cls.SQLITE
        else:
            return cls.UNKNOWN

    @property
    def placeholder(self) -> str:
        """Positional parameter marker for the driver's paramstyle."""
        if self == DatabaseType.POSTGRESQL:
            return "%s"
        return "?"

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote identifier based on database type.

        Args:
            identifier: Column or table name

        Returns:
            Quoted identifier string
        """
        if self == DatabaseType.SQLSERVER:
            return f"[{identifier}]"
        elif self == DatabaseType.UNKNOWN:
            return identifier
        return f'"{identifier}"'

    def paginate(self, ordered_query: str, skip: int, limit: int) -> tuple[str, tuple]:
        """
        Append a row-window clause to an ORDER BY query.

        Args:
            ordered_query: SELECT statement ending with ORDER BY
            skip: Rows to skip
            limit: Maximum rows to return

        Returns:
            Tuple of (paginated SQL, bound parameters)
        """
        marker = self.placeholder
        if self == DatabaseType.SQLSERVER:
            return (
                f"{ordered_query} OFFSET {marker} ROWS FETCH NEXT {marker} ROWS ONLY",
                (skip, limit),
            )
        return f"{ordered_query} LIMIT {marker} OFFSET {marker}", (limit, skip)
