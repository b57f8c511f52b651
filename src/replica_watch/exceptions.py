"""Exception hierarchy for replica-watch."""


class ReplicaWatchError(Exception):
    """Base exception for replica-watch errors."""

    pass


class InvalidIdentifierError(ReplicaWatchError, ValueError):
    """Raised when a table, column or database name is not a plain identifier."""

    pass


class UnsupportedTableError(ReplicaWatchError):
    """Raised when a table has no single-column primary key."""

    pass


class RowNotFoundError(ReplicaWatchError):
    """Raised when a row expected on both sides is missing from one of them."""

    def __init__(self, table_name: str, row_id, side: str):
        super().__init__(f"row {row_id!r} of {table_name} not found on {side}")
        self.table_name = table_name
        self.row_id = row_id
        self.side = side


class SchemaMismatchError(ReplicaWatchError):
    """Raised when a row has different column sets on the two sides."""

    def __init__(self, table_name: str, master_only: set, replica_only: set):
        super().__init__(
            f"column sets differ for {table_name}: "
            f"master only {sorted(master_only)}, replica only {sorted(replica_only)}"
        )
        self.table_name = table_name
        self.master_only = master_only
        self.replica_only = replica_only


class ConfigurationError(ReplicaWatchError):
    """Raised when connection settings or credentials are incomplete."""

    pass
