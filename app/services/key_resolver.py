"""Identity column resolution for tables of unknown structure."""

import logging

from app.schemas.table import KeyResolution, KeyRole, KeySource, TableSchema

logger = logging.getLogger(__name__)

ID_COLUMN_NAME = "id"


def resolve_key(schema: TableSchema) -> KeyResolution:
    """
    Derive the column used to address single rows of a table.

    Resolution order:
        1. the declared primary key column
        2. a column named exactly ``id``
        3. the first column in physical order

    Only the first is safe. A composite primary key resolves to its first
    column and, like the first-column fallback, is reported as ambiguous so
    writes can be refused until the caller confirms the identity.
    """
    if not schema.columns:
        raise ValueError(f"Table '{schema.table_name}' has no columns")

    primary = [col.name for col in schema.columns if col.key_role == KeyRole.PRIMARY]
    if len(primary) == 1:
        return KeyResolution(column=primary[0], source=KeySource.DECLARED_PRIMARY)
    if primary:
        logger.warning(
            f"Table '{schema.table_name}' has a composite primary key {primary}; "
            f"using '{primary[0]}' as identity"
        )
        return KeyResolution(column=primary[0], source=KeySource.COMPOSITE_PRIMARY)

    if ID_COLUMN_NAME in schema.column_names:
        return KeyResolution(column=ID_COLUMN_NAME, source=KeySource.ID_COLUMN)

    first = schema.columns[0].name
    logger.warning(
        f"Table '{schema.table_name}' has no primary key or 'id' column; "
        f"falling back to first column '{first}'"
    )
    return KeyResolution(column=first, source=KeySource.FIRST_COLUMN)
