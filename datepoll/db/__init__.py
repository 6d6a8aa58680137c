from datepoll.db.core import _get_connection, check_database, close_pool, init_pool
from datepoll.db.documents import PostgresDocumentStore

__all__ = [
    "PostgresDocumentStore",
    "_get_connection",
    "check_database",
    "close_pool",
    "init_pool",
]
