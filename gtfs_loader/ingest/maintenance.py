"""
Cleanup for staging schemas orphaned by failed promotions.

The pipeline never removes a staging schema whose swap failed; these helpers
let an operator find and drop them.
"""

import logging
import re
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Connection

from .dataset import GtfsDataset
from .lock import AdvisoryLock

logger = logging.getLogger(__name__)


def find_staging_schemas(conn: Connection, dataset: GtfsDataset) -> List[str]:
    """Staging schemas left behind for ``dataset``, oldest first."""
    rows = conn.execute(
        text("SELECT nspname FROM pg_catalog.pg_namespace WHERE nspname LIKE :prefix ORDER BY nspname"),
        {"prefix": f"{dataset.schema}\\_tmp\\_%"},
    ).scalars().all()
    pattern = re.compile(rf"^{re.escape(dataset.schema)}_tmp_\d+$")
    return [name for name in rows if pattern.match(name)]


def drop_staging_schemas(conn: Connection, dataset: GtfsDataset) -> List[str]:
    """
    Drop every orphaned staging schema of ``dataset`` in one transaction.

    Takes the dataset's advisory lock first so a concurrent update's download
    phase is not running; raises LockContentionError otherwise.

    Returns:
        Names of the dropped schemas
    """
    lock = AdvisoryLock(dataset.lock_key, dataset.name)
    quote = conn.dialect.identifier_preparer.quote_identifier

    with lock.held(conn):
        schemas = find_staging_schemas(conn, dataset)
        for schema in schemas:
            conn.execute(text(f"DROP SCHEMA IF EXISTS {quote(schema)} CASCADE"))
            logger.info(f"Dropped staging schema {schema}")
        conn.commit()

    return schemas
