"""
Destination notebook resolution.

Every import lands in exactly one notebook, resolved once per file before
the note loop starts:

    1. an explicit notebook_id, if it exists and belongs to the user
    2. otherwise the user's notebook with exactly `name`
    3. otherwise a new notebook called `name`

Step 2 makes repeated imports into the same named notebook idempotent.
"""

import logging
from typing import Any, Dict, Optional

from eni.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

DEFAULT_NOTEBOOK_NAME = "Imported Notes"


def resolve_notebook(
    client: SupabaseClient,
    user_id: str,
    notebook_id: Optional[str] = None,
    name: str = DEFAULT_NOTEBOOK_NAME,
) -> Dict[str, Any]:
    """
    Get or create the destination notebook and return its row.

    Raises whatever the persistence layer raises; the orchestrator treats
    that as document-fatal.
    """
    if notebook_id:
        existing = client.get_notebook(notebook_id, user_id)
        if existing:
            return existing
        logger.info(
            "Notebook %s not found for user %s, falling back to name %r",
            notebook_id,
            user_id,
            name,
        )

    name = (name or "").strip() or DEFAULT_NOTEBOOK_NAME

    by_name = client.find_notebook_by_name(user_id, name)
    if by_name:
        return by_name

    logger.info("Creating notebook %r for user %s", name, user_id)
    return client.create_notebook(user_id, name)
