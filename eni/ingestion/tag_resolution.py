"""
Tag normalization and get-or-create.

Tags are scoped per user and matched by exact (case-sensitive) name: a tag
named "Work" is the same row across every note the user imports.

normalize_tag_names() is pure. resolve_tag_ids() goes through
SupabaseClient.upsert_tag(), which relies on a (user_id, name) unique
constraint, and memoizes ids in a per-run cache so one import never asks for
the same tag twice.
"""

from typing import Dict, Iterable, List, Optional

from eni.supabase_client import SupabaseClient


# ---------------------------------------------------------------------------
# Normalize tag names
# ---------------------------------------------------------------------------
def normalize_tag_names(names: Iterable[Optional[str]]) -> List[str]:
    """
    Strip whitespace, drop empty names, and deduplicate preserving order.

    Case is preserved: "Work" and "work" are different tags.
    """
    seen = set()
    normalized: List[str] = []

    for name in names:
        if not name:
            continue

        cleaned = name.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            normalized.append(cleaned)

    return normalized


# ---------------------------------------------------------------------------
# Resolve names → tag ids
# ---------------------------------------------------------------------------
def resolve_tag_ids(
    client: SupabaseClient,
    user_id: str,
    names: Iterable[Optional[str]],
    cache: Optional[Dict[str, str]] = None,
) -> List[str]:
    """
    Return tag ids for `names`, creating missing tags for this user.

    Args:
        client:
            Persistence wrapper.
        user_id:
            Owner of the tags.
        names:
            Raw tag names from one note.
        cache:
            name → id map shared across the notes of one import run.

    Returns:
        Tag ids in the order of the normalized names.
    """
    if cache is None:
        cache = {}

    tag_ids: List[str] = []
    for name in normalize_tag_names(names):
        tag_id = cache.get(name)
        if tag_id is None:
            tag_id = client.upsert_tag(user_id, name)
            cache[name] = tag_id
        tag_ids.append(tag_id)

    return tag_ids
