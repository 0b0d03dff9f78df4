"""One-off data migrations over a loaded workspace."""

import logging
from typing import TYPE_CHECKING, Dict

from .workspace import COLLECTIONS

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


def attribute_untagged_records(workspace: "Workspace", school_name: str) -> Dict[str, int]:
    """
    Tag every record that carries no school with ``school_name``.

    Records written before schools were tracked have neither ``schoolName``
    nor ``school``. After this runs, the scoped views no longer need the
    first-school fallback for them. Returns the number of records tagged per
    collection; collections with nothing to tag are left unwritten.
    """
    counts: Dict[str, int] = {}
    for spec in COLLECTIONS:
        if not spec.school_fields:
            continue

        records = workspace.collection(spec.name)
        untagged = [r for r in records if not r.school_tag]
        if not untagged:
            continue

        field_name = spec.school_fields[0]
        updated = [
            r.model_copy(update={field_name: school_name}) if not r.school_tag else r
            for r in records
        ]
        workspace.replace(spec.name, updated)
        counts[spec.name] = len(untagged)

    if counts:
        logger.info(f"Attributed untagged records to '{school_name}'", extra={"counts": counts})
    return counts
