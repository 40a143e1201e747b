"""Create or update a resource, writing only when something changed."""

import copy
import logging
from typing import Any, Callable, Dict, NamedTuple

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"


class UpsertResult(NamedTuple):
    resource: Dict[str, Any]
    action: str


def metadata_and_spec_equal(current, desired):
    """Compare the parts of a resource the controller manages.

    Status is written by the owner of the resource and is ignored.
    """
    return current.get("metadata") == desired.get("metadata") and current.get(
        "spec"
    ) == desired.get("spec")


async def create_or_update_by(
    api,
    name: str,
    creator: Callable[[], Dict[str, Any]],
    mutator: Callable[[Dict[str, Any]], Dict[str, Any]],
    eq: Callable[[Dict[str, Any], Dict[str, Any]], bool] = metadata_and_spec_equal,
) -> UpsertResult:
    """Ensure a resource exists in its desired state.

    Args:
        api: Resource API offering ``get``, ``create`` and ``replace``
        name: Name of the resource
        creator: Builds a new, empty resource
        mutator: Applies the desired state to a resource
        eq: Decides whether the current resource is already up to date

    Returns:
        UpsertResult: the resource as stored, and what had to be done
    """
    current = await api.get(name)

    if current is None:
        desired = mutator(creator())
        return UpsertResult(await api.create(desired), CREATED)

    desired = mutator(copy.deepcopy(current))
    if eq(current, desired):
        logger.debug(f"Resource {name} is up to date")
        return UpsertResult(current, UNCHANGED)

    return UpsertResult(await api.replace(desired), UPDATED)
