"""Derive KafkaTopic resource names from application names."""

import hashlib
import re

MAX_TOPIC_LEN = 63

SIMPLE_PREFIX = "events-"
# different prefix, so hashed names never clash with simple ones
HASHED_PREFIX = "evt-"

TOPIC_PATTERN = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)
INVALID_CHARS = re.compile(r"[^a-z0-9-]")


def make_topic_resource_name(app_name: str) -> str:
    """ Compute the KafkaTopic resource name for an application.

    The name is ``events-<app>`` whenever that is a valid resource name.
    Otherwise a name is built from the MD5 hash of the application name
    followed by a sanitized copy of it, cut to the maximum length.

    Args:
        app_name: The application name
    """
    name = f"{SIMPLE_PREFIX}{app_name}"

    if len(name) < MAX_TOPIC_LEN and TOPIC_PATTERN.fullmatch(name):
        return name

    digest = hashlib.md5(app_name.encode("utf-8")).hexdigest()
    name = f"{HASHED_PREFIX}{digest}-{app_name}".lower()
    name = INVALID_CHARS.sub("-", name)[:MAX_TOPIC_LEN]

    return name.rstrip("-")
