"""Random identifiers for readers and writers."""

import base64
import random
import uuid

_LETTERS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def rand_string(n):
    """Return ``n`` random alphanumeric characters."""
    return "".join(random.choice(_LETTERS) for _ in range(n))


def new_id():
    """Return a URL-safe base64 id built from 12 random UUID bytes."""
    return base64.urlsafe_b64encode(uuid.uuid4().bytes[:12]).decode("ascii")