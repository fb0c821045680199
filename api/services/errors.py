"""Base exceptions shared by the service modules.

Routes still catch the concrete subclasses so each can carry its own
response detail.
"""


class NotFoundError(Exception):
    """A user, machine or workout session does not exist."""


class ConflictError(Exception):
    """The change would break a uniqueness or reference constraint."""
