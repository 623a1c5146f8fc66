class DoesNotExist(Exception):  # noqa: N818
    """Exception raised when a resource does not exist."""

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f'{resource_type} with ID "{resource_id!s}" does not exist')


class ConstraintViolation(Exception):  # noqa: N818
    """Exception raised when the database rejects a write."""


class InitializationFailure(Exception):  # noqa: N818
    """Exception raised when the task store cannot be opened."""

    def __init__(self, db_path: object, reason: str):
        self.db_path = db_path
        self.reason = reason
        super().__init__(f'Failed to initialize database "{db_path!s}": {reason}')


class LockContention(Exception):  # noqa: N818
    """Exception raised when the task store lock cannot be acquired in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Failed to lock database within {timeout:g} seconds")


class CommandError(Exception):
    """Exception raised by the command layer; the message is shown to the user."""
