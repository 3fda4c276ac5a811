"""Department enums."""

from enum import IntEnum


class DepartmentStatus(IntEnum):
    """Enabled/disabled flag stored as a small integer."""

    DISABLED = 0
    ENABLED = 1


MAX_DEPARTMENT_LEVEL = 3
