"""
Service result types
Every expected failure is returned as Err(kind); only unexpected faults raise
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class ErrorKind(Enum):
    """Expected failure kinds with their (status code, message key) pair"""

    # input validation
    NULL_VALUE = (400, 'NULL_VALUE')
    INVALID_VALUE = (400, 'INVALID_VALUE')
    NO_PILL_NAME = (400, 'NO_PILL_NAME')
    # state conflicts
    PILL_COUNT_OVER = (400, 'PILL_COUNT_OVER')
    ALREADY_STOP_PILL = (400, 'ALREADY_PILL_STOP')
    ALREADY_MEMBER = (400, 'ALREADY_MEMBER')
    INVALID_SCHEDULE = (400, 'INVALID_SCHEDULE')
    # identity and authorization
    NO_AUTHENTICATED = (401, 'NO_AUTHENTICATED')
    NO_PILL_USER = (403, 'PILL_UNAUTHORIZED')
    NO_MEMBER = (403, 'NO_MEMBER')
    # not found
    NON_EXISTENT_USER = (404, 'NO_USER')
    NON_EXISTENT_PILL = (404, 'NO_PILL')
    # infrastructure
    INTERNAL_SERVER_ERROR = (500, 'INTERNAL_SERVER_ERROR')

    @property
    def status_code(self):
        return self.value[0]

    @property
    def message(self):
        return self.value[1]


@dataclass(frozen=True)
class Ok:
    value: Any = None

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind

    ok: ClassVar[bool] = False
