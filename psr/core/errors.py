"""Error codes for CLI exit status.

Every workflow error maps to one of these codes so shell scripts and CI
jobs can tell a bad invocation from a broken environment or a failing
remote call.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad version, missing release notes, unknown branch)
    - 2: Environment error (git missing, wrong project, credential problems)
    - 3: Workflow error (development line not mergeable, local git failure)
    - 4: Network error (REST call failed, status polling timed out)
    - 5: I/O error (artifact unreadable or unwritable)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    WORKFLOW_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
