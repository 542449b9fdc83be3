"""Export failure taxonomy.

How the runner treats each error:

- AuthorizationDenied: terminal FAILED, attempts unchanged, audited as export.denied
- GuardrailExceeded:   counted attempt, retried with backoff up to MAX_EXPORT_ATTEMPTS
- TransientSkip:       not counted, job requeued after delay_ms
- StorageError:        counted attempt, retried with backoff
- JobLeaseLost:        job was recovered as stale mid-run; the result is dropped

Exhausting attempts is recorded on the job (FAILED + error_message) and is
never raised to a caller.
"""


class ExportError(Exception):
    """Base exception for export processing."""
    pass


class AuthorizationDenied(ExportError):
    """Requesting user can no longer run exports."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class GuardrailExceeded(ExportError):
    """A row, byte or runtime limit was exceeded while producing an export."""

    def __init__(self, guardrail: str, limit: int, actual=None):
        detail = f" (limit={limit}, actual={actual})" if actual is not None else f" (limit={limit})"
        super().__init__(f"Export exceeds {guardrail} guardrail{detail}")
        self.guardrail = guardrail
        self.limit = limit
        self.actual = actual


class TransientSkip(ExportError):
    """Job cannot run right now; requeue without counting an attempt."""

    def __init__(self, reason: str, delay_ms: int):
        super().__init__(f"Export skipped: {reason}")
        self.reason = reason
        self.delay_ms = delay_ms


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RepositoryError(Exception):
    """Expected row was missing or a store operation could not be applied."""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message)
        self.code = code


class JobLeaseLost(RepositoryError):
    """The job is no longer RUNNING under the caller's claim.

    Raised when stale recovery has requeued (and possibly re-claimed) the job
    while the original worker was still busy with it. The caller must drop
    its result.
    """

    def __init__(self, message: str):
        super().__init__(message, code="LEASE_LOST")
