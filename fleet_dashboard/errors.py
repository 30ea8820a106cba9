"""
errors.py: Error kinds raised by the backend adapter and the workflows.

Callbacks only ever look at `ErrorKind`, never at Supabase/PostgREST error
text, so the friendly messages live here in one place.
"""

import enum


class ErrorKind(enum.Enum):
    SCHEMA_MISSING = "schema_missing"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


_SCHEMA_CODES = {"PGRST205", "PGRST106", "42P01"}
_PERMISSION_CODES = {"42501", "PGRST301"}
_NOT_FOUND_CODES = {"PGRST116"}

_MESSAGES = {
    ErrorKind.SCHEMA_MISSING: "Database setup required: the {what} tables do not exist yet. "
                              "Run the database migration SQL.",
    ErrorKind.PERMISSION_DENIED: "Permission setup required: row level security policies for {what} "
                                 "are missing. Run the RLS policies SQL.",
    ErrorKind.NOT_FOUND: "The requested {what} record no longer exists.",
    ErrorKind.UNKNOWN: "Failed to {action}.",
}


class DashboardError(Exception):
    """Base class for errors shown to the user as a notification."""

    def user_message(self):
        return str(self)


class ValidationError(DashboardError):
    """Input rejected before any network call was made."""


class ReportLinkedError(ValidationError):
    def __init__(self, report_id, deposit_ids=()):
        self.report_id = report_id
        self.deposit_ids = list(deposit_ids)
        super().__init__(
            "Cannot delete report that is associated with bank deposits. "
            "Please remove it from deposits first."
        )


class BackendError(DashboardError):
    """A Supabase table or storage call failed."""

    def __init__(self, kind, action, detail="", what="dashboard"):
        self.kind = kind
        self.action = action
        self.detail = detail
        self.what = what
        super().__init__(f"{action}: {detail}" if detail else action)

    def user_message(self):
        return _MESSAGES[self.kind].format(what=self.what, action=self.action)


def _error_code(exc):
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return str(code) if code is not None else ""


def classify_error_kind(exc):
    """Map a PostgREST / Postgres / storage exception onto an ErrorKind."""
    code = _error_code(exc)
    text = str(getattr(exc, "message", "") or exc).lower()

    if code in _SCHEMA_CODES or ("relation" in text and "does not exist" in text) \
            or "could not find the table" in text:
        return ErrorKind.SCHEMA_MISSING
    if code in _PERMISSION_CODES or "permission denied" in text or "rls" in text \
            or "policy" in text:
        return ErrorKind.PERMISSION_DENIED
    if code in _NOT_FOUND_CODES or "not found" in text or "0 rows" in text:
        return ErrorKind.NOT_FOUND
    return ErrorKind.UNKNOWN


def classify_backend_error(exc, action, what="dashboard"):
    """Wrap any exception from the Supabase client into a BackendError."""
    if isinstance(exc, BackendError):
        return exc
    return BackendError(classify_error_kind(exc), action, str(exc), what=what)
