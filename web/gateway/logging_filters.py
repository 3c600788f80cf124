"""Logging filters that stamp records with request context.

The formatter configured in ``config.settings`` references
``%(request_id)s``; this filter guarantees the attribute exists on every
record, including those emitted outside a request (management commands,
gunicorn boot), and adds the authenticated ``user_id`` when one is known.
"""

from logging import Filter, LogRecord
from .middleware import REQUEST_ID_CTX, USER_ID_CTX


class RequestIdFilter(Filter):
    """Attach ``request_id`` and ``user_id`` attributes to log records.

    Values come from the context variables populated by
    ``RequestIdMiddleware`` and ``BearerTokenAuthentication``. A hyphen is
    used when no value is set.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        if not hasattr(record, "user_id"):
            record.user_id = USER_ID_CTX.get()
        return True
