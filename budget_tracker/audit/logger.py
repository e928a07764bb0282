"""
Audit Logger

DESIGN DECISION: Every write to the store and every recovered failure
is logged. Storage-layer parse failures are swallowed by design, so the
log is the only place they become visible.

The audit logger:
- Is synchronous, like the store it observes
- Never raises (a logging failure must not break a save)
"""

import structlog

from budget_tracker.models.audit import AuditEvent, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: str = "budget_tracker"):
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Routes each event to the log level matching its severity.
    """

    def __init__(self, name: str = "budget_tracker.audit"):
        self._logger = get_logger(name)

    def log(self, event: AuditEvent) -> None:
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Last resort; a broken log handler must not fail the caller
            print(f"WARNING: Failed to write audit event: {e}")
