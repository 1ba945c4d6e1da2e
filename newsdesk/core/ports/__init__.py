# newsdesk: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from newsdesk.core.ports.email import (
    BulkSendResult,
    EmailAddress,
    EmailError,
    EmailResult,
    EmailSendError,
    EmailStatus,
    EmailTransportPort,
)

__all__ = [
    "BulkSendResult",
    "EmailAddress",
    "EmailError",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
    "EmailTransportPort",
]
