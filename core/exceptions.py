"""Custom exception hierarchy for the forwarding proxy."""

from enum import StrEnum


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class RequestTooLarge(ProxyError):
    """Request body exceeds size limit."""


class ForwardingStage(StrEnum):
    """States of a single forwarding operation."""

    RECEIVED = "received"
    TRANSLATED = "translated"
    DISPATCHED = "dispatched"
    REPLIED = "replied"
    REJECTED = "rejected"


class RejectionKind(StrEnum):
    """Distinguishes why a forwarding operation was rejected."""

    MALFORMED_REQUEST = "malformed_request"
    UPSTREAM_UNREACHABLE = "upstream_unreachable"
    MALFORMED_RESPONSE = "malformed_response"
    CLIENT_DISCONNECTED = "client_disconnected"


class ForwardingError(ProxyError):
    """A forwarding operation ended without a reply.

    Attributes:
        message: Error message
        kind: Which failure class ended the operation
        stage: Last state the operation reached before rejection
    """

    kind: RejectionKind

    def __init__(self, message: str, stage: ForwardingStage | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


class MalformedRequest(ForwardingError):
    """The outbound request could not be built from the inbound one."""

    kind = RejectionKind.MALFORMED_REQUEST


class UpstreamUnreachable(ForwardingError):
    """The upstream could not be reached or the exchange did not complete."""

    kind = RejectionKind.UPSTREAM_UNREACHABLE


class UpstreamTimeout(UpstreamUnreachable):
    """The upstream exchange exceeded the configured timeout."""


class MalformedResponse(ForwardingError):
    """The upstream response cannot be represented as a reply."""

    kind = RejectionKind.MALFORMED_RESPONSE


class ClientDisconnected(ForwardingError):
    """The inbound client went away before the upstream replied."""

    kind = RejectionKind.CLIENT_DISCONNECTED
