"""
Chat-specific exceptions.

Most chat failures travel as ServiceResult error codes. The exception here is
for the transport leg of a send, where the client cannot know whether the
server persisted the message before the failure happened.
"""

from core.exceptions import ExternalServiceError


class TransientDeliveryFailure(ExternalServiceError):
    """
    Raised when a send could not be confirmed over the transport.

    The socket was not connected, the request timed out, or the channel
    layer was unreachable. The message may still have been persisted, so
    callers surface the failed state and let the user resend manually. A
    resend creates a new, distinct message.
    """

    default_error_code: str = "TRANSIENT_DELIVERY_FAILURE"
