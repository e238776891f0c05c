class CustomizationError(Exception):
    """Base class for workflow errors. ``message`` is safe to show to the user."""

    default_message = "Customization request error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(CustomizationError):
    default_message = "Request not found"


class Unauthorized(CustomizationError):
    default_message = "Unauthorized"


class InvalidState(CustomizationError):
    default_message = "Request is not in a valid state for this action"


class Conflict(InvalidState):
    """A conditioned write lost against a concurrent or duplicate write."""

    default_message = "Request is no longer available"


class PaymentGatewayError(CustomizationError):
    default_message = "An error occurred while creating the payment preference"


class InvalidSignature(CustomizationError):
    default_message = "Invalid signature"
