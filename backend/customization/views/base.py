import logging

from .general_imports import *

logger = logging.getLogger(__name__)

# Conflict before InvalidState: it is a subclass.
ERROR_STATUS = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (Conflict, status.HTTP_409_CONFLICT),
    (InvalidState, status.HTTP_400_BAD_REQUEST),
    (PaymentGatewayError, status.HTTP_502_BAD_GATEWAY),
    (InvalidSignature, status.HTTP_401_UNAUTHORIZED),
]


class CustomizationAPIView(APIView):
    """Maps workflow errors to ``{"error": message}`` responses."""

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, CustomizationError):
            for error_class, status_code in ERROR_STATUS:
                if isinstance(exc, error_class):
                    logger.info("%s rejected: %s", self.__class__.__name__, exc.message)
                    return Response({"error": exc.message}, status=status_code)
        return super().handle_exception(exc)
