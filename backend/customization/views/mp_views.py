import logging

from django.core.exceptions import ImproperlyConfigured

from .general_imports import *
from .base import CustomizationAPIView
from ..services.mercado_pago_service import MercadoPagoInvoiceClient
from ..services.payment_service import CustomizationPaymentService

logger = logging.getLogger(__name__)


class MercadoPagoPaymentNotificationView(CustomizationAPIView):
    """
    Webhook for Mercado Pago. Only signed calls are processed, and a settled
    payment is credited with the amount recorded when the checkout was opened.
    """

    permission_classes = [AllowAny]
    status_mapping = {
        "approved": "success",
        "cancelled": "failed",
        "rejected": "failed",
    }

    def post(self, request):
        data = request.data.get("data", {})
        payment_status = data.get("status")
        preference_id = data.get("id")

        if not preference_id:
            return Response({"error": "Missing payment id."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            MercadoPagoInvoiceClient().verify_notification(
                request.headers.get("x-signature", ""), request.headers.get("x-request-id", ""), preference_id
            )
        except ImproperlyConfigured as e:
            logger.error(f"MercadoPago webhook misconfigured: {str(e)}")
            return Response({"error": "Webhook not configured."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        settled_status = self.status_mapping.get(payment_status)
        if settled_status is None:
            logger.info(f"Ignoring MercadoPago notification for {preference_id} with status {payment_status}")
            return Response({"status": "ignored"}, status=status.HTTP_200_OK)

        CustomizationPaymentService().settle_payment(preference_id, settled_status)
        return Response({"status": "success"}, status=status.HTTP_200_OK)
