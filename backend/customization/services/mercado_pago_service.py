import hashlib
import hmac
import logging

import mercadopago
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from ..exceptions import InvalidSignature, PaymentGatewayError

logger = logging.getLogger(__name__)


class MercadoPagoInvoiceClient:
    """Creates Mercado Pago checkout preferences for customization payments and checks their notifications."""

    def __init__(self, access_token=None, sdk=None, webhook_secret=None):
        self.access_token = access_token or str(settings.MERCADOPAGO_ACCESS_TOKEN)
        self.webhook_secret = webhook_secret or settings.MP_WEBHOOK_SECRET
        self._sdk = sdk

    @property
    def sdk(self):
        if self._sdk is None:
            if not self.access_token:
                raise PaymentGatewayError("Access token must be a valid string.")
            self._sdk = mercadopago.SDK(self.access_token)
        return self._sdk

    def create_invoice(self, external_reference: str, title: str, amount, payer_email: str = None):
        preference_data = {
            "items": [
                {
                    "id": external_reference,
                    "title": title,
                    "quantity": 1,
                    "unit_price": float(amount),
                }
            ],
            "back_urls": settings.MP_BACK_URLS,
            "auto_return": "approved",
            "notification_url": settings.MP_NOTIFICATION_URL,
            "external_reference": external_reference,
        }
        if payer_email:
            preference_data["payer"] = {"email": payer_email}

        logger.info(f"Creating MercadoPago preference for {external_reference}")
        try:
            preference_response = self.sdk.preference().create(preference_data)
        except Exception as e:
            logger.error(f"MercadoPago Preference Creation Error: {str(e)}")
            raise PaymentGatewayError("Failed to create MercadoPago preference.") from e

        if "response" not in preference_response or "id" not in preference_response["response"]:
            logger.error(f"Unexpected preference creation response: {preference_response}")
            raise PaymentGatewayError("Failed to extract preference ID from response.")

        response = preference_response["response"]
        return {"id": response["id"], "url": response.get("init_point")}

    def verify_notification(self, signature_header: str, request_id: str, data_id) -> None:
        """
        Check the ``x-signature`` header of a webhook call. Mercado Pago signs
        ``id:<data.id>;request-id:<x-request-id>;ts:<ts>;`` with the webhook
        secret using HMAC-SHA256 and sends ``ts=<ts>,v1=<hex digest>``.
        """
        if not self.webhook_secret:
            raise ImproperlyConfigured("MP_WEBHOOK_SECRET is not set.")

        parts = dict(
            part.strip().split("=", 1) for part in (signature_header or "").split(",") if "=" in part
        )
        ts, received = parts.get("ts"), parts.get("v1")
        if not ts or not received:
            raise InvalidSignature("Missing signature")

        manifest = f"id:{str(data_id).lower()};"
        if request_id:
            manifest += f"request-id:{request_id};"
        manifest += f"ts:{ts};"

        expected = hmac.new(self.webhook_secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, received):
            logger.warning(f"Rejected MercadoPago notification for {data_id}: bad signature")
            raise InvalidSignature()
