import hashlib
import hmac
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.utils import timezone

from ..events import EventSink
from ..models import CustomizationRequest, CustomizationStatus, PrintingShop, Product, Profile
from ..services.customization_service import CustomizationService
from ..services.payment_service import CustomizationPaymentService


class RecordingEventSink(EventSink):
    def __init__(self):
        self.events = []

    def emit(self, event_name, payload):
        self.events.append((event_name, payload))

    def names(self):
        return [name for name, _ in self.events]


class FakeInvoiceClient:
    def __init__(self):
        self.calls = []

    def create_invoice(self, external_reference, title, amount, payer_email=None):
        self.calls.append({"external_reference": external_reference, "title": title, "amount": amount})
        return {"id": f"pref-{len(self.calls)}", "url": f"https://mp.example.com/checkout/{len(self.calls)}"}


def make_user(username, role="customer"):
    user = User.objects.create_user(username=username, password="pass1234", email=f"{username}@example.com")
    Profile.objects.filter(user=user).update(role=role, display_name=username.title())
    return user


def make_shop(owner, store_name="Print Hub"):
    return PrintingShop.objects.create(owner=owner, store_name=store_name, address="Av. Siempre Viva 742")


def make_product(name="Custom Mug", is_customizable=True, price="1500.00", shop=None):
    return Product.objects.create(name=name, price=Decimal(price), is_customizable=is_customizable, shop=shop)


def make_request(customer, product, status=CustomizationStatus.PENDING_DESIGNER_REVIEW, requested_at=None, **fields):
    return CustomizationRequest.objects.create(
        customer=customer,
        product=product,
        product_name=product.name,
        customization_notes="Add my logo",
        status=status,
        requested_at=requested_at or timezone.now(),
        **fields,
    )


def hours_after(moment, hours):
    return moment + timedelta(hours=hours)


def sign_notification(data_id, secret, request_id="req-1", ts="1704908010"):
    """Headers Mercado Pago would send with a notification about ``data_id``."""
    manifest = f"id:{data_id};request-id:{request_id};ts:{ts};"
    digest = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
    return {"HTTP_X_SIGNATURE": f"ts={ts},v1={digest}", "HTTP_X_REQUEST_ID": request_id}


def build_services(events=None, invoice_client=None, repository=None):
    events = events or RecordingEventSink()
    workflow = CustomizationService(repository=repository, events=events)
    payments = CustomizationPaymentService(
        repository=repository, invoice_client=invoice_client or FakeInvoiceClient(), events=events
    )
    return workflow, payments, events
