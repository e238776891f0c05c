import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..conf import get_setting
from ..events import get_event_sink, publish
from ..exceptions import Conflict, InvalidState, NotFound, Unauthorized
from ..models import CustomizationStatus, PaymentRecord, PaymentStatus, PaymentType, PricingAgreement
from ..repositories import CustomizationRepository
from ..transitions import check_transition
from .mercado_pago_service import MercadoPagoInvoiceClient

logger = logging.getLogger(__name__)

S = CustomizationStatus

CENT = Decimal("0.01")


def to_money(value):
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidState(f"Invalid amount: {value}")
    if amount < 0:
        raise InvalidState("Amounts cannot be negative")
    return amount


@dataclass
class PaymentSummary:
    payment_type: Optional[str]
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_status: str
    currency: Optional[str]
    payments: List[PaymentRecord] = field(default_factory=list)


class CustomizationPaymentService:
    """
    Pricing agreements and the payment summary of a customization request.

    The designer proposes a price, the customer agrees to it once or rejects
    it (which sends the request to ``awaiting_pricing`` until a new agreement
    is proposed). Payment entries come from the payment bridge through
    :meth:`record_payment` and :meth:`settle_payment`; ``paid_amount`` only
    grows and is clamped at ``total_amount``.
    """

    def __init__(self, repository=None, invoice_client=None, events=None):
        self.repository = repository or CustomizationRepository()
        self.invoice_client = invoice_client or MercadoPagoInvoiceClient()
        self.events = events or get_event_sink()

    ###########################
    #### PRICING AGREEMENT ####
    ###########################

    def propose_pricing(self, request_id, designer_id, design_fee, payment_type,
                        product_cost=0, printing_cost=0, milestones=None):
        design_fee, product_cost, printing_cost = to_money(design_fee), to_money(product_cost), to_money(printing_cost)
        if payment_type not in PaymentType.values:
            raise InvalidState(f"Invalid payment type: {payment_type}")
        total = design_fee + product_cost + printing_cost

        with transaction.atomic():
            request = self._lock(request_id)
            if request.designer_id != designer_id:
                raise Unauthorized("Only the assigned designer can create pricing")
            if request.status not in (S.AWAITING_CUSTOMER_APPROVAL, S.AWAITING_PRICING):
                raise InvalidState("Pricing can only be proposed while the design awaits customer approval")
            if request.pricing_agreements.filter(is_active=True).exists():
                raise InvalidState("An active pricing agreement already exists")

            agreement = PricingAgreement.objects.create(
                request=request,
                design_fee=design_fee,
                product_cost=product_cost,
                printing_cost=printing_cost,
                total_cost=total,
                payment_type=payment_type,
                milestones=self._build_milestones(payment_type, milestones, total),
            )

            summary = dict(
                payment_type=payment_type,
                total_amount=total,
                paid_amount=Decimal("0"),
                remaining_amount=total,
                payment_status=PaymentStatus.PENDING,
                currency=get_setting("CURRENCY"),
            )
            if request.status == S.AWAITING_PRICING:
                check_transition(request.status, S.AWAITING_CUSTOMER_APPROVAL)
                written = self.repository.transition(
                    request.pk, [S.AWAITING_PRICING], S.AWAITING_CUSTOMER_APPROVAL, **summary
                )
            else:
                written = self.repository.update_where(request.pk, Q(status=request.status), **summary)
            if not written:
                raise Conflict("Request changed while the pricing was being proposed")

        logger.info("Pricing %s proposed for request %s by designer %s", total, request.pk, designer_id)
        publish(self.events, "customization.pricing.created", {
            "requestId": str(request.pk),
            "customerId": request.customer_id,
            "designerId": designer_id,
            "totalCost": str(total),
            "agreementId": agreement.pk,
        })
        return agreement

    def agree_to_pricing(self, request_id, customer_id):
        with transaction.atomic():
            request = self._lock(request_id)
            self._check_customer(request, customer_id)
            agreement = self._active_agreement(request, "No pricing agreement to approve")
            if agreement.agreed_by_customer:
                raise InvalidState("Pricing already agreed to")

            updated = PricingAgreement.objects.filter(
                pk=agreement.pk, is_active=True, agreed_by_customer=False
            ).update(agreed_by_customer=True, agreed_at=timezone.now())
            if not updated:
                raise Conflict("Pricing already agreed to")

        publish(self.events, "customization.pricing.agreed", {
            "requestId": str(request.pk),
            "customerId": customer_id,
            "designerId": request.designer_id,
        })
        return PricingAgreement.objects.get(pk=agreement.pk)

    def reject_pricing(self, request_id, customer_id, reason=None):
        with transaction.atomic():
            request = self._lock(request_id)
            self._check_customer(request, customer_id)
            agreement = self._active_agreement(request, "No pricing agreement to reject")
            if agreement.agreed_by_customer:
                raise InvalidState("Pricing already agreed to")
            if request.status != S.AWAITING_CUSTOMER_APPROVAL:
                raise InvalidState("Request is not awaiting approval")
            # paid_amount only grows, so pricing with money on it is kept
            if request.paid_amount > 0 or request.payments.filter(status__in=["pending", "success"]).exists():
                raise InvalidState("Pricing cannot be rejected once payments exist")
            check_transition(request.status, S.AWAITING_PRICING)

            PricingAgreement.objects.filter(pk=agreement.pk).update(is_active=False, rejection_reason=reason)
            written = self.repository.transition(
                request.pk,
                [S.AWAITING_CUSTOMER_APPROVAL],
                S.AWAITING_PRICING,
                payment_type=None,
                total_amount=Decimal("0"),
                paid_amount=Decimal("0"),
                remaining_amount=Decimal("0"),
                payment_status=None,
            )
            if not written:
                raise Conflict("Request is not awaiting approval")

        logger.info("Pricing for request %s rejected by customer", request.pk)
        publish(self.events, "customization.pricing.rejected", {
            "requestId": str(request.pk),
            "customerId": customer_id,
            "designerId": request.designer_id,
            "reason": reason,
        })
        return self.repository.find_by_id(request.pk)

    #################
    #### PAYMENT ####
    #################

    def request_payment(self, request_id, customer_id, amount, payment_method, milestone_id=None):
        """Open a checkout for ``amount`` and record it as a pending payment."""
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidState("Payment amount must be positive")

        request = self.repository.find_by_id(request_id)
        if request is None:
            raise NotFound("Request not found")
        self._check_customer(request, customer_id)

        agreement = request.active_pricing_agreement
        if agreement is None or not agreement.agreed_by_customer:
            raise InvalidState("Pricing must be agreed to before payment")
        if amount > request.remaining_amount:
            raise InvalidState("Payment amount exceeds remaining balance")

        if request.payment_type == PaymentType.MILESTONE and milestone_id:
            milestone = next((m for m in agreement.milestones if m["id"] == milestone_id), None)
            if milestone is None:
                raise InvalidState("Invalid milestone")
            if milestone["is_paid"]:
                raise InvalidState("Milestone already paid")
            if to_money(milestone["amount"]) != amount:
                raise InvalidState("Payment amount must match milestone amount")

        external_reference = f"customization-{request.pk}-{int(timezone.now().timestamp())}"
        invoice = self.invoice_client.create_invoice(
            external_reference=external_reference,
            title=f"Customization - {request.product_name}",
            amount=amount,
            payer_email=request.customer.email or None,
        )

        return self.record_payment(
            request.pk,
            external_id=invoice["id"],
            amount=amount,
            status="pending",
            payment_method=payment_method,
            invoice_url=invoice.get("url"),
            milestone_id=milestone_id,
        )

    def record_payment(self, request_id, external_id, amount, status="pending",
                       payment_method="mercadopago", invoice_url=None, milestone_id=None):
        """
        Append a payment entry reported by the payment bridge. A ``success``
        entry is credited immediately.
        """
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidState("Payment amount must be positive")
        if status not in ("pending", "success", "failed"):
            raise InvalidState(f"Invalid payment status: {status}")

        with transaction.atomic():
            request = self._lock(request_id)
            if request.payment_status is None:
                raise InvalidState("No payment details found")
            if PaymentRecord.objects.filter(external_id=external_id).exists():
                raise Conflict("Payment already recorded")

            payment = PaymentRecord.objects.create(
                request=request,
                external_id=external_id,
                amount=amount,
                payment_method=payment_method,
                status=status,
                invoice_url=invoice_url,
                milestone_id=milestone_id,
                paid_at=timezone.now() if status == "success" else None,
            )
            overpaid = self._credit(request, amount, payment) if status == "success" else None

        self._publish_payment(request, payment, overpaid)
        return self.repository.find_by_id(request.pk)

    def settle_payment(self, external_id, status):
        """
        Resolve a pending entry once the gateway reports it as paid or failed.
        A paid entry is credited with the amount recorded for it.
        """
        if status not in ("success", "failed"):
            raise InvalidState(f"Invalid payment status: {status}")

        with transaction.atomic():
            payment = PaymentRecord.objects.select_for_update().filter(external_id=external_id).first()
            if payment is None:
                raise NotFound("Payment not found")
            if payment.status != "pending":
                raise Conflict("Payment already settled")

            request = self._lock(payment.request_id)
            payment.status = status
            payment.paid_at = timezone.now()
            payment.save(update_fields=["status", "paid_at"])

            overpaid = None
            if status == "success":
                overpaid = self._credit(request, payment.amount, payment)

        self._publish_payment(request, payment, overpaid)
        return self.repository.find_by_id(request.pk)

    def get_payment_status(self, request_id) -> Optional[PaymentSummary]:
        request = self.repository.find_by_id(request_id)
        if request is None or request.payment_status is None:
            return None
        return PaymentSummary(
            payment_type=request.payment_type,
            total_amount=request.total_amount,
            paid_amount=request.paid_amount,
            remaining_amount=request.remaining_amount,
            payment_status=request.payment_status,
            currency=request.currency,
            payments=list(request.payments.all()),
        )

    ####################
    #### AUXILIARES ####
    ####################

    def _lock(self, request_id):
        request = self.repository.get_for_update(request_id)
        if request is None:
            raise NotFound("Request not found")
        return request

    @staticmethod
    def _check_customer(request, customer_id):
        if request.customer_id != customer_id:
            raise Unauthorized("Unauthorized")

    @staticmethod
    def _active_agreement(request, message):
        agreement = request.pricing_agreements.filter(is_active=True).first()
        if agreement is None:
            raise InvalidState(message)
        return agreement

    @staticmethod
    def _build_milestones(payment_type, milestones, total):
        if payment_type != PaymentType.MILESTONE:
            return []
        if not milestones:
            raise InvalidState("Milestone payments need at least one milestone")

        built = [
            {
                "id": f"milestone-{index}",
                "description": milestone["description"],
                "amount": str(to_money(milestone["amount"])),
                "is_paid": False,
                "payment_id": None,
            }
            for index, milestone in enumerate(milestones, start=1)
        ]
        if sum(Decimal(m["amount"]) for m in built) != total:
            raise InvalidState("Milestone amounts must add up to the total cost")
        return built

    def _credit(self, request, amount, payment):
        """
        Add ``amount`` to the paid total of a locked request. Returns the part
        that did not fit under ``total_amount``, or ``None``.
        """
        paid = request.paid_amount + amount
        overpaid = None
        if paid > request.total_amount:
            overpaid = paid - request.total_amount
            logger.warning(
                "Payment %s on request %s exceeds the total by %s, clamping", payment.external_id, request.pk, overpaid
            )
            paid = request.total_amount

        remaining = request.total_amount - paid
        if remaining == 0:
            payment_status = PaymentStatus.FULLY_PAID
        elif paid > 0:
            payment_status = PaymentStatus.PARTIALLY_PAID
        else:
            payment_status = PaymentStatus.PENDING

        self.repository.update_where(
            request.pk, Q(), paid_amount=paid, remaining_amount=remaining, payment_status=payment_status
        )
        request.paid_amount, request.remaining_amount, request.payment_status = paid, remaining, payment_status

        if request.payment_type == PaymentType.MILESTONE:
            self._mark_milestone(request, amount, payment)
        return overpaid

    @staticmethod
    def _mark_milestone(request, amount, payment):
        agreement = request.pricing_agreements.filter(is_active=True).first()
        if agreement is None:
            return
        milestones = agreement.milestones
        if payment.milestone_id:
            match = next((m for m in milestones if m["id"] == payment.milestone_id and not m["is_paid"]), None)
        else:
            match = next((m for m in milestones if not m["is_paid"] and Decimal(m["amount"]) == amount), None)
        if match is None:
            return
        match["is_paid"] = True
        match["payment_id"] = payment.external_id
        agreement.milestones = milestones
        agreement.save(update_fields=["milestones"])

    def _publish_payment(self, request, payment, overpaid):
        publish(self.events, "customization.payment.updated", {
            "requestId": str(request.pk),
            "customerId": request.customer_id,
            "designerId": request.designer_id,
            "paymentId": payment.external_id,
            "status": payment.status,
            "paidAmount": str(request.paid_amount),
            "remainingAmount": str(request.remaining_amount),
        })
        if overpaid is not None:
            publish(self.events, "customization.payment.inconsistency", {
                "requestId": str(request.pk),
                "paymentId": payment.external_id,
                "overpaidAmount": str(overpaid),
            })
