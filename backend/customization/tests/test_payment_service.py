from decimal import Decimal

from django.test import TestCase

from ..exceptions import Conflict, InvalidState, NotFound, Unauthorized
from ..models import CustomizationStatus as S, PaymentRecord, PricingAgreement
from .factories import FakeInvoiceClient, build_services, make_product, make_request, make_user


class PricingAgreementTestCase(TestCase):
    def setUp(self):
        self.customer = make_user("customer")
        self.designer = make_user("designer", role="designer")
        self.product = make_product()
        self.request = make_request(
            self.customer, self.product, status=S.AWAITING_CUSTOMER_APPROVAL, designer=self.designer
        )
        self.workflow, self.payments, self.events = build_services()

    def propose(self, **kwargs):
        data = {"design_fee": "100", "payment_type": "upfront", "printing_cost": "50"}
        data.update(kwargs)
        return self.payments.propose_pricing(self.request.pk, self.designer.id, **data)

    def test_propose_initialises_payment_summary(self):
        agreement = self.propose()

        self.assertEqual(agreement.total_cost, Decimal("150.00"))
        self.assertTrue(agreement.agreed_by_designer)
        self.assertFalse(agreement.agreed_by_customer)

        summary = self.payments.get_payment_status(self.request.pk)
        self.assertEqual(summary.total_amount, Decimal("150.00"))
        self.assertEqual(summary.paid_amount, Decimal("0"))
        self.assertEqual(summary.remaining_amount, Decimal("150.00"))
        self.assertEqual(summary.payment_status, "pending")
        self.assertEqual(summary.currency, "ARS")
        self.assertIn("customization.pricing.created", self.events.names())

    def test_no_payment_summary_before_pricing(self):
        self.assertIsNone(self.payments.get_payment_status(self.request.pk))

    def test_only_assigned_designer_can_propose(self):
        other = make_user("other_designer", role="designer")

        with self.assertRaises(Unauthorized):
            self.payments.propose_pricing(self.request.pk, other.id, design_fee="10", payment_type="upfront")

    def test_only_one_active_agreement(self):
        self.propose()

        with self.assertRaises(InvalidState):
            self.propose()
        self.assertEqual(PricingAgreement.objects.filter(request=self.request, is_active=True).count(), 1)

    def test_negative_amount_is_rejected(self):
        with self.assertRaises(InvalidState):
            self.propose(design_fee="-5")
        self.assertFalse(PricingAgreement.objects.exists())

    def test_agree_once(self):
        self.propose()

        agreement = self.payments.agree_to_pricing(self.request.pk, self.customer.id)
        self.assertTrue(agreement.agreed_by_customer)
        self.assertIsNotNone(agreement.agreed_at)

        with self.assertRaises(InvalidState):
            self.payments.agree_to_pricing(self.request.pk, self.customer.id)

    def test_reject_pricing_then_propose_again(self):
        self.propose()

        rejected = self.payments.reject_pricing(self.request.pk, self.customer.id, "too expensive")
        self.assertEqual(rejected.status, S.AWAITING_PRICING)
        self.assertIsNone(rejected.payment_status)
        self.assertFalse(PricingAgreement.objects.filter(request=self.request, is_active=True).exists())
        self.assertEqual(PricingAgreement.objects.get().rejection_reason, "too expensive")

        agreement = self.propose(design_fee="80")
        self.assertEqual(agreement.total_cost, Decimal("130.00"))
        self.assertEqual(self.workflow.get_request_by_id(self.request.pk).status, S.AWAITING_CUSTOMER_APPROVAL)

    def test_reject_pricing_after_agreement_is_invalid(self):
        self.propose()
        self.payments.agree_to_pricing(self.request.pk, self.customer.id)

        with self.assertRaises(InvalidState):
            self.payments.reject_pricing(self.request.pk, self.customer.id)

    def test_awaiting_pricing_request_can_be_cancelled(self):
        self.propose()
        self.payments.reject_pricing(self.request.pk, self.customer.id)

        cancelled = self.workflow.cancel_request(self.request.pk, self.customer.id)
        self.assertEqual(cancelled.status, S.CANCELLED)

    def test_milestones_must_add_up(self):
        with self.assertRaises(InvalidState):
            self.propose(payment_type="milestone", milestones=[{"description": "Sketch", "amount": "20"}])

    def test_milestone_ids_are_assigned(self):
        agreement = self.propose(
            payment_type="milestone",
            milestones=[{"description": "Sketch", "amount": "60"}, {"description": "Final", "amount": "90"}],
        )

        self.assertEqual([m["id"] for m in agreement.milestones], ["milestone-1", "milestone-2"])
        self.assertFalse(any(m["is_paid"] for m in agreement.milestones))


class PaymentRecordTestCase(TestCase):
    def setUp(self):
        self.customer = make_user("customer")
        self.designer = make_user("designer", role="designer")
        self.product = make_product()
        self.request = make_request(
            self.customer, self.product, status=S.AWAITING_CUSTOMER_APPROVAL, designer=self.designer
        )
        self.invoice_client = FakeInvoiceClient()
        self.workflow, self.payments, self.events = build_services(invoice_client=self.invoice_client)

    def agree(self, **kwargs):
        data = {"design_fee": "100", "payment_type": "upfront", "printing_cost": "50"}
        data.update(kwargs)
        self.payments.propose_pricing(self.request.pk, self.designer.id, **data)
        self.payments.agree_to_pricing(self.request.pk, self.customer.id)

    def test_record_requires_payment_details(self):
        with self.assertRaises(InvalidState) as ctx:
            self.payments.record_payment(self.request.pk, "mp-1", "10", status="success")
        self.assertEqual(ctx.exception.message, "No payment details found")

    def test_partial_then_full_payment(self):
        self.agree()

        partial = self.payments.record_payment(self.request.pk, "mp-1", "100", status="success")
        self.assertEqual(partial.paid_amount, Decimal("100.00"))
        self.assertEqual(partial.remaining_amount, Decimal("50.00"))
        self.assertEqual(partial.payment_status, "partially_paid")

        full = self.payments.record_payment(self.request.pk, "mp-2", "50", status="success")
        self.assertEqual(full.remaining_amount, Decimal("0.00"))
        self.assertEqual(full.payment_status, "fully_paid")

    def test_overpayment_is_clamped_and_reported(self):
        self.agree()
        self.payments.record_payment(self.request.pk, "mp-1", "100", status="success")

        updated = self.payments.record_payment(self.request.pk, "mp-2", "80", status="success")

        self.assertEqual(updated.paid_amount, Decimal("150.00"))
        self.assertEqual(updated.remaining_amount, Decimal("0.00"))
        self.assertEqual(updated.payment_status, "fully_paid")
        name, payload = self.events.events[-1]
        self.assertEqual(name, "customization.payment.inconsistency")
        self.assertEqual(payload["overpaidAmount"], "30.00")

    def test_pending_payment_does_not_credit(self):
        self.agree()

        updated = self.payments.record_payment(self.request.pk, "mp-1", "100")

        self.assertEqual(updated.paid_amount, Decimal("0.00"))
        self.assertEqual(updated.payment_status, "pending")
        self.assertEqual(PaymentRecord.objects.get().status, "pending")

    def test_duplicate_external_id_conflicts(self):
        self.agree()
        self.payments.record_payment(self.request.pk, "mp-1", "100", status="success")

        with self.assertRaises(Conflict):
            self.payments.record_payment(self.request.pk, "mp-1", "100", status="success")
        self.assertEqual(self.workflow.get_request_by_id(self.request.pk).paid_amount, Decimal("100.00"))

    def test_pricing_with_credited_payment_cannot_be_rejected(self):
        self.payments.propose_pricing(self.request.pk, self.designer.id, design_fee="100", payment_type="upfront")
        self.payments.record_payment(self.request.pk, "mp-1", "40.00", status="success")

        with self.assertRaises(InvalidState):
            self.payments.reject_pricing(self.request.pk, self.customer.id, "too expensive")

        stored = self.workflow.get_request_by_id(self.request.pk)
        self.assertEqual(stored.paid_amount, Decimal("40.00"))
        self.assertEqual(stored.total_amount, Decimal("100.00"))
        self.assertEqual(stored.status, S.AWAITING_CUSTOMER_APPROVAL)
        self.assertTrue(PricingAgreement.objects.get().is_active)

    def test_pricing_with_pending_payment_cannot_be_rejected(self):
        self.payments.propose_pricing(self.request.pk, self.designer.id, design_fee="100", payment_type="upfront")
        self.payments.record_payment(self.request.pk, "mp-1", "10.00")

        with self.assertRaises(InvalidState):
            self.payments.reject_pricing(self.request.pk, self.customer.id)

        settled = self.payments.settle_payment("mp-1", "success")
        self.assertEqual(settled.paid_amount, Decimal("10.00"))
        self.assertEqual(settled.payment_status, "partially_paid")

    def test_pricing_with_failed_payment_can_be_rejected(self):
        self.payments.propose_pricing(self.request.pk, self.designer.id, design_fee="100", payment_type="upfront")
        self.payments.record_payment(self.request.pk, "mp-1", "10.00", status="failed")

        rejected = self.payments.reject_pricing(self.request.pk, self.customer.id)
        self.assertEqual(rejected.status, S.AWAITING_PRICING)

    def test_zero_amount_is_rejected(self):
        self.agree()

        with self.assertRaises(InvalidState):
            self.payments.record_payment(self.request.pk, "mp-1", "0", status="success")

    def test_request_payment_opens_checkout(self):
        self.agree()

        updated = self.payments.request_payment(self.request.pk, self.customer.id, "75", "mercadopago")

        self.assertEqual(len(self.invoice_client.calls), 1)
        self.assertEqual(self.invoice_client.calls[0]["amount"], Decimal("75.00"))
        payment = PaymentRecord.objects.get()
        self.assertEqual(payment.external_id, "pref-1")
        self.assertEqual(payment.status, "pending")
        self.assertEqual(payment.invoice_url, "https://mp.example.com/checkout/1")
        self.assertEqual(updated.paid_amount, Decimal("0.00"))

    def test_request_payment_requires_agreement(self):
        self.payments.propose_pricing(self.request.pk, self.designer.id, design_fee="100", payment_type="upfront")

        with self.assertRaises(InvalidState):
            self.payments.request_payment(self.request.pk, self.customer.id, "50", "mercadopago")
        self.assertEqual(self.invoice_client.calls, [])

    def test_request_payment_cannot_exceed_balance(self):
        self.agree()

        with self.assertRaises(InvalidState):
            self.payments.request_payment(self.request.pk, self.customer.id, "151", "mercadopago")

    def test_request_payment_by_other_user(self):
        self.agree()

        with self.assertRaises(Unauthorized):
            self.payments.request_payment(self.request.pk, self.designer.id, "50", "mercadopago")

    def test_settle_payment(self):
        self.agree()
        self.payments.request_payment(self.request.pk, self.customer.id, "150", "mercadopago")

        settled = self.payments.settle_payment("pref-1", "success")

        self.assertEqual(settled.payment_status, "fully_paid")
        self.assertEqual(PaymentRecord.objects.get().status, "success")
        self.assertIsNotNone(PaymentRecord.objects.get().paid_at)

        with self.assertRaises(Conflict):
            self.payments.settle_payment("pref-1", "success")

    def test_failed_settlement_does_not_credit(self):
        self.agree()
        self.payments.request_payment(self.request.pk, self.customer.id, "150", "mercadopago")

        settled = self.payments.settle_payment("pref-1", "failed")

        self.assertEqual(settled.paid_amount, Decimal("0.00"))
        self.assertEqual(PaymentRecord.objects.get().status, "failed")

    def test_settle_unknown_payment(self):
        with self.assertRaises(NotFound):
            self.payments.settle_payment("missing", "success")

    def test_milestone_payment_marks_milestone(self):
        self.agree(
            design_fee="150", printing_cost="0", payment_type="milestone",
            milestones=[{"description": "Sketch", "amount": "60"}, {"description": "Final", "amount": "90"}],
        )

        self.payments.request_payment(self.request.pk, self.customer.id, "60", "mercadopago", milestone_id="milestone-1")
        self.payments.settle_payment("pref-1", "success")

        milestones = PricingAgreement.objects.get(is_active=True).milestones
        self.assertTrue(milestones[0]["is_paid"])
        self.assertEqual(milestones[0]["payment_id"], "pref-1")
        self.assertFalse(milestones[1]["is_paid"])

        with self.assertRaises(InvalidState):
            self.payments.request_payment(self.request.pk, self.customer.id, "60", "mercadopago", milestone_id="milestone-1")

    def test_milestone_amount_must_match(self):
        self.agree(
            design_fee="150", printing_cost="0", payment_type="milestone",
            milestones=[{"description": "Sketch", "amount": "60"}, {"description": "Final", "amount": "90"}],
        )

        with self.assertRaises(InvalidState):
            self.payments.request_payment(self.request.pk, self.customer.id, "50", "mercadopago", milestone_id="milestone-2")
