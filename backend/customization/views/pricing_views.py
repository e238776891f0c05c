from .general_imports import *
from .base import CustomizationAPIView
from ..serializers import (
    CustomizationRequestSerializer, PaymentRecordSerializer, PaymentRequestSerializer,
    PricingAgreementSerializer, PricingProposalSerializer, ReasonSerializer,
)
from ..services.payment_service import CustomizationPaymentService


class ProposePricingView(CustomizationAPIView):
    permission_classes = [IsDesigner]

    def post(self, request, request_id):
        serializer = PricingProposalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        agreement = CustomizationPaymentService().propose_pricing(request_id, request.user.id, **serializer.validated_data)
        return Response(PricingAgreementSerializer(agreement).data, status=status.HTTP_201_CREATED)


class AgreeToPricingView(CustomizationAPIView):

    def post(self, request, request_id):
        agreement = CustomizationPaymentService().agree_to_pricing(request_id, request.user.id)
        return Response(PricingAgreementSerializer(agreement).data, status=status.HTTP_200_OK)


class RejectPricingView(CustomizationAPIView):

    def post(self, request, request_id):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationPaymentService().reject_pricing(
            request_id, request.user.id, serializer.validated_data["reason"]
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class PaymentView(CustomizationAPIView):
    """GET: payment summary. POST: open a checkout for part of the balance."""

    def get(self, request, request_id):
        summary = CustomizationPaymentService().get_payment_status(request_id)
        if summary is None:
            return Response({"error": "No payment details found"}, status=status.HTTP_404_NOT_FOUND)

        return Response({
            "payment_type": summary.payment_type,
            "total_amount": summary.total_amount,
            "paid_amount": summary.paid_amount,
            "remaining_amount": summary.remaining_amount,
            "payment_status": summary.payment_status,
            "currency": summary.currency,
            "payments": PaymentRecordSerializer(summary.payments, many=True).data,
        }, status=status.HTTP_200_OK)

    def post(self, request, request_id):
        serializer = PaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationPaymentService().request_payment(
            request_id, request.user.id, **serializer.validated_data
        )
        payment = customization_request.payments.order_by("-created_at", "-id").first()
        return Response(
            {"preference_id": payment.external_id, "invoice_url": payment.invoice_url},
            status=status.HTTP_201_CREATED,
        )
