from rest_framework import serializers

from .models import CustomizationRequest, CustomizationStatus, PaymentRecord, PaymentType, PricingAgreement
from .services.customization_service import OPEN_PRODUCTION_STEPS


class PricingAgreementSerializer(serializers.ModelSerializer):
    class Meta:
        model = PricingAgreement
        fields = [
            "id", "design_fee", "product_cost", "printing_cost", "total_cost", "payment_type", "milestones",
            "agreed_by_designer", "agreed_by_customer", "agreed_at", "is_active", "rejection_reason", "created_at",
        ]
        read_only_fields = fields


class PaymentRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRecord
        fields = ["external_id", "amount", "payment_method", "status", "invoice_url", "milestone_id", "created_at", "paid_at"]
        read_only_fields = fields


class CustomizationRequestSerializer(serializers.ModelSerializer):
    pricing_agreement = serializers.SerializerMethodField()

    class Meta:
        model = CustomizationRequest
        fields = [
            "id", "customer", "designer", "printing_shop", "product", "product_name", "product_image",
            "customization_notes", "customer_design_file", "status", "requested_at", "assigned_at",
            "approved_at", "completed_at", "cancelled_at", "designer_final_file", "designer_preview_image",
            "designer_notes", "rejection_reason", "payment_type", "total_amount", "paid_amount",
            "remaining_amount", "payment_status", "currency", "order_id", "production_details", "pricing_agreement",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_pricing_agreement(self, obj):
        agreement = obj.active_pricing_agreement
        return PricingAgreementSerializer(agreement).data if agreement else None


class CreateCustomizationRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    customization_notes = serializers.CharField()
    product_image = serializers.URLField(required=False, allow_null=True)
    customer_design_file = serializers.JSONField(required=False, allow_null=True)


class DesignUploadSerializer(serializers.Serializer):
    final_file = serializers.JSONField()
    preview_image = serializers.JSONField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()


class ShopSelectionSerializer(serializers.Serializer):
    shop_id = serializers.IntegerField()


class ProductionPlanSerializer(serializers.Serializer):
    estimated_completion_date = serializers.DateField(required=False, allow_null=True)
    materials = serializers.ListField(child=serializers.CharField(), required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ProductionUpdateSerializer(ProductionPlanSerializer):
    status = serializers.ChoiceField(choices=OPEN_PRODUCTION_STEPS, required=False)


class QualityCheckSerializer(serializers.Serializer):
    quality_check_passed = serializers.BooleanField()
    quality_check_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OrderLinkSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=255)


class MilestoneSerializer(serializers.Serializer):
    description = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class PricingProposalSerializer(serializers.Serializer):
    design_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    product_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    printing_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    payment_type = serializers.ChoiceField(choices=PaymentType.choices)
    milestones = MilestoneSerializer(many=True, required=False)


class PaymentRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    payment_method = serializers.CharField(default="mercadopago")
    milestone_id = serializers.CharField(required=False, allow_null=True)


class SearchFiltersSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(required=False)
    designer_id = serializers.IntegerField(required=False)
    product_id = serializers.IntegerField(required=False)
    status = serializers.CharField(required=False)
    date_from = serializers.DateTimeField(required=False)
    date_to = serializers.DateTimeField(required=False)
    text = serializers.CharField(required=False)
    sort_by = serializers.ChoiceField(choices=["requested_at", "updated_at"], default="requested_at")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")
    limit = serializers.IntegerField(required=False, min_value=1)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)

    def validate_status(self, value):
        statuses = [status.strip() for status in value.split(",") if status.strip()]
        invalid = [status for status in statuses if status not in CustomizationStatus.values]
        if invalid:
            raise serializers.ValidationError(f"Unknown status: {', '.join(invalid)}")
        return statuses[0] if len(statuses) == 1 else statuses


def profile_summary(profile):
    if profile is None:
        return None
    return {
        "id": profile.user_id,
        "name": profile.display_name or "Unknown",
        "email": profile.user.email,
        "role": profile.role,
    }


def request_details_data(details):
    product = details.product
    data = CustomizationRequestSerializer(details.request).data
    data["customer_details"] = profile_summary(details.customer)
    data["designer_details"] = profile_summary(details.designer)
    data["product_details"] = {
        "id": product.pk,
        "name": product.name,
        "price": product.price,
        "images": [product.image_url] if product.image_url else [],
    } if product else None
    return data
