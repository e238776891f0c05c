from django.contrib import admin

from .models import CustomizationRequest, PaymentRecord, PricingAgreement, PrintingShop, Product, Profile


class PricingAgreementInline(admin.TabularInline):
    model = PricingAgreement
    extra = 0
    readonly_fields = ["total_cost", "agreed_by_customer", "agreed_at", "is_active", "created_at"]


class PaymentRecordInline(admin.TabularInline):
    model = PaymentRecord
    extra = 0
    readonly_fields = ["external_id", "amount", "status", "paid_at", "created_at"]


@admin.register(CustomizationRequest)
class CustomizationRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "product_name", "customer", "designer", "status", "requested_at"]
    list_filter = ["status"]
    search_fields = ["product_name", "customization_notes", "order_id"]
    # status and lifecycle timestamps are written by the workflow services only
    readonly_fields = [
        "status", "requested_at", "assigned_at", "approved_at", "completed_at", "cancelled_at",
        "paid_amount", "remaining_amount", "payment_status", "order_id", "production_details",
    ]
    inlines = [PricingAgreementInline, PaymentRecordInline]


admin.site.register(Profile)
admin.site.register(PrintingShop)
admin.site.register(Product)
