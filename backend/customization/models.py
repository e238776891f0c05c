import uuid
from decimal import Decimal

from django.contrib.auth.models import User
from django.db import models
from django.db.models import Q


class Profile(models.Model):
    ROLE_CHOICES = [
        ("customer", "Customer"),
        ("designer", "Designer"),
        ("business_owner", "Business owner"),
        ("admin", "Admin"),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, default="customer")
    display_name = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.display_name or self.user.username


class PrintingShop(models.Model):
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="printing_shops")
    store_name = models.CharField(max_length=255, unique=True)
    address = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    def __str__(self):
        return self.store_name


class Product(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_customizable = models.BooleanField(default=False)
    shop = models.ForeignKey(PrintingShop, on_delete=models.SET_NULL, null=True, blank=True, related_name="products")
    image_url = models.URLField(max_length=200, null=True, blank=True)

    def __str__(self):
        return self.name


class CustomizationStatus(models.TextChoices):
    PENDING_DESIGNER_REVIEW = "pending_designer_review", "Pending designer review"
    IN_PROGRESS = "in_progress", "In progress"
    AWAITING_CUSTOMER_APPROVAL = "awaiting_customer_approval", "Awaiting customer approval"
    AWAITING_PRICING = "awaiting_pricing", "Awaiting pricing"
    APPROVED = "approved", "Approved"
    IN_PRODUCTION = "in_production", "In production"
    READY_FOR_PICKUP = "ready_for_pickup", "Ready for pickup"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PaymentType(models.TextChoices):
    UPFRONT = "upfront", "Upfront"
    HALF_PAYMENT = "half_payment", "Half payment"
    MILESTONE = "milestone", "Milestone"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PARTIALLY_PAID = "partially_paid", "Partially paid"
    FULLY_PAID = "fully_paid", "Fully paid"


class CustomizationRequest(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="customization_requests")
    designer = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="assigned_customizations"
    )
    printing_shop = models.ForeignKey(
        PrintingShop, on_delete=models.SET_NULL, null=True, blank=True, related_name="customization_requests"
    )

    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="customization_requests")
    product_name = models.CharField(max_length=255)
    product_image = models.URLField(max_length=200, null=True, blank=True)
    customization_notes = models.TextField()
    customer_design_file = models.JSONField(null=True, blank=True)

    status = models.CharField(
        max_length=32, choices=CustomizationStatus.choices, default=CustomizationStatus.PENDING_DESIGNER_REVIEW
    )
    requested_at = models.DateTimeField()
    assigned_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    designer_final_file = models.JSONField(null=True, blank=True)
    designer_preview_image = models.JSONField(null=True, blank=True)
    designer_notes = models.TextField(null=True, blank=True)
    rejection_reason = models.TextField(null=True, blank=True)

    # payment summary, maintained by CustomizationPaymentService
    payment_type = models.CharField(max_length=32, choices=PaymentType.choices, null=True, blank=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    paid_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    remaining_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    payment_status = models.CharField(
        max_length=32, choices=PaymentStatus.choices, null=True, blank=True
    )
    currency = models.CharField(max_length=8, null=True, blank=True)

    order_id = models.CharField(max_length=255, unique=True, null=True, blank=True)

    # production progress, kept up to date by the printing shop
    production_details = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["status", "requested_at"], name="cr_status_requested_idx"),
            models.Index(fields=["customer", "requested_at"], name="cr_customer_requested_idx"),
            models.Index(fields=["designer", "status"], name="cr_designer_status_idx"),
        ]

    def __str__(self):
        return f"CustomizationRequest {self.id} - {self.status}"

    @property
    def active_pricing_agreement(self):
        return self.pricing_agreements.filter(is_active=True).first()


class PricingAgreement(models.Model):
    request = models.ForeignKey(CustomizationRequest, on_delete=models.CASCADE, related_name="pricing_agreements")
    design_fee = models.DecimalField(max_digits=10, decimal_places=2)
    product_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    printing_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    total_cost = models.DecimalField(max_digits=10, decimal_places=2)
    payment_type = models.CharField(max_length=32, choices=PaymentType.choices)
    milestones = models.JSONField(default=list, blank=True)
    agreed_by_designer = models.BooleanField(default=True)
    agreed_by_customer = models.BooleanField(default=False)
    agreed_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    rejection_reason = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["request"], condition=Q(is_active=True), name="one_active_pricing_agreement"
            ),
        ]

    def __str__(self):
        return f"Pricing {self.total_cost} for {self.request_id}"


class PaymentRecord(models.Model):
    STATUS_CHOICES = [("pending", "Pending"), ("success", "Success"), ("failed", "Failed")]

    request = models.ForeignKey(CustomizationRequest, on_delete=models.CASCADE, related_name="payments")
    external_id = models.CharField(max_length=255, unique=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_method = models.CharField(max_length=64)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="pending")
    invoice_url = models.URLField(max_length=500, null=True, blank=True)
    milestone_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Payment {self.external_id} ({self.status})"
