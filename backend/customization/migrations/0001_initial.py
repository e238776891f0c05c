import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("customer", "Customer"), ("designer", "Designer"), ("business_owner", "Business owner"), ("admin", "Admin")], default="customer", max_length=32)),
                ("display_name", models.CharField(blank=True, max_length=255)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="PrintingShop",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("store_name", models.CharField(max_length=255, unique=True)),
                ("address", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="printing_shops", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("is_customizable", models.BooleanField(default=False)),
                ("image_url", models.URLField(blank=True, null=True)),
                ("shop", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="products", to="customization.printingshop")),
            ],
        ),
        migrations.CreateModel(
            name="CustomizationRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("product_name", models.CharField(max_length=255)),
                ("product_image", models.URLField(blank=True, null=True)),
                ("customization_notes", models.TextField()),
                ("customer_design_file", models.JSONField(blank=True, null=True)),
                ("status", models.CharField(choices=[("pending_designer_review", "Pending designer review"), ("in_progress", "In progress"), ("awaiting_customer_approval", "Awaiting customer approval"), ("awaiting_pricing", "Awaiting pricing"), ("approved", "Approved"), ("in_production", "In production"), ("ready_for_pickup", "Ready for pickup"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="pending_designer_review", max_length=32)),
                ("requested_at", models.DateTimeField()),
                ("assigned_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("designer_final_file", models.JSONField(blank=True, null=True)),
                ("designer_preview_image", models.JSONField(blank=True, null=True)),
                ("designer_notes", models.TextField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("payment_type", models.CharField(blank=True, choices=[("upfront", "Upfront"), ("half_payment", "Half payment"), ("milestone", "Milestone")], max_length=32, null=True)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("remaining_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("payment_status", models.CharField(blank=True, choices=[("pending", "Pending"), ("partially_paid", "Partially paid"), ("fully_paid", "Fully paid")], max_length=32, null=True)),
                ("currency", models.CharField(blank=True, max_length=8, null=True)),
                ("order_id", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="customization_requests", to=settings.AUTH_USER_MODEL)),
                ("designer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_customizations", to=settings.AUTH_USER_MODEL)),
                ("printing_shop", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="customization_requests", to="customization.printingshop")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="customization_requests", to="customization.product")),
            ],
            options={
                "ordering": ["-requested_at"],
                "indexes": [
                    models.Index(fields=["status", "requested_at"], name="cr_status_requested_idx"),
                    models.Index(fields=["customer", "requested_at"], name="cr_customer_requested_idx"),
                    models.Index(fields=["designer", "status"], name="cr_designer_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PricingAgreement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("design_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("product_cost", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("printing_cost", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("total_cost", models.DecimalField(decimal_places=2, max_digits=10)),
                ("payment_type", models.CharField(choices=[("upfront", "Upfront"), ("half_payment", "Half payment"), ("milestone", "Milestone")], max_length=32)),
                ("milestones", models.JSONField(blank=True, default=list)),
                ("agreed_by_designer", models.BooleanField(default=True)),
                ("agreed_by_customer", models.BooleanField(default=False)),
                ("agreed_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("request", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="pricing_agreements", to="customization.customizationrequest")),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("request",), name="one_active_pricing_agreement"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("external_id", models.CharField(max_length=255, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("payment_method", models.CharField(max_length=64)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("success", "Success"), ("failed", "Failed")], default="pending", max_length=16)),
                ("invoice_url", models.URLField(blank=True, max_length=500, null=True)),
                ("milestone_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("request", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="customization.customizationrequest")),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]
