import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..conf import get_setting
from ..events import get_event_sink, publish
from ..exceptions import Conflict, InvalidState, NotFound, Unauthorized
from ..lookups import ProductLookup, ShopLookup, UserLookup
from ..models import CustomizationStatus, PaymentStatus, PaymentType
from ..repositories import CustomizationRepository
from ..transitions import LINKABLE_STATUSES, can_transition, check_transition

logger = logging.getLogger(__name__)

S = CustomizationStatus

# production steps kept in CustomizationRequest.production_details["status"]
PRODUCTION_STEPS = ("confirmed", "in_progress", "quality_check", "completed")
OPEN_PRODUCTION_STEPS = PRODUCTION_STEPS[:-1]


@dataclass
class SearchFilters:
    customer_id: Optional[int] = None
    designer_id: Optional[int] = None
    product_id: Optional[int] = None
    status: object = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    text: Optional[str] = None
    sort_by: str = "requested_at"
    sort_order: str = "desc"
    limit: Optional[int] = None
    offset: int = 0

    def __post_init__(self):
        if self.sort_by not in ("requested_at", "updated_at"):
            raise ValueError(f"Cannot sort by {self.sort_by}")
        if self.sort_order not in ("asc", "desc"):
            raise ValueError(f"Invalid sort order {self.sort_order}")


@dataclass
class CustomizationStats:
    total_requests: int
    pending_review: int
    in_progress: int
    awaiting_approval: int
    awaiting_pricing: int
    approved: int
    completed: int
    cancelled: int


@dataclass
class DesignerWorkload:
    designer_id: int
    designer_name: str
    active_requests: int
    completed_today: int
    average_completion_time: float  # hours


@dataclass
class ProductionStats:
    total: int
    confirmed: int
    in_progress: int
    quality_check: int
    completed: int


@dataclass
class RequestDetails:
    request: object
    customer: object
    designer: object
    product: object


class CustomizationService:
    """
    Drives a customization request from the customer's submission to the
    linked order. Guards raise ``NotFound``, ``Unauthorized`` or
    ``InvalidState``; every status write is conditioned on the status that was
    read, so a write that loses against another one raises ``Conflict``.
    """

    def __init__(self, repository=None, products=None, users=None, shops=None, events=None):
        self.repository = repository or CustomizationRepository()
        self.products = products or ProductLookup()
        self.users = users or UserLookup()
        self.shops = shops or ShopLookup()
        self.events = events or get_event_sink()

    ###############
    #### READS ####
    ###############

    def get_request_by_id(self, request_id):
        return self.repository.find_by_id(request_id)

    def get_request_with_details(self, request_id) -> Optional[RequestDetails]:
        request = self.repository.find_by_id(request_id)
        if request is None:
            return None

        return RequestDetails(
            request=request,
            customer=self.users.find_by_id(request.customer_id),
            designer=self.users.find_by_id(request.designer_id) if request.designer_id else None,
            product=self.products.find_by_id(request.product_id),
        )

    def get_customer_requests(self, customer_id):
        return self.repository.find_by_customer_id(customer_id)

    def get_designer_requests(self, designer_id):
        return self.repository.find_by_designer_id(designer_id)

    def get_pending_requests(self, limit=None):
        """Unclaimed requests, oldest first."""
        return self.repository.find_pending_requests(limit or get_setting("PENDING_REQUESTS_LIMIT"))

    def get_shop_production_requests(self, shop_id):
        """Jobs of a printing shop that are in production or waiting for pickup."""
        return self.repository.find_by_shop_id(shop_id, [S.IN_PRODUCTION, S.READY_FOR_PICKUP])

    def get_production_stats(self, shop_id) -> ProductionStats:
        steps = Counter(
            (request.production_details or {}).get("status") for request in self.get_shop_production_requests(shop_id)
        )
        return ProductionStats(
            total=sum(steps.values()),
            confirmed=steps["confirmed"],
            in_progress=steps["in_progress"],
            quality_check=steps["quality_check"],
            completed=steps["completed"],
        )

    def search_requests(self, filters: SearchFilters):
        return self.repository.search(filters)

    def get_statistics(self, customer_id=None, designer_id=None) -> CustomizationStats:
        counts = self.repository.count_by_status(customer_id=customer_id, designer_id=designer_id)
        return CustomizationStats(
            total_requests=sum(counts.values()),
            pending_review=counts.get(S.PENDING_DESIGNER_REVIEW, 0),
            in_progress=counts.get(S.IN_PROGRESS, 0),
            awaiting_approval=counts.get(S.AWAITING_CUSTOMER_APPROVAL, 0),
            awaiting_pricing=counts.get(S.AWAITING_PRICING, 0),
            approved=counts.get(S.APPROVED, 0) + counts.get(S.IN_PRODUCTION, 0) + counts.get(S.READY_FOR_PICKUP, 0),
            completed=counts.get(S.COMPLETED, 0),
            cancelled=counts.get(S.CANCELLED, 0),
        )

    def get_designer_workload(self, designer_id) -> DesignerWorkload:
        designer = self.users.find_by_id(designer_id)
        if designer is None:
            raise NotFound("Designer not found")
        return self._build_workload(designer)

    def get_all_designers_workload(self) -> List[DesignerWorkload]:
        """Designers ordered by how many requests they are currently working on, fewest first."""
        workloads = [self._build_workload(designer) for designer in self.users.find_designers()]
        return sorted(workloads, key=lambda workload: workload.active_requests)

    def _build_workload(self, designer):
        requests = self.repository.find_by_designer_id(designer.user_id)
        midnight = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)

        completed_today = sum(
            1
            for request in requests
            if request.status == S.COMPLETED and request.completed_at and request.completed_at >= midnight
        )

        hours = [
            (request.completed_at - request.assigned_at).total_seconds() / 3600
            for request in requests
            if request.completed_at and request.assigned_at
        ]
        average = round(sum(hours) / len(hours), 1) if hours else 0.0

        return DesignerWorkload(
            designer_id=designer.user_id,
            designer_name=designer.display_name or "Unknown",
            active_requests=self.repository.get_designer_active_count(designer.user_id),
            completed_today=completed_today,
            average_completion_time=average,
        )

    #####################
    #### TRANSITIONS ####
    #####################

    def create_request(self, customer_id, product_id, customization_notes, product_image=None, customer_design_file=None):
        product = self.products.find_by_id(product_id)
        if product is None:
            raise NotFound("Product not found")
        if not product.is_customizable:
            raise InvalidState("This product is not customizable")
        if self.users.find_by_id(customer_id) is None:
            raise NotFound("Customer not found")

        request = self.repository.create(
            customer_id=customer_id,
            product=product,
            product_name=product.name,
            product_image=product_image or product.image_url,
            customization_notes=customization_notes,
            customer_design_file=customer_design_file,
            status=S.PENDING_DESIGNER_REVIEW,
            requested_at=timezone.now(),
        )
        logger.info("Customization request %s created by customer %s", request.pk, customer_id)

        publish(self.events, "customization.request.created", {
            "requestId": str(request.pk),
            "customerId": customer_id,
            "productId": product.pk,
            "productName": product.name,
        })
        return request

    def assign_designer(self, request_id, designer_id):
        """Claim a pending request. Only one designer can win the claim."""
        request = self._get_request(request_id)
        if request.status != S.PENDING_DESIGNER_REVIEW:
            raise InvalidState("Request is no longer available")

        designer = self.users.find_by_id(designer_id)
        if designer is None:
            raise NotFound("Designer not found")
        if designer.role not in get_setting("DESIGNER_ROLES"):
            raise Unauthorized("User is not a designer")

        updated = self._apply(
            request,
            S.IN_PROGRESS,
            "Request is no longer available",
            conditions=Q(designer__isnull=True),
            designer_id=designer_id,
            assigned_at=timezone.now(),
        )

        publish(self.events, "customization.designer.assigned", {
            "requestId": str(request.pk),
            "designerId": designer_id,
            "customerId": request.customer_id,
        })
        return updated

    def upload_final_design(self, request_id, designer_id, final_file, preview_image, notes=None):
        request = self._get_request(request_id)
        if request.designer_id != designer_id:
            raise Unauthorized("You are not assigned to this request")
        if request.status != S.IN_PROGRESS:
            raise InvalidState("Request is not in progress")

        updated = self._apply(
            request,
            S.AWAITING_CUSTOMER_APPROVAL,
            "Request is not in progress",
            conditions=Q(designer_id=designer_id),
            designer_final_file=final_file,
            designer_preview_image=preview_image,
            designer_notes=notes,
        )

        publish(self.events, "customization.design.completed", {
            "requestId": str(request.pk),
            "designerId": designer_id,
            "customerId": request.customer_id,
        })
        return updated

    def approve_design(self, request_id, customer_id):
        request = self._get_customer_request(request_id, customer_id)
        if request.status != S.AWAITING_CUSTOMER_APPROVAL:
            raise InvalidState("Request is not awaiting approval")

        updated = self._apply(
            request, S.APPROVED, "Request is not awaiting approval", approved_at=timezone.now()
        )

        publish(self.events, "customization.design.approved", {
            "requestId": str(request.pk),
            "customerId": customer_id,
            "designerId": request.designer_id,
        })
        return updated

    def reject_design(self, request_id, customer_id, reason):
        """Send the design back to the designer; the request returns to ``in_progress``."""
        request = self._get_customer_request(request_id, customer_id)
        if request.status != S.AWAITING_CUSTOMER_APPROVAL:
            raise InvalidState("Request is not awaiting approval")

        updated = self._apply(request, S.IN_PROGRESS, "Request is not awaiting approval", rejection_reason=reason)

        publish(self.events, "customization.design.rejected", {
            "requestId": str(request.pk),
            "customerId": customer_id,
            "designerId": request.designer_id,
            "reason": reason,
        })
        return updated

    def cancel_request(self, request_id, actor_id):
        request = self._get_request(request_id)

        # only the customer or an admin
        if request.customer_id != actor_id:
            actor = self.users.find_by_id(actor_id)
            if actor is None or actor.role not in get_setting("ADMIN_ROLES"):
                raise Unauthorized("Unauthorized")

        if not can_transition(request.status, S.CANCELLED):
            raise InvalidState("Cannot cancel this request")

        updated = self._apply(request, S.CANCELLED, "Cannot cancel this request", cancelled_at=timezone.now())

        publish(self.events, "customization.request.cancelled", {
            "requestId": str(request.pk),
            "customerId": request.customer_id,
            "designerId": request.designer_id,
            "cancelledBy": actor_id,
        })
        return updated

    def select_printing_shop(self, request_id, customer_id, shop_id):
        request = self._get_customer_request(request_id, customer_id)
        if request.status != S.APPROVED:
            raise InvalidState("Design must be approved before selecting a printing shop")

        shop = self.shops.find_by_id(shop_id)
        if shop is None:
            raise NotFound("Printing shop not found")

        if not self.repository.update_where(request.pk, Q(status=S.APPROVED), printing_shop_id=shop.pk):
            raise Conflict("Design must be approved before selecting a printing shop")
        logger.info("Request %s will be printed by shop %s", request.pk, shop.pk)

        publish(self.events, "customization.shop.selected", {
            "requestId": str(request.pk),
            "customerId": customer_id,
            "shopId": shop.pk,
        })
        return self._get_request(request.pk)

    def start_production(self, request_id, shop_owner_id, estimated_completion_date=None, materials=None, notes=None):
        """
        Confirm the job at the selected printing shop. The shop's plan is kept
        in ``production_details`` with the ``confirmed`` production step.
        """
        request = self._get_request(request_id)
        self._check_shop_owner(request, shop_owner_id)
        if request.status != S.APPROVED:
            raise InvalidState("Request must be approved before starting production")
        self._check_production_payment(request)

        details = {
            "status": "confirmed",
            "confirmed_at": timezone.now().isoformat(),
            "estimated_completion_date": _isoformat(estimated_completion_date),
            "materials": list(materials or []),
            "notes": notes,
        }
        updated = self._apply(
            request, S.IN_PRODUCTION, "Request must be approved before starting production", production_details=details
        )

        publish(self.events, "customization.production.started", {
            "requestId": str(request.pk),
            "customerId": request.customer_id,
            "shopId": request.printing_shop_id,
            "estimatedCompletionDate": details["estimated_completion_date"],
        })
        return updated

    def update_production(self, request_id, shop_owner_id, status=None, estimated_completion_date=None,
                          materials=None, notes=None):
        """
        Record progress on a job in production. Only the given fields change.
        ``status`` is one of the open production steps; completing the job
        goes through ``mark_ready_for_pickup``.
        """
        if status is not None and status not in OPEN_PRODUCTION_STEPS:
            raise InvalidState(f"Invalid production status: {status}")

        request = self._get_request(request_id)
        self._check_shop_owner(request, shop_owner_id)

        with transaction.atomic():
            locked = self.repository.get_for_update(request.pk)
            if locked.status != S.IN_PRODUCTION or not locked.production_details:
                raise InvalidState("Production has not been started")

            details = dict(locked.production_details)
            now = timezone.now().isoformat()
            if status is not None:
                details["status"] = status
                if status == "in_progress" and not details.get("started_at"):
                    details["started_at"] = now
            if estimated_completion_date is not None:
                details["estimated_completion_date"] = _isoformat(estimated_completion_date)
            if materials is not None:
                details["materials"] = list(materials)
            if notes is not None:
                details["notes"] = notes
            details["updated_at"] = now

            self.repository.update_where(locked.pk, Q(status=S.IN_PRODUCTION), production_details=details)
        logger.info("Request %s production step: %s", request.pk, details["status"])

        publish(self.events, "customization.production.updated", {
            "requestId": str(request.pk),
            "shopId": request.printing_shop_id,
            "status": details["status"],
        })
        return self._get_request(request.pk)

    def mark_ready_for_pickup(self, request_id, shop_owner_id, quality_check_passed, quality_check_notes=None):
        request = self._get_request(request_id)
        self._check_shop_owner(request, shop_owner_id)
        if request.status != S.IN_PRODUCTION:
            raise InvalidState("Request is not in production")
        if not quality_check_passed:
            raise InvalidState("Quality check must pass before completing production")

        with transaction.atomic():
            locked = self.repository.get_for_update(request.pk)
            details = dict(locked.production_details or {})
            details.update(
                status="completed",
                actual_completion_date=timezone.now().isoformat(),
                quality_check_passed=True,
                quality_check_notes=quality_check_notes,
            )
            updated = self._apply(locked, S.READY_FOR_PICKUP, "Request is not in production", production_details=details)

        publish(self.events, "customization.production.ready", {
            "requestId": str(request.pk),
            "customerId": request.customer_id,
            "shopId": request.printing_shop_id,
        })
        return updated

    def link_to_order(self, request_id, order_id):
        """
        Record the order created from this request and complete it. The first
        order wins; any later call raises ``Conflict`` and leaves the stored
        ``order_id`` as it was.
        """
        request = self._get_request(request_id)
        if request.order_id:
            raise Conflict("Order already exists for this customization request")
        if request.status not in LINKABLE_STATUSES:
            raise InvalidState("Design must be approved before creating order")

        try:
            with transaction.atomic():
                linked = self.repository.transition(
                    request.pk,
                    LINKABLE_STATUSES,
                    S.COMPLETED,
                    conditions=Q(order_id__isnull=True),
                    order_id=order_id,
                    completed_at=timezone.now(),
                )
        except IntegrityError:
            raise Conflict("Order is already linked to another customization request")
        if not linked:
            raise Conflict("Order already exists for this customization request")
        logger.info("Request %s linked to order %s", request.pk, order_id)

        publish(self.events, "customization.order.linked", {
            "requestId": str(request.pk),
            "orderId": order_id,
            "customerId": request.customer_id,
        })
        return self._get_request(request.pk)

    ####################
    #### AUXILIARES ####
    ####################

    def _get_request(self, request_id):
        request = self.repository.find_by_id(request_id)
        if request is None:
            raise NotFound("Request not found")
        return request

    def _get_customer_request(self, request_id, customer_id):
        request = self._get_request(request_id)
        if request.customer_id != customer_id:
            raise Unauthorized("Unauthorized")
        return request

    def _apply(self, request, to_status, lost_message, conditions=None, **fields):
        check_transition(request.status, to_status)
        if not self.repository.transition(request.pk, [request.status], to_status, conditions, **fields):
            logger.warning("Request %s moved away from %s before %s could be applied", request.pk, request.status, to_status)
            raise Conflict(lost_message)
        logger.info("Request %s: %s -> %s", request.pk, request.status, to_status)
        return self._get_request(request.pk)

    def _check_shop_owner(self, request, shop_owner_id):
        if request.printing_shop_id is None:
            raise InvalidState("No printing shop selected")
        shop = self.shops.find_by_id(request.printing_shop_id)
        if shop is None or shop.owner_id != shop_owner_id:
            raise Unauthorized("You do not own this printing shop")

    def _check_production_payment(self, request):
        if request.payment_type == PaymentType.UPFRONT and request.payment_status != PaymentStatus.FULLY_PAID:
            raise InvalidState("Full payment is required before production")
        if request.payment_type == PaymentType.HALF_PAYMENT and request.paid_amount < request.total_amount * Decimal("0.5"):
            raise InvalidState("At least 50% payment is required before production")


def _isoformat(value):
    return value.isoformat() if value is not None else None
