from django.core.exceptions import ValidationError
from django.db.models import Count, Q
from django.utils import timezone

from .models import CustomizationRequest, CustomizationStatus
from .transitions import ACTIVE_STATUSES


class CustomizationRepository:
    """
    Storage for customization requests backed by the Django ORM.

    Every status change goes through :meth:`transition`, which issues a single
    ``UPDATE ... WHERE id = ? AND status IN (...)`` so a request that moved on
    between read and write is left untouched and the caller is told so.
    """

    model = CustomizationRequest

    def create(self, **fields):
        return self.model.objects.create(**fields)

    def find_by_id(self, request_id):
        try:
            return self.model.objects.select_related("customer", "designer", "product", "printing_shop").get(
                pk=request_id
            )
        except (self.model.DoesNotExist, ValidationError, ValueError):
            return None

    def get_for_update(self, request_id):
        """Row-locked read; must be called inside ``transaction.atomic()``."""
        try:
            return self.model.objects.select_for_update().get(pk=request_id)
        except (self.model.DoesNotExist, ValidationError, ValueError):
            return None

    def find_by_customer_id(self, customer_id):
        return list(self.model.objects.filter(customer_id=customer_id).order_by("-requested_at"))

    def find_by_designer_id(self, designer_id):
        return list(self.model.objects.filter(designer_id=designer_id).order_by("-requested_at"))

    def find_by_shop_id(self, shop_id, statuses=None):
        queryset = self.model.objects.filter(printing_shop_id=shop_id)
        if statuses:
            queryset = queryset.filter(status__in=list(statuses))
        return list(queryset.order_by("-requested_at"))

    def find_pending_requests(self, limit=None):
        queryset = self.model.objects.filter(
            status=CustomizationStatus.PENDING_DESIGNER_REVIEW, designer__isnull=True
        ).order_by("requested_at")
        return list(queryset[:limit] if limit else queryset)

    def transition(self, request_id, from_statuses, to_status, conditions=None, **fields):
        """
        Move ``request_id`` to ``to_status`` only if its current status is one of
        ``from_statuses`` and the optional ``conditions`` (a ``Q``) still hold.
        Returns ``True`` when the row was written.
        """
        queryset = self.model.objects.filter(pk=request_id, status__in=list(from_statuses))
        if conditions is not None:
            queryset = queryset.filter(conditions)
        updated = queryset.update(status=to_status, updated_at=timezone.now(), **fields)
        return updated == 1

    def update_where(self, request_id, conditions, **fields):
        """Conditioned write that leaves ``status`` alone."""
        updated = (
            self.model.objects.filter(pk=request_id)
            .filter(conditions)
            .update(updated_at=timezone.now(), **fields)
        )
        return updated == 1

    def get_designer_active_count(self, designer_id):
        return self.model.objects.filter(designer_id=designer_id, status__in=ACTIVE_STATUSES).count()

    def count_by_status(self, customer_id=None, designer_id=None):
        queryset = self.model.objects.all()
        if customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        if designer_id is not None:
            queryset = queryset.filter(designer_id=designer_id)
        rows = queryset.order_by().values("status").annotate(total=Count("id"))
        return {row["status"]: row["total"] for row in rows}

    def search(self, filters):
        queryset = self.model.objects.all()

        if filters.customer_id is not None:
            queryset = queryset.filter(customer_id=filters.customer_id)
        if filters.designer_id is not None:
            queryset = queryset.filter(designer_id=filters.designer_id)
        if filters.product_id is not None:
            queryset = queryset.filter(product_id=filters.product_id)
        if filters.status:
            if isinstance(filters.status, (list, tuple, set)):
                queryset = queryset.filter(status__in=list(filters.status))
            else:
                queryset = queryset.filter(status=filters.status)
        if filters.date_from is not None:
            queryset = queryset.filter(requested_at__gte=filters.date_from)
        if filters.date_to is not None:
            queryset = queryset.filter(requested_at__lte=filters.date_to)
        if filters.text:
            queryset = queryset.filter(
                Q(product_name__icontains=filters.text) | Q(customization_notes__icontains=filters.text)
            )

        prefix = "" if filters.sort_order == "asc" else "-"
        queryset = queryset.order_by(f"{prefix}{filters.sort_by}", f"{prefix}created_at")

        start = filters.offset or 0
        end = start + filters.limit if filters.limit else None
        return list(queryset[start:end])
