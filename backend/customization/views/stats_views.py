from dataclasses import asdict

from .general_imports import *
from .base import CustomizationAPIView
from ..lookups import ShopLookup
from ..serializers import CustomizationRequestSerializer, SearchFiltersSerializer
from ..services.customization_service import CustomizationService, SearchFilters


class SearchCustomizationRequestsView(CustomizationAPIView):
    permission_classes = [IsCustomizationAdmin]

    def get(self, request):
        serializer = SearchFiltersSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        requests = CustomizationService().search_requests(SearchFilters(**serializer.validated_data))
        return Response(CustomizationRequestSerializer(requests, many=True).data, status=status.HTTP_200_OK)


class CustomizationStatisticsView(CustomizationAPIView):
    """Admins may filter by customer_id/designer_id; everyone else sees their own requests."""

    def get(self, request):
        if IsCustomizationAdmin().has_permission(request, self):
            customer_id = request.query_params.get("customer_id")
            designer_id = request.query_params.get("designer_id")
        elif request.query_params.get("as") == "designer":
            customer_id, designer_id = None, request.user.id
        else:
            customer_id, designer_id = request.user.id, None

        stats = CustomizationService().get_statistics(customer_id=customer_id, designer_id=designer_id)
        return Response(asdict(stats), status=status.HTTP_200_OK)


class DesignerWorkloadView(CustomizationAPIView):

    def get(self, request, designer_id):
        if request.user.id != designer_id and not IsCustomizationAdmin().has_permission(request, self):
            return Response({"error": "Unauthorized"}, status=status.HTTP_403_FORBIDDEN)

        workload = CustomizationService().get_designer_workload(designer_id)
        return Response(asdict(workload), status=status.HTTP_200_OK)


class AllDesignersWorkloadView(CustomizationAPIView):
    permission_classes = [IsCustomizationAdmin]

    def get(self, request):
        workloads = CustomizationService().get_all_designers_workload()
        return Response([asdict(workload) for workload in workloads], status=status.HTTP_200_OK)


class ShopProductionView(CustomizationAPIView):
    """Production board of a printing shop, for its owner or an admin."""

    def check_shop_access(self, request, shop_id):
        shop = ShopLookup().find_by_id(shop_id)
        if shop is None:
            raise NotFound("Printing shop not found")
        if shop.owner_id != request.user.id and not IsCustomizationAdmin().has_permission(request, self):
            raise Unauthorized("You do not own this printing shop")


class ShopProductionRequestsView(ShopProductionView):

    def get(self, request, shop_id):
        self.check_shop_access(request, shop_id)

        requests = CustomizationService().get_shop_production_requests(shop_id)
        return Response(CustomizationRequestSerializer(requests, many=True).data, status=status.HTTP_200_OK)


class ShopProductionStatsView(ShopProductionView):

    def get(self, request, shop_id):
        self.check_shop_access(request, shop_id)

        stats = CustomizationService().get_production_stats(shop_id)
        return Response(asdict(stats), status=status.HTTP_200_OK)
