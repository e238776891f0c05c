from .general_imports import *
from .base import CustomizationAPIView
from ..serializers import (
    CreateCustomizationRequestSerializer, CustomizationRequestSerializer, DesignUploadSerializer,
    OrderLinkSerializer, ProductionPlanSerializer, ProductionUpdateSerializer, QualityCheckSerializer, ReasonSerializer,
    ShopSelectionSerializer, request_details_data,
)
from ..services.customization_service import CustomizationService


class CustomerCustomizationRequestListView(CustomizationAPIView):
    """GET: the customer's own requests. POST: submit a new request."""

    def get(self, request):
        requests = CustomizationService().get_customer_requests(request.user.id)
        return Response(CustomizationRequestSerializer(requests, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = CreateCustomizationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().create_request(
            customer_id=request.user.id, **serializer.validated_data
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_201_CREATED)


class PendingCustomizationRequestListView(CustomizationAPIView):
    permission_classes = [IsDesigner]

    def get(self, request):
        limit = request.query_params.get("limit")
        if limit is not None and not limit.isdigit():
            return Response({"error": "limit must be a positive integer"}, status=status.HTTP_400_BAD_REQUEST)

        requests = CustomizationService().get_pending_requests(int(limit) if limit else None)
        return Response(CustomizationRequestSerializer(requests, many=True).data, status=status.HTTP_200_OK)


class DesignerCustomizationRequestListView(CustomizationAPIView):
    permission_classes = [IsDesigner]

    def get(self, request):
        requests = CustomizationService().get_designer_requests(request.user.id)
        return Response(CustomizationRequestSerializer(requests, many=True).data, status=status.HTTP_200_OK)


class CustomizationRequestDetailView(CustomizationAPIView):

    def get(self, request, request_id):
        details = CustomizationService().get_request_with_details(request_id)
        if details is None:
            return Response({"error": "Request not found"}, status=status.HTTP_404_NOT_FOUND)

        customization_request = details.request
        is_admin = IsCustomizationAdmin().has_permission(request, self)
        if request.user.id not in (customization_request.customer_id, customization_request.designer_id) and not is_admin:
            return Response({"error": "Unauthorized"}, status=status.HTTP_403_FORBIDDEN)

        return Response(request_details_data(details), status=status.HTTP_200_OK)


class ClaimCustomizationRequestView(CustomizationAPIView):
    permission_classes = [IsDesigner]

    def post(self, request, request_id):
        customization_request = CustomizationService().assign_designer(request_id, request.user.id)
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class UploadFinalDesignView(CustomizationAPIView):
    permission_classes = [IsDesigner]

    def post(self, request, request_id):
        serializer = DesignUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().upload_final_design(
            request_id,
            request.user.id,
            serializer.validated_data["final_file"],
            serializer.validated_data["preview_image"],
            serializer.validated_data.get("notes"),
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class ApproveDesignView(CustomizationAPIView):

    def post(self, request, request_id):
        customization_request = CustomizationService().approve_design(request_id, request.user.id)
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class RejectDesignView(CustomizationAPIView):

    def post(self, request, request_id):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().reject_design(
            request_id, request.user.id, serializer.validated_data["reason"]
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class CancelCustomizationRequestView(CustomizationAPIView):

    def post(self, request, request_id):
        customization_request = CustomizationService().cancel_request(request_id, request.user.id)
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class SelectPrintingShopView(CustomizationAPIView):

    def post(self, request, request_id):
        serializer = ShopSelectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().select_printing_shop(
            request_id, request.user.id, serializer.validated_data["shop_id"]
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class StartProductionView(CustomizationAPIView):
    permission_classes = [IsShopOwner]

    def post(self, request, request_id):
        serializer = ProductionPlanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().start_production(
            request_id, request.user.id, **serializer.validated_data
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class UpdateProductionView(CustomizationAPIView):
    permission_classes = [IsShopOwner]

    def patch(self, request, request_id):
        serializer = ProductionUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().update_production(
            request_id, request.user.id, **serializer.validated_data
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class MarkReadyForPickupView(CustomizationAPIView):
    permission_classes = [IsShopOwner]

    def post(self, request, request_id):
        serializer = QualityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().mark_ready_for_pickup(
            request_id, request.user.id, **serializer.validated_data
        )
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)


class LinkOrderView(CustomizationAPIView):
    """Called by the order subsystem once an order exists for the request."""

    permission_classes = [IsCustomizationAdmin]

    def post(self, request, request_id):
        serializer = OrderLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customization_request = CustomizationService().link_to_order(request_id, serializer.validated_data["order_id"])
        return Response(CustomizationRequestSerializer(customization_request).data, status=status.HTTP_200_OK)
