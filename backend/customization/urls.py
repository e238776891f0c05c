from django.urls import path

from .views.mp_views import MercadoPagoPaymentNotificationView
from .views.pricing_views import AgreeToPricingView, PaymentView, ProposePricingView, RejectPricingView
from .views.request_views import ApproveDesignView, CancelCustomizationRequestView, ClaimCustomizationRequestView, \
    CustomerCustomizationRequestListView, CustomizationRequestDetailView, DesignerCustomizationRequestListView, \
    LinkOrderView, MarkReadyForPickupView, PendingCustomizationRequestListView, RejectDesignView, \
    SelectPrintingShopView, StartProductionView, UpdateProductionView, UploadFinalDesignView
from .views.stats_views import AllDesignersWorkloadView, CustomizationStatisticsView, DesignerWorkloadView, \
    SearchCustomizationRequestsView, ShopProductionRequestsView, ShopProductionStatsView


urlpatterns = [
    # Request lists
    path("customizations/", CustomerCustomizationRequestListView.as_view(), name="customization-list-create"),
    path("customizations/pending/", PendingCustomizationRequestListView.as_view(), name="customization-pending"),
    path("customizations/designer/", DesignerCustomizationRequestListView.as_view(), name="customization-designer"),
    path("customizations/search/", SearchCustomizationRequestsView.as_view(), name="customization-search"),
    path("customizations/statistics/", CustomizationStatisticsView.as_view(), name="customization-statistics"),
    path("customizations/workload/", AllDesignersWorkloadView.as_view(), name="customization-workload-list"),
    path("customizations/workload/<int:designer_id>/", DesignerWorkloadView.as_view(), name="customization-workload"),

    # Printing shops
    path("customizations/shops/<int:shop_id>/production/", ShopProductionRequestsView.as_view(), name="shop-production"),
    path("customizations/shops/<int:shop_id>/production/stats/", ShopProductionStatsView.as_view(), name="shop-production-stats"),

    # Workflow transitions
    path("customizations/<uuid:request_id>/", CustomizationRequestDetailView.as_view(), name="customization-detail"),
    path("customizations/<uuid:request_id>/claim/", ClaimCustomizationRequestView.as_view(), name="customization-claim"),
    path("customizations/<uuid:request_id>/upload/", UploadFinalDesignView.as_view(), name="customization-upload"),
    path("customizations/<uuid:request_id>/approve/", ApproveDesignView.as_view(), name="customization-approve"),
    path("customizations/<uuid:request_id>/reject/", RejectDesignView.as_view(), name="customization-reject"),
    path("customizations/<uuid:request_id>/cancel/", CancelCustomizationRequestView.as_view(), name="customization-cancel"),
    path("customizations/<uuid:request_id>/select-shop/", SelectPrintingShopView.as_view(), name="customization-select-shop"),
    path("customizations/<uuid:request_id>/start-production/", StartProductionView.as_view(), name="customization-start-production"),
    path("customizations/<uuid:request_id>/production/", UpdateProductionView.as_view(), name="customization-production"),
    path("customizations/<uuid:request_id>/ready-for-pickup/", MarkReadyForPickupView.as_view(), name="customization-ready-for-pickup"),
    path("customizations/<uuid:request_id>/link-order/", LinkOrderView.as_view(), name="customization-link-order"),

    # Pricing and payments
    path("customizations/<uuid:request_id>/pricing/", ProposePricingView.as_view(), name="customization-pricing"),
    path("customizations/<uuid:request_id>/pricing/agree/", AgreeToPricingView.as_view(), name="customization-pricing-agree"),
    path("customizations/<uuid:request_id>/pricing/reject/", RejectPricingView.as_view(), name="customization-pricing-reject"),
    path("customizations/<uuid:request_id>/payments/", PaymentView.as_view(), name="customization-payments"),
    path("customizations/notifications/payment/", MercadoPagoPaymentNotificationView.as_view(), name="mercado_pago_notifications"),
]
