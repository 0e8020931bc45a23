from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .api import (
    BeneficiaryViewSet,
    CategoryViewSet,
    ChurchSettingsView,
    ClassificationRuleViewSet,
    ClassifyComprovanteView,
    HealthView,
    LedgerEntryViewSet,
    WhatsAppSendView,
)

router = DefaultRouter()
router.register("categories", CategoryViewSet, basename="api-categories")
router.register("beneficiaries", BeneficiaryViewSet, basename="api-beneficiaries")
router.register("rules", ClassificationRuleViewSet, basename="api-rules")
router.register("entries", LedgerEntryViewSet, basename="api-entries")

urlpatterns = [
    path("health/", HealthView.as_view(), name="api-health"),
    path("auth/token/", TokenObtainPairView.as_view(), name="api-token"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="api-token-refresh"),
    path("church-settings/", ChurchSettingsView.as_view(), name="api-church-settings"),
    path(
        "functions/analisar-comprovante/",
        ClassifyComprovanteView.as_view(),
        name="api-analisar-comprovante",
    ),
    path(
        "functions/whatsapp-send-message/",
        WhatsAppSendView.as_view(),
        name="api-whatsapp-send-message",
    ),
    path("", include(router.urls)),
]
