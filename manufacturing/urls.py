from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    ProductionRequestViewSet, ProductionOrderViewSet, ProductionStageViewSet,
    QualityCheckpointViewSet, MaterialReturnViewSet,
    # Material chain
    MaterialReceiptViewSet, MaterialVerificationViewSet, ProductionApprovalViewSet
)

# Create router and register viewsets
router = DefaultRouter()
router.register(r'production-requests', ProductionRequestViewSet, basename='productionrequest')
router.register(r'receipts', MaterialReceiptViewSet, basename='materialreceipt')
router.register(r'verifications', MaterialVerificationViewSet, basename='materialverification')
router.register(r'approvals', ProductionApprovalViewSet, basename='productionapproval')
router.register(r'production-orders', ProductionOrderViewSet, basename='productionorder')
router.register(r'stages', ProductionStageViewSet, basename='productionstage')
router.register(r'checkpoints', QualityCheckpointViewSet, basename='qualitycheckpoint')
router.register(r'material-returns', MaterialReturnViewSet, basename='materialreturn')

app_name = 'manufacturing'

urlpatterns = [
    path('', include(router.urls)),
]
