from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import CreditNoteViewSet, GoodsReceiptNoteViewSet, PurchaseOrderViewSet

router = DefaultRouter()
router.register(r'purchase-orders', PurchaseOrderViewSet, basename='purchase-order')
router.register(r'grns', GoodsReceiptNoteViewSet, basename='grn')
router.register(r'credit-notes', CreditNoteViewSet, basename='credit-note')

app_name = 'procurement'

urlpatterns = [
    path('', include(router.urls)),
]
