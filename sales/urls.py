from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import SalesOrderViewSet

router = DefaultRouter()
router.register(r'orders', SalesOrderViewSet, basename='sales-order')

app_name = 'sales'

urlpatterns = [
    path('', include(router.urls)),
]
