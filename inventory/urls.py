from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'inventory'

# Create router and register viewsets
router = DefaultRouter()
router.register(r'items', views.InventoryItemViewSet, basename='inventory-item')
router.register(r'movements', views.InventoryMovementViewSet, basename='inventory-movement')

# Material chain: requests and dispatches to manufacturing
router.register(r'material-requests', views.ProjectMaterialRequestViewSet, basename='material-request')
router.register(r'dispatches', views.MaterialDispatchViewSet, basename='material-dispatch')
router.register(r'allocations', views.MaterialAllocationViewSet, basename='material-allocation')

urlpatterns = [
    # Health check
    path('health/', views.health_check, name='health_check'),

    # Dashboard stats
    path('dashboard/stats/', views.dashboard_stats, name='dashboard_stats'),

    # Include router URLs
    path('', include(router.urls)),
]

# Available API endpoints:
"""
Items:
- GET    /api/inventory/items/                        - List stock items (filter: category, unit, is_active)
- POST   /api/inventory/items/                        - Create stock item
- GET    /api/inventory/items/low_stock/              - Items at or below reorder level
- POST   /api/inventory/items/{id}/adjust_stock/      - Manual signed adjustment

Movements:
- GET    /api/inventory/movements/                    - Stock ledger (filter: inventory, movement_type, reference)

Material requests (MRN):
- GET    /api/inventory/material-requests/            - List MRNs
- POST   /api/inventory/material-requests/            - Raise an MRN (manufacturing)

Dispatches:
- GET    /api/inventory/dispatches/                   - List dispatches
- POST   /api/inventory/dispatches/                   - Dispatch against an MRN (inventory)

Allocations:
- GET    /api/inventory/allocations/                  - Materials allocated to production
"""
