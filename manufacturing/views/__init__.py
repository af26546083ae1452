"""
Manufacturing Views Package
"""

from .material_flow_views import (
    MaterialReceiptViewSet,
    MaterialVerificationViewSet,
    ProductionApprovalViewSet,
)
from .production_views import (
    ProductionRequestViewSet,
    ProductionOrderViewSet,
    ProductionStageViewSet,
    QualityCheckpointViewSet,
    MaterialReturnViewSet,
)
