"""
Manufacturing Serializers Package
"""

from .material_flow_serializers import (
    MaterialReceiptSerializer,
    CreateReceiptSerializer,
    MaterialVerificationSerializer,
    CreateVerificationSerializer,
    ProductionApprovalSerializer,
    CreateApprovalSerializer,
    StartProductionSerializer,
)
from .production_serializers import (
    ProductionRequestSerializer,
    CreateProductionRequestSerializer,
    ProductionRequestStatusSerializer,
    LinkProductionOrderSerializer,
    QualityCheckpointSerializer,
    StageReworkHistorySerializer,
    ProductionStageSerializer,
    ProductionOrderListSerializer,
    ProductionOrderSerializer,
    CreateProductionOrderSerializer,
    StageReasonSerializer,
    CompleteStageSerializer,
    StageTrackingSerializer,
    ApproveStageSerializer,
    ReworkStageSerializer,
    UnfreezeSerializer,
    CheckpointResultSerializer,
    LogRejectionsSerializer,
    RejectionSerializer,
    MaterialConsumptionSerializer,
    MaterialReturnSerializer,
    CreateMaterialReturnSerializer,
    ReturnDecisionSerializer,
    ReturnRejectionSerializer,
)
