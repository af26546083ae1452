"""
Manufacturing Models Package
Organized model imports for better maintainability
"""

from .production_request import ProductionRequest
from .material_flow import (
    MaterialReceipt,
    MaterialVerification,
    ProductionApproval
)
from .production_order import (
    ProductionOrder,
    ProductionStage,
    QualityCheckpoint,
    MaterialConsumption
)
from .rework import (
    StageReworkHistory,
    Rejection
)
from .material_return import MaterialReturn

__all__ = [
    'ProductionRequest',
    'MaterialReceipt',
    'MaterialVerification',
    'ProductionApproval',
    'ProductionOrder',
    'ProductionStage',
    'QualityCheckpoint',
    'MaterialConsumption',
    'StageReworkHistory',
    'Rejection',
    'MaterialReturn',
]
