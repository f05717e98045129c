"""Classification module for reference-based cell-type assignment.

Provides reference training, single-reference classification and
integration of assignments across references.
"""

from .config import (
    ClassifyIntegratedOptions,
    ClassifySingleOptions,
    IntegratedConfig,
    RefMatchConfig,
    SingleConfig,
    TrainConfig,
)
from .engine import IntegrationResult, ReferenceDataset, ReferenceIntegrationEngine
from .integrated import (
    ClassifyIntegratedBuffers,
    ClassifyIntegratedResults,
    classify_integrated,
    classify_integrated_into,
)
from .single import (
    ClassifySingleBuffers,
    ClassifySingleResults,
    classify_single,
    classify_single_into,
)
from .training import (
    IntegratedInput,
    TrainedIntegrated,
    TrainedSingle,
    prepare_integrated_input,
    prepare_integrated_input_intersect,
    train_integrated,
    train_single,
)

__all__ = [
    # Config
    "ClassifySingleOptions",
    "ClassifyIntegratedOptions",
    "TrainConfig",
    "SingleConfig",
    "IntegratedConfig",
    "RefMatchConfig",
    # Training
    "TrainedSingle",
    "TrainedIntegrated",
    "IntegratedInput",
    "train_single",
    "prepare_integrated_input",
    "prepare_integrated_input_intersect",
    "train_integrated",
    # Single
    "ClassifySingleBuffers",
    "ClassifySingleResults",
    "classify_single",
    "classify_single_into",
    # Integrated
    "ClassifyIntegratedBuffers",
    "ClassifyIntegratedResults",
    "classify_integrated",
    "classify_integrated_into",
    # Engine
    "ReferenceDataset",
    "IntegrationResult",
    "ReferenceIntegrationEngine",
]
