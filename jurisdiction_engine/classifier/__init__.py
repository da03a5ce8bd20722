from jurisdiction_engine.classifier.area import describe_area, representative_rules
from jurisdiction_engine.classifier.classifier import JurisdictionClassifier
from jurisdiction_engine.classifier.confidence import (
    ReliabilityBand,
    confidence_level,
    source_confidence,
)
from jurisdiction_engine.classifier.registry import BoundaryRegistry

__all__ = [
    "BoundaryRegistry",
    "JurisdictionClassifier",
    "ReliabilityBand",
    "confidence_level",
    "describe_area",
    "representative_rules",
    "source_confidence",
]
