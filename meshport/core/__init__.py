"""Core modules for meshport."""

from .cancel import CancelToken
from .config import ExportConfig, ViewerNormalization
from .errors import (
    EmptyGeometry,
    ExportCancelled,
    InvalidSceneSyntax,
    MalformedContainer,
    MeshportError,
    MissingAttribute,
    SceneCycleError,
    UnresolvableReference,
    UnsupportedComponentType,
)

__all__ = [
    "CancelToken",
    "ExportConfig",
    "ViewerNormalization",
    "EmptyGeometry",
    "ExportCancelled",
    "InvalidSceneSyntax",
    "MalformedContainer",
    "MeshportError",
    "MissingAttribute",
    "SceneCycleError",
    "UnresolvableReference",
    "UnsupportedComponentType",
]
