"""meshport - scene graph ingestion and STL export.

Turns generated glTF/GLB scene descriptions into manufacturing-ready ASCII
STL, reproducing the viewer's display normalization on request.
"""

__version__ = "0.1.0"

from .core.cancel import CancelToken
from .core.config import ExportConfig, ViewerNormalization
from .document.container import decode_container, decode_path
from .document.model import SceneDocument
from .document.repair import repair_document
from .pipeline import ExportPipeline, ExportResult, export_path, export_stl

__all__ = [
    "CancelToken",
    "ExportConfig",
    "ViewerNormalization",
    "decode_container",
    "decode_path",
    "SceneDocument",
    "repair_document",
    "ExportPipeline",
    "ExportResult",
    "export_path",
    "export_stl",
]
