"""Exception hierarchy for the export pipeline.

Structural errors (container, syntax, references, cycles) abort an export
before any geometry work starts. Primitive-level errors are raised by the
buffer resolver and caught at the primitive boundary by the pipeline.
"""

from __future__ import annotations


class MeshportError(Exception):
    """Base class for all meshport errors."""


class MalformedContainer(MeshportError):
    """Binary container signature present but the chunk table is inconsistent."""

    def __init__(self, message: str, byte_offset: int | None = None):
        self.byte_offset = byte_offset
        if byte_offset is not None:
            message = f"{message} (at byte {byte_offset})"
        super().__init__(message)


class InvalidSceneSyntax(MeshportError):
    """Scene text could not be decoded or parsed."""


class MissingAttribute(MeshportError):
    """A primitive lacks a required vertex attribute."""

    def __init__(self, mesh_index: int, primitive_index: int, attribute: str = "POSITION"):
        self.mesh_index = mesh_index
        self.primitive_index = primitive_index
        self.attribute = attribute
        super().__init__(
            f"Mesh {mesh_index}, primitive {primitive_index} has no usable {attribute} attribute"
        )


class UnsupportedComponentType(MeshportError):
    """An accessor declares a numeric encoding we cannot read."""

    def __init__(self, accessor_index: int, component_type: object, reason: str | None = None):
        self.accessor_index = accessor_index
        self.component_type = component_type
        message = f"Accessor {accessor_index} has unsupported componentType {component_type!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnresolvableReference(MeshportError):
    """An index points outside the collection it refers to."""

    def __init__(self, kind: str, index: object, detail: str | None = None):
        self.kind = kind
        self.index = index
        message = f"Unresolvable {kind} reference: {index!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class SceneCycleError(UnresolvableReference):
    """The node hierarchy contains a cycle."""

    def __init__(self, node_index: int, path: list[int]):
        self.path = path
        chain = " -> ".join(str(i) for i in [*path, node_index])
        super().__init__("node", node_index, f"cycle in node hierarchy: {chain}")


class EmptyGeometry(MeshportError):
    """The export produced zero triangles.

    Recoverable: the pipeline records it on the result and only raises it
    when ``ExportConfig.fail_on_empty`` is set.
    """


class ExportCancelled(MeshportError):
    """The export was cancelled between primitives."""


# Errors that disqualify a single primitive without aborting the export.
PRIMITIVE_ERRORS: tuple[type[MeshportError], ...] = (
    MissingAttribute,
    UnsupportedComponentType,
    UnresolvableReference,
)
