"""ASCII STL serialization.

Grammar::

    solid <name>
      facet normal nx ny nz
        outer loop
          vertex x y z
          vertex x y z
          vertex x y z
        endloop
      endfacet
    endsolid <name>

Every component is written with a fixed number of decimals (six by default).
"""

from __future__ import annotations

import re
from typing import Iterator

import numpy as np

from .triangulate import TriangleSoup

DEFAULT_PRECISION = 6

_FLOAT = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_FACET_RE = re.compile(
    rf"facet\s+normal\s+({_FLOAT})\s+({_FLOAT})\s+({_FLOAT})\s+"
    rf"outer\s+loop\s+"
    rf"vertex\s+({_FLOAT})\s+({_FLOAT})\s+({_FLOAT})\s+"
    rf"vertex\s+({_FLOAT})\s+({_FLOAT})\s+({_FLOAT})\s+"
    rf"vertex\s+({_FLOAT})\s+({_FLOAT})\s+({_FLOAT})\s+"
    rf"endloop\s+endfacet"
)
_SOLID_RE = re.compile(r"^\s*solid\b[ \t]*(\S*)")


def _format_vector(values: np.ndarray, precision: int) -> str:
    parts = []
    for value in values:
        text = f"{value:.{precision}f}"
        # Avoid "-0.000000" for tiny negatives and negative zero
        if text[0] == "-" and float(text) == 0.0:
            text = text[1:]
        parts.append(text)
    return " ".join(parts)


def iter_ascii_stl(
    soup: TriangleSoup,
    name: str = "model",
    precision: int = DEFAULT_PRECISION,
) -> Iterator[str]:
    """Yield the STL document line by line (each line ends with a newline)."""
    yield f"solid {name}\n"
    for tri, normal in zip(soup.vertices, soup.normals):
        yield f"  facet normal {_format_vector(normal, precision)}\n"
        yield "    outer loop\n"
        for vertex in tri:
            yield f"      vertex {_format_vector(vertex, precision)}\n"
        yield "    endloop\n"
        yield "  endfacet\n"
    yield f"endsolid {name}\n"


def write_ascii_stl(
    soup: TriangleSoup,
    name: str = "model",
    precision: int = DEFAULT_PRECISION,
) -> str:
    """Serialize triangles to an ASCII STL string.

    Args:
        soup: Triangles and their unit normals
        name: Solid name (single token)
        precision: Decimal digits per component

    Returns:
        Complete STL document
    """
    return "".join(iter_ascii_stl(soup, name=name, precision=precision))


def parse_ascii_stl(text: str) -> tuple[str, TriangleSoup]:
    """Parse an ASCII STL document.

    Returns:
        Tuple of (solid name, triangles)

    Raises:
        ValueError: If the text does not start with a solid declaration
    """
    header = _SOLID_RE.match(text)
    if header is None:
        raise ValueError("Not an ASCII STL document (missing 'solid' line)")

    rows = [
        [float(v) for v in match.groups()]
        for match in _FACET_RE.finditer(text)
    ]
    if not rows:
        return header.group(1), TriangleSoup.empty()

    data = np.array(rows, dtype=np.float64)
    return header.group(1), TriangleSoup(
        vertices=data[:, 3:].reshape(-1, 3, 3),
        normals=data[:, :3],
    )


def count_facets(text: str) -> int:
    """Count facet records in an ASCII STL document."""
    return sum(1 for _ in _FACET_RE.finditer(text))
