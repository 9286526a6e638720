"""3D transformation utilities for the node hierarchy.

Provides Transform3D for a node's translation/rotation/scale triple, with
conversion to 4x4 homogeneous matrices. Matrices use the column-vector
convention throughout: ``p' = M @ p``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field
from scipy.spatial.transform import Rotation


class Transform3D(BaseModel):
    """3D transformation: translation + rotation + scale.

    Attributes:
        translation: XYZ offset
        rotation: Quaternion (x, y, z, w), normalized on use
        scale: Per-axis scale factors
    """

    translation: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ translation"
    )
    rotation: tuple[float, float, float, float] = Field(
        default=(0.0, 0.0, 0.0, 1.0),
        description="Rotation quaternion (x, y, z, w)"
    )
    scale: tuple[float, float, float] = Field(
        default=(1.0, 1.0, 1.0),
        description="Per-axis scale"
    )

    model_config = {"frozen": True}

    def rotation_matrix(self) -> NDArray[np.float64]:
        """Return the 3x3 rotation matrix of the quaternion."""
        return Rotation.from_quat(self.rotation).as_matrix()

    def to_matrix(self) -> NDArray[np.float64]:
        """Convert to 4x4 homogeneous transformation matrix.

        The transformation order is: Scale -> Rotate -> Translate
        This means the matrix is built as: T @ R @ S

        Returns:
            4x4 transformation matrix
        """
        # Scale matrix
        s = np.diag([*self.scale, 1.0]).astype(np.float64)

        # Rotation matrix
        r = np.eye(4, dtype=np.float64)
        r[:3, :3] = self.rotation_matrix()

        # Translation matrix
        t = np.eye(4, dtype=np.float64)
        t[:3, 3] = self.translation

        # Combined: T @ R @ S (applied right to left to vertices)
        return t @ r @ s

    def apply_stepwise(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Apply scale, then rotation, then translation without building a matrix.

        Independent of to_matrix(); the two must agree.
        """
        scaled = np.asarray(points, dtype=np.float64) * np.asarray(self.scale)
        rotated = Rotation.from_quat(self.rotation).apply(scaled)
        return rotated + np.asarray(self.translation)

    def apply_to_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Apply transformation to an Nx3 array of points."""
        return apply_matrix(self.to_matrix(), points)

    @classmethod
    def identity(cls) -> Transform3D:
        """Return identity transform (no transformation)."""
        return cls()

    def __repr__(self) -> str:
        return (
            f"Transform3D(t={self.translation}, "
            f"r={self.rotation}, s={self.scale})"
        )


def matrix_from_column_major(values: Sequence[float]) -> NDArray[np.float64]:
    """Convert a glTF column-major 16-float list to a 4x4 matrix."""
    return np.asarray(values, dtype=np.float64).reshape(4, 4).T


def apply_matrix(matrix: NDArray[np.float64], points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Apply a 4x4 transformation to an Nx3 array of points.

    Args:
        matrix: 4x4 homogeneous transformation matrix
        points: Nx3 array of XYZ coordinates

    Returns:
        Transformed Nx3 array of points
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)

    # Convert to homogeneous coordinates (Nx4)
    ones = np.ones((len(points), 1), dtype=np.float64)
    homogeneous = np.hstack([points, ones])

    transformed = (matrix @ homogeneous.T).T

    # Projective matrices are not expected in scenes, but keep w honest
    w = transformed[:, 3:4]
    if not np.allclose(w, 1.0):
        transformed = transformed / np.where(w == 0.0, 1.0, w)

    return transformed[:, :3]


# Y-up -> Z-up: +90 degrees about X, (x, y, z) -> (x, -z, y)
Y_UP_TO_Z_UP = np.array(
    [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, -1.0, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ]
)
