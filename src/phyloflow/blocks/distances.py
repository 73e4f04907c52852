"""Distance matrix block."""

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .base import BlockKind, DataBlock

# Sentinel for a missing or undefined distance
UNDEFINED: float = -1.0


class DistancesBlock(DataBlock):
    """Symmetric ntax x ntax distance matrix with an optional variance matrix.

    Public accessors take 1-based taxon indices; ``matrix`` and ``variances``
    are the underlying 0-based numpy arrays.
    """

    kind = BlockKind.DISTANCES

    def __init__(
        self,
        ntax: int = 0,
        matrix: NDArray[np.floating] | None = None,
        variances: NDArray[np.floating] | None = None,
    ) -> None:
        if matrix is not None:
            matrix = np.array(matrix, dtype=float)
            if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:  # noqa: PLR2004
                raise ValueError(f"Distance matrix must be square, got shape {matrix.shape}")
            ntax = matrix.shape[0]
        else:
            matrix = np.zeros((ntax, ntax), dtype=float)
        self.matrix: NDArray[np.floating] = matrix
        self.variances: NDArray[np.floating] | None = None
        if variances is not None:
            variances = np.array(variances, dtype=float)
            if variances.shape != matrix.shape:
                raise ValueError("Variance matrix must have the same shape as the distance matrix")
            self.variances = variances

    @property
    def ntax(self) -> int:
        return self.matrix.shape[0]

    def size(self) -> int:
        return self.ntax

    def get(self, i: int, j: int) -> float:
        return float(self.matrix[i - 1, j - 1])

    def set(self, i: int, j: int, value: float) -> None:
        self.matrix[i - 1, j - 1] = value

    def set_both(self, i: int, j: int, value: float) -> None:
        """Set the (i, j) and (j, i) entries."""
        self.matrix[i - 1, j - 1] = value
        self.matrix[j - 1, i - 1] = value

    @property
    def has_variances(self) -> bool:
        return self.variances is not None

    def enable_variances(self) -> None:
        if self.variances is None:
            self.variances = np.zeros_like(self.matrix)

    def get_variance(self, i: int, j: int) -> float:
        if self.variances is None:
            return UNDEFINED
        return float(self.variances[i - 1, j - 1])

    def set_variance(self, i: int, j: int, value: float) -> None:
        self.enable_variances()
        self.variances[i - 1, j - 1] = value  # type: ignore[index]

    def is_undefined(self, i: int, j: int) -> bool:
        return self.matrix[i - 1, j - 1] == UNDEFINED

    def undefined_mask(self) -> NDArray[np.bool_]:
        """Boolean mask of off-diagonal entries holding the undefined sentinel."""
        mask = self.matrix == UNDEFINED
        np.fill_diagonal(mask, False)
        return mask

    def count_undefined(self) -> int:
        return int(self.undefined_mask().sum())

    def max_defined(self) -> float:
        """Largest defined distance, or 0.0 if none is defined."""
        defined = self.matrix[~self.undefined_mask()]
        return float(defined.max()) if defined.size else 0.0

    def is_symmetric(self) -> bool:
        return bool(np.array_equal(self.matrix, self.matrix.T))

    def copy(self) -> "DistancesBlock":
        result = DistancesBlock(
            matrix=self.matrix.copy(),
            variances=self.variances.copy() if self.variances is not None else None,
        )
        result.short_description = self.short_description
        return result

    def to_dataframe(self, labels: list[str]) -> pd.DataFrame:
        """Return the matrix as a labeled DataFrame."""
        if len(labels) != self.ntax:
            raise ValueError(f"Expected {self.ntax} labels, got {len(labels)}")
        return pd.DataFrame(self.matrix, index=labels, columns=labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DistancesBlock):
            return NotImplemented
        if not np.array_equal(self.matrix, other.matrix):
            return False
        if self.variances is None or other.variances is None:
            return self.variances is None and other.variances is None
        return bool(np.array_equal(self.variances, other.variances))

