"""
Base class for immutable matrix transformations.

A Transform takes a BioMatrix and returns a new one; the input is never
modified. Parameters are recorded at construction so a pipeline step can be
logged and repeated exactly.

Examples:
    >>> from omicscompare.stats.missing import MissingValueFilter
    >>> step = MissingValueFilter(max_missing_fraction=0.2)
    >>> print(step)
    MissingValueFilter(max_missing_fraction=0.2, imputer=None)
    >>> cleaned = step.apply(matrix)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from omicscompare.core.biomatrix import BioMatrix

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for matrix transformations.

    Attributes:
        name: Human-readable transformation name
        params: Parameters used for this transformation
        timestamp: When this transform instance was created
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, matrix: BioMatrix) -> BioMatrix:
        """
        Execute the transformation and return a new matrix.

        Raises:
            ValueError: If validate() reports problems with the input
        """

    def validate(self, matrix: BioMatrix) -> list[str]:
        """
        Check preconditions before applying the transformation.

        Subclasses extend the list returned by super().validate().

        Returns:
            Error messages; an empty list means the input is acceptable
        """
        errors: list[str] = []

        if matrix.n_samples == 0:
            errors.append("Cannot process a matrix without samples")

        return errors

    def __repr__(self) -> str:
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
