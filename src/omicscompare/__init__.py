"""
omicscompare - Tumor vs normal comparison utilities for omics matrices

Feature-wise statistical tests, expression calls and affected-sample counts
for labeled features × samples matrices.
"""

__version__ = "0.1.0"

from omicscompare.core.biomatrix import BioMatrix, as_biomatrix
from omicscompare.core.transform import Transform

__all__ = [
    "BioMatrix",
    "as_biomatrix",
    "Transform",
]
