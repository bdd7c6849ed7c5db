"""
LibCST transformers backing the refactor engine's named mutations.
"""

from pysplice.core.transforms.imports import DEPRECATED_MODULES, ImportReplacer, UnusedImportRemover
from pysplice.core.transforms.mocks import ComplexDataMocker, RealDataMocker
from pysplice.core.transforms.modernize import ModernizationStats, SyntaxModernizer
from pysplice.core.transforms.rename import DeclarationRenamer

__all__ = [
  "DEPRECATED_MODULES",
  "ComplexDataMocker",
  "DeclarationRenamer",
  "ImportReplacer",
  "ModernizationStats",
  "RealDataMocker",
  "SyntaxModernizer",
  "UnusedImportRemover",
]
