"""
Importers for external design-token formats.

Every importer writes through the MutationAPI, so imported data is
validated exactly like an interactive edit.
"""

from .figma import FigmaVariableImporter, ImportReport, figma_color_to_hex

__all__ = ["FigmaVariableImporter", "ImportReport", "figma_color_to_hex"]
