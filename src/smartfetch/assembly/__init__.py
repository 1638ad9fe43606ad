"""Result Assembler: final ExtractionResult construction."""

from .result_builder import assemble, empty_result

__all__ = ["assemble", "empty_result"]
