# showorder/subtitles/ocr/__init__.py
"""
OCR stage: bitmap preparation and the Tesseract engine wrapper.
"""

from .engine import OCRConfig, OCREngine, create_engine
from .preprocessing import ImagePreprocessor, PreprocessingConfig, create_preprocessor

__all__ = [
    "ImagePreprocessor",
    "OCRConfig",
    "OCREngine",
    "PreprocessingConfig",
    "create_engine",
    "create_preprocessor",
]
