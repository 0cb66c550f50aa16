# showorder/subtitles/ocr/engine.py
"""
Tesseract OCR Engine Wrapper

Turns a preprocessed subtitle bitmap into plain text through pytesseract.
Any failure of the Tesseract call is reported as OcrFailure so callers can
treat it as an empty frame.
"""

import logging
from dataclasses import dataclass

import pytesseract
from PIL import Image

from ...errors import OcrFailure
from ...models import Bitmap

logger = logging.getLogger(__name__)


@dataclass
class OCRConfig:
    """Configuration for OCR engine."""

    language: str = "eng"
    psm: int = 6  # Block mode
    oem: int = 3  # Default - use LSTM if available
    tesseract_cmd: str = ""  # Explicit tesseract binary (empty = from PATH)


def bitmap_to_image(bitmap: Bitmap) -> Image.Image:
    """Convert a BGRA bitmap to a PIL RGB image."""
    return Image.fromarray(bitmap.to_rgba(), "RGBA").convert("RGB")


class OCREngine:
    """
    Tesseract OCR engine.

    Instances are picklable so they can be handed to worker processes.
    """

    def __init__(self, config: OCRConfig | None = None):
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        self.tesseract_version = self._verify_tesseract()

    def _verify_tesseract(self) -> str:
        """Verify Tesseract is installed and accessible."""
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise OcrFailure(
                f"Tesseract not found or not accessible: {e}\n"
                "Install Tesseract: apt install tesseract-ocr tesseract-ocr-eng"
            ) from e
        logger.debug(f"Using Tesseract {version}")
        return str(version)

    def _build_config(self) -> str:
        """
        Build Tesseract configuration string.

        Returns:
            Tesseract config string
        """
        return f"--psm {self.config.psm} --oem {self.config.oem}"

    def __getstate__(self):
        return {"config": self.config, "tesseract_version": self.tesseract_version}

    def __setstate__(self, state):
        self.config = state["config"]
        self.tesseract_version = state["tesseract_version"]
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    def recognize(self, bitmap: Bitmap) -> str:
        """
        Perform OCR on a preprocessed bitmap.

        Args:
            bitmap: Opaque BGRA bitmap

        Returns:
            Recognized text on a single line (may be empty)

        Raises:
            OcrFailure: Tesseract could not be run on the image
        """
        image = bitmap_to_image(bitmap)
        try:
            text = pytesseract.image_to_string(
                image, lang=self.config.language, config=self._build_config()
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise OcrFailure(f"Tesseract failed on {bitmap.width}x{bitmap.height} image: {e}") from e
        return " ".join(text.split())


def create_engine(settings_dict: dict) -> OCREngine:
    """Create an OCR engine from a settings dictionary."""
    config = OCRConfig(
        language=settings_dict.get("ocr_language", "eng"),
        psm=settings_dict.get("ocr_psm", 6),
        oem=settings_dict.get("ocr_oem", 3),
        tesseract_cmd=settings_dict.get("tesseract_cmd", ""),
    )
    return OCREngine(config)
