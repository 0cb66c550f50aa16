from .bitmap import Bitmap, BYTES_PER_PIXEL

__all__ = ["Bitmap", "BYTES_PER_PIXEL"]
