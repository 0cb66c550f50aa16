# showorder/subtitles/__init__.py
"""
Bitmap subtitle decoders (PGS and VobSub), OCR preparation, and the
per-track subtitle iterator.

The decoders are imported from their subpackages; the iterator lives in
showorder.subtitles.stream.
"""
