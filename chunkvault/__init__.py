"""Chunked image/video storage on top of hosted document stores."""
