"""
vision_extraction: text, form and table extraction from images with a multimodal model.

The registry in `schema` ties each extraction mode to its prompt and output
shape; `client` runs the single model call; `session` tracks one user's file,
mode and last result; `presentation` renders and exports results.
"""

__all__ = [
    "config",
    "schema",
    "ingest",
    "transport",
    "client",
    "session",
    "presentation",
    "web",
]
