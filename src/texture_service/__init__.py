"""
Texture Conversion Service package.

Converts uploaded textures between the BTX container and PNG through an
external texture tool, exposed as a FastAPI application with a one-shot
download area.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
