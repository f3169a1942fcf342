"""
Scene Raster
============

Rasterizes declarative scene documents (positioned text, images and nested
groups anchored by an origin) into PNG images.

This package provides:
- Origin-aware coordinate resolution and compositing with Pillow
- Scene document parsing and validation
- FastAPI REST endpoints for HTTP access
- Timestamped PNG persistence
"""

__version__ = "1.0.0"
__author__ = "Scene Raster Team"
