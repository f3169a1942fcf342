"""
Rendering Module
===============

Native rasterization of scene documents.

Components:
- origin: Anchor-relative position resolution
- transform: Immutable affine transforms
- surface: Raster surface and layer compositing
- drawers: Text, image and placeholder drawing
- image_loader: Async image fetching and decoding
- renderer: Depth-first scene traversal and PNG encoding
"""
