"""
Smart Slicer - grid slicing and per-slice post-processing for raster images.

Sub-modules:

- geometry / extractor: percent crop and grid -> pixel rectangles -> slice buffers
- ops: matting, colour filters and outline strokes
- processor / processing_queue: the per-slice pipeline and its single-flight scheduler
- controllers: the session object an editor front end drives
- export: PNG encoding and zip bundling
"""

__version__ = "0.1.0"
