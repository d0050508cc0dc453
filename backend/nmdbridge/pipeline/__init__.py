"""
Transform pipeline — step-based engine that turns an NMD envelope into a
V3 patch request, with per-step timing, logging and error handling.

Import the engine from ``nmdbridge.pipeline.engine``; this package module
stays import-free so the processing layer can use ``pipeline.errors``.
"""
