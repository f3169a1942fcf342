"""
Test Suite
==========

Unit and integration tests for the scene rasterizer.
"""
