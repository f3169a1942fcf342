"""
API Routes
==========

Route modules for rendering and health endpoints.
"""
