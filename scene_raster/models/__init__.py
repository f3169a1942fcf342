"""
Data Models
===========

Pydantic data models for scene documents, render options and API responses.

Models:
- schemas: Scene nodes, render results and API request/response schemas
"""
