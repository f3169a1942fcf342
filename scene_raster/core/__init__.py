"""
Core Business Logic
==================

Core business logic modules for scene processing and PNG generation.

Modules:
- scene: Scene document parsing and validation
- rendering: Origin resolution, transforms, drawers and compositing
- storage: Rendered file persistence
"""
