"""
Scene Module
============

Scene document parsing and validation.
"""
