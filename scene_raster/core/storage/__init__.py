"""
Storage Module
==============

Persistence of rendered PNG files.
"""
