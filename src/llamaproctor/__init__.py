"""llamaproctor -- Vision-based classroom focus monitor.

This package periodically captures a student's screen, asks a
vision-language model how relevant the visible activity is to the
teacher's current assignment, and keeps a bounded focus score and
activity history per student in a document store.
"""

__version__ = "0.1.0"
