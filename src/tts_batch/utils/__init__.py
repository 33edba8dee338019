"""
Utility Modules for tts-batch.

This package provides common utility functions used across the codebase:
    - audio.py: MP3 sniffing and filename tokens
    - documents.py: Manuscript text from .docx or UTF-8 files
    - text.py: Text preparation and duration estimates
    - timeit.py: Performance measurement utilities
"""
