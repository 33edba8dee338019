"""
Narration Pipeline Components.

This package provides the chunk-to-audio pipeline:
    - chunker.py: Sentence-aware text splitting
    - client.py: Generation client base class and factory
    - clients/: Provider implementations (MiniMax, ElevenLabs, Fake)
    - state.py: Per-chunk job state store
    - scheduler.py: Batch scheduler with pause / resume / abort
    - export.py: Zip archive assembly
"""
