"""
Core Infrastructure for tts-batch.

This package provides foundational components:
    - config.py: Settings loading, provider profiles and run configuration
    - errors.py: Error taxonomy shared by the API and the CLI
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics collection
"""
