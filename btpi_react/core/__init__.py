"""
Core utilities for BTPI-REACT.

This package holds:
- configuration loading (`config.py`)
- the `.env` secrets file (`config_storage.py`)
- shared error types (`errors.py`)
- logging helpers (`logging.py`)
"""
