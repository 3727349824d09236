"""
Web interface components for BTPI-REACT.

This package contains:
- ``status_server.py``: FastAPI server exposing deployment status, service
  health and on-demand smoke tests.
"""
