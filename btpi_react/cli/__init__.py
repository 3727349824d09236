"""
Command-line interface for BTPI-REACT (``btpi``).
"""
