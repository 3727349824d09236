"""
Deployment orchestration for BTPI-REACT.

Each module owns one step of a deployment (environment, certificates,
networks, system tuning, reconciliation, health polling, integrations,
smoke tests, reports); ``workflow`` sequences them.
"""
