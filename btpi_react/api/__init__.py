"""
Generic, vendor-neutral APIs for BTPI-REACT.

This package defines interfaces and DTOs for:
- Container runtimes (`containers.py`)
- Service health checks (`health.py`)

The orchestrator and service definitions depend only on these modules,
never on a specific runtime implementation.
"""
