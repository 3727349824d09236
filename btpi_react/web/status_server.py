"""
Web server for BTPI-REACT deployment status.

This module provides a FastAPI server that exposes:
- liveness of the status server itself
- the service catalogue and the services selected for this deployment
- container state and health per service
- on-demand smoke tests
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ..core.config import BtpiConfig, load_config
from ..core.errors import BtpiError
from ..core.logging import get_logger
from ..orchestrator.smoke_tests import SmokeTestSuite, write_smoke_report
from ..orchestrator.workflow import DeploymentWorkflow


logger = get_logger("btpi.web.status")

WorkflowFactory = Callable[[BtpiConfig], DeploymentWorkflow]


class ServiceInfo(BaseModel):
    name: str
    category: str
    description: str
    image: Optional[str] = None
    native: bool = False
    dependencies: List[str] = []
    ports: List[str] = []
    selected: bool = False


class ServiceStatusModel(BaseModel):
    name: str
    category: str
    container: str
    health: str
    detail: Optional[str] = None


class StatusResponse(BaseModel):
    version: str
    mode: str
    healthy: int
    total: int
    services: List[ServiceStatusModel]


class SmokeTestResultModel(BaseModel):
    name: str
    outcome: str
    detail: str = ""
    warning: bool = False


class SmokeTestResponse(BaseModel):
    total: int
    passed: int
    failed: int
    skipped: int
    success_rate: float
    ok: bool
    report_path: Optional[str] = None
    results: List[SmokeTestResultModel]


def create_app(
    config: Optional[BtpiConfig] = None,
    workflow_factory: WorkflowFactory = DeploymentWorkflow,
) -> FastAPI:
    """
    Build the status application.

    Configuration is loaded from the environment when not given.
    """

    config = config or load_config()

    app = FastAPI(
        title="BTPI-REACT Status",
        description="Deployment status and service health for BTPI-REACT",
        version=config.version,
    )

    def workflow() -> DeploymentWorkflow:
        try:
            return workflow_factory(config)
        except BtpiError as e:
            raise HTTPException(status_code=500, detail=str(e))

    def to_status_model(status) -> ServiceStatusModel:
        data = status.to_dict()
        return ServiceStatusModel(**data)

    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "version": config.version}

    @app.get("/api/services", response_model=List[ServiceInfo])
    def list_services():
        wf = workflow()
        selected = set(wf.ctx.selected)
        return [
            ServiceInfo(
                name=service.name,
                category=service.category,
                description=service.description,
                image=service.image or None,
                native=service.native,
                dependencies=list(service.dependencies),
                ports=[port.to_arg() for port in service.ports],
                selected=service.name in selected,
            )
            for service in wf.registry
        ]

    @app.get("/api/status", response_model=StatusResponse)
    def deployment_status():
        wf = workflow()
        statuses = [to_status_model(status) for status in wf.status()]
        return StatusResponse(
            version=config.version,
            mode=config.deployment.mode,
            healthy=sum(1 for status in statuses if status.health == "healthy"),
            total=len(statuses),
            services=statuses,
        )

    @app.get("/api/services/{name}/health", response_model=ServiceStatusModel)
    def service_health(name: str):
        wf = workflow()
        if name not in wf.registry:
            raise HTTPException(status_code=404, detail=f"Unknown service: {name}")
        return to_status_model(wf.service_status(wf.registry.get(name)))

    @app.post("/api/smoke-tests", response_model=SmokeTestResponse)
    def run_smoke_tests():
        wf = workflow()
        report = SmokeTestSuite(wf.ctx, wf.services).run()
        try:
            path = write_smoke_report(report, config.paths.logs_dir)
        except OSError as e:
            logger.warning("Could not write smoke test report: %s", e)
            path = None
        return SmokeTestResponse(
            **report.summary(),
            report_path=str(path) if path else None,
            results=[SmokeTestResultModel(**result.to_dict()) for result in report.results],
        )

    return app


def serve(config: Optional[BtpiConfig] = None, host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    config = config or load_config()
    host = host or config.web.host
    port = port or config.web.port
    logger.info("Starting BTPI-REACT status server on %s:%s", host, port)
    uvicorn.run(create_app(config), host=host, port=port)
