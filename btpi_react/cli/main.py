"""
CLI entry point for the ``btpi`` command.

Usage:
    btpi deploy --mode custom --services elasticsearch,thehive
    btpi status [--json]
    btpi health [SERVICE]
    btpi test
    btpi recover
    btpi networks setup|cleanup
    btpi certs
    btpi report
    btpi serve [--host HOST] [--port PORT]

Exit codes: 0 on success, 1 on failure, 2 on usage errors.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Dict, List, Optional

from ..core.config import BtpiConfig, load_config
from ..core.errors import BtpiError, ConfigError, ValidationError
from ..core.logging import configure_logging, get_logger
from ..orchestrator.certificates import generate_ssl_certificates, generate_wazuh_certificates
from ..orchestrator.networks import cleanup_networks, setup_networks
from ..orchestrator.report import collect_statuses, console_summary, write_deployment_report
from ..orchestrator.smoke_tests import SmokeTestSuite, write_smoke_report
from ..orchestrator.workflow import DeploymentWorkflow

logger = get_logger("btpi.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def add_common_options(parser: argparse.ArgumentParser, default=None) -> None:
    """
    Options accepted both before and after the subcommand.

    Subcommand parsers pass ``argparse.SUPPRESS`` so an option given only
    before the subcommand is not reset.
    """
    parser.add_argument(
        "--root",
        default=default,
        help="Deployment root directory (default: BTPI_ROOT_DIR or current directory)",
    )
    parser.add_argument(
        "--mode",
        choices=["full", "simple", "custom"],
        default=default,
        help="Deployment mode (default: BTPI_MODE or full)",
    )
    parser.add_argument("--services", default=default, help="Comma-separated services for custom mode")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False if default is None else default,
        help="Enable debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="btpi",
        description="BTPI-REACT deployment orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_common_options(parser)

    common = argparse.ArgumentParser(add_help=False)
    add_common_options(common, default=argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", parents=[common], help="Deploy the selected services")
    deploy.add_argument("--skip-checks", action="store_true", help="Skip pre-deployment checks")
    deploy.add_argument("--skip-optimization", action="store_true", help="Skip host tuning")

    status = subparsers.add_parser("status", parents=[common], help="Show container state and health of each service")
    status.add_argument("--json", action="store_true", help="Print JSON")

    health = subparsers.add_parser("health", parents=[common], help="Check service health")
    health.add_argument("service", nargs="?", help="Single service to check")
    health.add_argument("--json", action="store_true", help="Print JSON")

    subparsers.add_parser("test", parents=[common], help="Run the smoke tests")
    subparsers.add_parser("recover", parents=[common], help="Redeploy services that are not healthy")

    networks = subparsers.add_parser("networks", parents=[common], help="Manage the Docker networks")
    networks.add_argument("action", choices=["setup", "cleanup"])

    subparsers.add_parser("certs", parents=[common], help="Generate TLS certificates")
    subparsers.add_parser("report", parents=[common], help="Write a deployment report")

    serve = subparsers.add_parser("serve", parents=[common], help="Start the status web server")
    serve.add_argument("--host", default=None, help="Bind address (default: BTPI_WEB_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: BTPI_WEB_PORT or 8085)")

    return parser


def config_from_args(args: argparse.Namespace) -> BtpiConfig:
    env: Dict[str, str] = dict(os.environ)
    if args.root:
        env["BTPI_ROOT_DIR"] = args.root
    if args.mode:
        env["BTPI_MODE"] = args.mode
    if args.services:
        env["BTPI_SERVICES"] = args.services
        if not args.mode:
            env["BTPI_MODE"] = "custom"
    if args.debug:
        env["BTPI_DEBUG"] = "true"
    if getattr(args, "skip_checks", False):
        env["BTPI_SKIP_CHECKS"] = "true"
    if getattr(args, "skip_optimization", False):
        env["BTPI_SKIP_OPTIMIZATION"] = "true"
    return load_config(env)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_deploy(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    result = workflow.run()
    print(console_summary(workflow.ctx, workflow.services, result.statuses))
    if result.report_path:
        print(f"Deployment report: {result.report_path}")
    if not result.ok:
        print(f"✗ Deployment finished with failures: {', '.join(result.failed_services) or 'smoke tests'}")
        return EXIT_FAILURE
    print("✓ Deployment completed successfully")
    return EXIT_OK


def cmd_status(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    statuses = workflow.status()
    if args.json:
        _print_json([status.to_dict() for status in statuses])
        return EXIT_OK
    print(f"{'SERVICE':<16} {'CONTAINER':<12} HEALTH")
    for status in statuses:
        print(f"{status.name:<16} {status.container:<12} {status.health.value}")
    return EXIT_OK


def cmd_health(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    if args.service:
        statuses = [workflow.service_status(workflow.registry.get(args.service))]
    else:
        statuses = workflow.status()

    if args.json:
        _print_json([status.to_dict() for status in statuses])
    else:
        for status in statuses:
            mark = "✓" if status.health.value == "healthy" else "✗"
            print(f"{mark} {status.name}: {status.health.value} {status.detail or ''}".rstrip())

    healthy = all(status.health.value == "healthy" for status in statuses)
    return EXIT_OK if healthy else EXIT_FAILURE


def cmd_test(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    report = SmokeTestSuite(workflow.ctx, workflow.services).run()
    path = write_smoke_report(report, workflow.config.paths.logs_dir)
    print(report.render())
    print(f"Report: {path}")
    return EXIT_OK if report.ok else EXIT_FAILURE


def cmd_recover(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    runs = workflow.recover()
    if not runs:
        print("✓ All services are healthy")
        return EXIT_OK
    for run in runs:
        mark = "✓" if run.ok else "✗"
        print(f"{mark} {run.service}: {run.action or run.detail}")
    return EXIT_OK if all(run.ok for run in runs) else EXIT_FAILURE


def cmd_networks(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    if args.action == "setup":
        created = setup_networks(workflow.runtime, workflow.config.networks)
        print(f"Created networks: {', '.join(created) or 'none (all present)'}")
    else:
        removed = cleanup_networks(workflow.runtime, workflow.config.networks)
        print(f"Removed networks: {', '.join(removed) or 'none'}")
    return EXIT_OK


def cmd_certs(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    workflow.create_directories()
    workflow.prepare_environment()
    cert_dir = workflow.config.paths.certificates_dir
    created = generate_ssl_certificates(cert_dir, workflow.ctx.server_ip, workflow.ctx.domain, workflow.openssl)
    created_wazuh = generate_wazuh_certificates(cert_dir, workflow.openssl)
    print(f"Certificates in {cert_dir}: {'generated' if created or created_wazuh else 'already present'}")
    return EXIT_OK


def cmd_report(workflow: DeploymentWorkflow, args: argparse.Namespace) -> int:
    statuses = collect_statuses(workflow.services, workflow.ctx)
    path = write_deployment_report(workflow.ctx, workflow.services, statuses)
    print(console_summary(workflow.ctx, workflow.services, statuses))
    print(f"Deployment report: {path}")
    return EXIT_OK


COMMANDS = {
    "deploy": cmd_deploy,
    "status": cmd_status,
    "health": cmd_health,
    "test": cmd_test,
    "recover": cmd_recover,
    "networks": cmd_networks,
    "certs": cmd_certs,
    "report": cmd_report,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        parser.print_usage(sys.stderr)
        print(f"btpi: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(config.logging, debug=config.deployment.debug)

    if args.command == "serve":
        from ..web.status_server import serve

        serve(config, host=args.host, port=args.port)
        return EXIT_OK

    try:
        workflow = DeploymentWorkflow(config)
        return COMMANDS[args.command](workflow, args)
    except ValidationError as e:
        print(f"btpi: error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except BtpiError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"✗ {args.command} failed: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
