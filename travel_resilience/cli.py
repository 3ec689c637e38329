"""Command-line health check for the external dependencies"""

import argparse
import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import orjson
from loguru import logger

from .circuit_breaker import CircuitBreakerRegistry, build_default_registry
from .config import DEFAULT_REQUEST_TIMEOUT
from .duffel_client import DuffelClient
from .logging_config import setup_logging


async def run_health_check(
    registry: CircuitBreakerRegistry,
    api_key: Optional[str] = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    client: Optional[DuffelClient] = None,
) -> Dict[str, Any]:
    """
    Probe the flight provider and collect breaker states.

    Returns:
        Report with status (healthy/degraded), checks, breakers and timestamp
    """
    if client is None:
        client = DuffelClient(
            registry.get("flight_provider"), api_key=api_key, timeout=timeout
        )

    async with client:
        checks = {"flight_provider": await client.check_connection()}

    all_healthy = all(checks.values())
    return {
        "status": "healthy" if all_healthy else "degraded",
        "checks": checks,
        "breakers": {
            name: snapshot.to_dict() for name, snapshot in registry.states().items()
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="travel-resilience",
        description="Resilience tooling for the travel booking services",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    health = subparsers.add_parser("health", help="Check external dependencies")
    health.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Request timeout in seconds",
    )
    health.add_argument("--verbose", action="store_true", help="Debug logging")
    health.add_argument("--log-file", type=str, help="Log file path")

    return parser


def main(argv: Optional[list] = None) -> None:
    args = build_parser().parse_args(argv)

    setup_logging(
        verbose=args.verbose,
        log_file=Path(args.log_file) if args.log_file else None,
    )

    if args.command == "health":
        registry = build_default_registry()
        report = asyncio.run(run_health_check(registry, timeout=args.timeout))
        sys.stdout.write(orjson.dumps(report, option=orjson.OPT_INDENT_2).decode() + "\n")
        if report["status"] != "healthy":
            logger.warning("⚠️ One or more dependencies are degraded")
            sys.exit(1)
        logger.success("✅ All dependencies healthy")


if __name__ == "__main__":
    main()
