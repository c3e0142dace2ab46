#!/usr/bin/env python3
"""
Command line runner for the Medical Document Explainer

    python run.py server                  serve the API
    python run.py health                  query a running server
    python run.py explain labs.pdf        explain a PDF without the server
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from config import settings
from utils.exceptions import MedExplainException
from utils.logging import setup_logging

logger = logging.getLogger("run")


def run_server(args: argparse.Namespace) -> int:
    import uvicorn

    setup_logging(log_file=args.log_file)
    logger.info(f"Serving {settings.app_name} v{settings.app_version} on {settings.host}:{settings.port}")

    if settings.workers > 1:
        logger.warning(f"{settings.workers} workers configured; each keeps its own session")

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        log_level=settings.log_level.lower(),
        server_header=False,
        proxy_headers=True
    )
    return 0


def run_health_check(args: argparse.Namespace) -> int:
    """Print component health and the current session of a running server"""
    import requests

    base_url = args.url or f"http://{settings.host}:{settings.port}"
    try:
        detailed = requests.get(f"{base_url}/health/detailed", timeout=30)
        print(f"Health: {detailed.status_code}")
        print(json.dumps(detailed.json(), indent=2))

        session = requests.get(f"{base_url}/session", timeout=10).json()
        print(f"\nCycle {session.get('cycle')}: document loaded={session.get('has_document')}, "
              f"processing={session.get('is_processing')}, error={session.get('error')}")
    except requests.exceptions.RequestException as e:
        print(f"Health check failed: {e}")
        return 1

    return 0 if detailed.status_code == 200 else 1


def run_explain(args: argparse.Namespace) -> int:
    """Extract, reformat, translate and build the glossary for one PDF"""
    from api.dependencies import get_orchestrator, get_pdf_processor, get_report_composer
    from models.session import PrintSelections

    setup_logging(log_level="WARNING", log_format="simple")
    path = Path(args.pdf)

    try:
        extracted = get_pdf_processor().process_pdf(path.read_bytes(), path.name)
        session = asyncio.run(get_orchestrator().process(extracted.text, extracted.info))
    except MedExplainException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: cannot read {path}: {e.strerror}", file=sys.stderr)
        return 1

    print("# Plain-language version\n")
    print(session.translated_text or "(not available)")
    if session.glossary:
        print("\n# Glossary\n")
        for term in session.glossary:
            print(f"- {term.term}: {term.definition}")
    if session.error:
        print(f"\n{session.error}", file=sys.stderr)

    if args.report:
        report = get_report_composer().compose(session, PrintSelections(include_qa=False))
        Path(args.report).write_text(report.to_html(), encoding="utf-8")
        print(f"\nReport written to {args.report}")

    return 1 if session.error else 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Medical Document Explainer Runner")
    commands = parser.add_subparsers(dest="command", required=True)

    server = commands.add_parser("server", help="Run the API server")
    server.add_argument("--log-file", default="logs/app.log", help="Rotating log file")
    server.set_defaults(handler=run_server)

    health = commands.add_parser("health", help="Check a running server")
    health.add_argument("--url", help="Base URL of the server")
    health.set_defaults(handler=run_health_check)

    explain = commands.add_parser("explain", help="Explain a PDF from the command line")
    explain.add_argument("pdf", help="Path to the PDF")
    explain.add_argument("--report", help="Also write the printable HTML report here")
    explain.set_defaults(handler=run_explain)

    args = parser.parse_args(argv)
    sys.exit(args.handler(args))


if __name__ == "__main__":
    main()
