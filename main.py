"""
Clearance Scoring Engine - Main Entry Point
===========================================
Start the API server or score a CSV export of clearance records.

Usage:
    python main.py serve                        # Start server on port 8000
    python main.py serve --port 8080 --reload   # Custom port, auto-reload
    python main.py score clearances.csv         # Writes clearances_scored.csv
    python main.py score in.csv -o out.csv --enrich --workers 4

API Documentation:
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import csv
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from clearance_engine.config.settings import OUTPUT_COLUMNS, enrichment_allowed
from clearance_engine.engine import ClearanceScoringEngine
from clearance_engine.errors import ConfigurationError
from clearance_engine.logger import configure_logging, get_logger
from clearance_engine.models.scoring_config import load_scoring_config
from clearance_engine.storage.cache_store import CsvCacheStore

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="510(k) Clearance Scoring Engine")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", type=str, default="0.0.0.0", help="Host (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")

    score = subparsers.add_parser("score", help="Score a CSV table of clearances")
    score.add_argument("input", type=Path, help="CSV file with a header row")
    score.add_argument("-o", "--output", type=Path, default=None,
                       help="Output CSV (default: <input>_scored.csv)")
    score.add_argument("--config", type=Path, default=None, help="Scoring config JSON")
    score.add_argument("--cache", type=Path, default=None, help="Recap cache CSV")
    score.add_argument("--enrich", action="store_true",
                       help="Generate recaps for unseen companies (needs ENRICHMENT_ENABLED and an API key)")
    score.add_argument("--workers", type=int, default=1, help="Worker threads (default: 1)")
    return parser


def run_score(args) -> int:
    """Score a CSV file and write the input columns plus the score columns"""
    with args.input.open("r", encoding="utf-8-sig", newline="") as f:
        table = list(csv.reader(f))
    if not table:
        logger.error("Input file is empty", path=str(args.input))
        return 1

    header, rows = table[0], table[1:]
    config = load_scoring_config(args.config) if args.config else None
    store = CsvCacheStore(args.cache) if args.cache else None
    engine = ClearanceScoringEngine(scoring_config=config, cache_store=store)

    try:
        result = engine.score_batch(
            header,
            rows,
            allow_enrichment=lambda: args.enrich and enrichment_allowed(),
            max_workers=args.workers,
        )
    except ConfigurationError as e:
        logger.error("Cannot score file", path=str(args.input), missing_fields=e.missing_fields)
        return 2

    output = args.output or args.input.with_name(f"{args.input.stem}_scored.csv")
    with output.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(list(header) + OUTPUT_COLUMNS)
        for row, scored in zip(rows, result.results):
            writer.writerow(list(row) + scored.to_output_row())

    logger.info(
        "Scored file written",
        path=str(output),
        processed=result.processed,
        high=result.high,
        moderate=result.moderate,
        low=result.low,
        almost_none=result.almost_none,
        errors=result.errors,
    )
    return 0


def run_serve(args) -> int:
    import uvicorn

    print(f"""
    ╔══════════════════════════════════════════════════════════════╗
    ║               510(k) CLEARANCE SCORING ENGINE                ║
    ║                      Version 1.0.0                           ║
    ╠══════════════════════════════════════════════════════════════╣
    ║  Server starting on http://{args.host}:{args.port}                    ║
    ║  API Docs: http://localhost:{args.port}/docs                       ║
    ║  Health:   http://localhost:{args.port}/api/health                 ║
    ╚══════════════════════════════════════════════════════════════╝
    """)

    uvicorn.run(
        "clearance_engine.api.endpoints:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    if args.command == "serve":
        return run_serve(args)
    return run_score(args)


if __name__ == "__main__":
    sys.exit(main())
