"""
Start the NPDI Ticket Tracker API under uvicorn.

Usage:
    python run.py                  # reload follows DEBUG from the environment
    python run.py --no-reload --workers 4
    python run.py --port 8080
"""
import argparse
import uvicorn

from npdi_tracker.config.settings import get_settings


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="NPDI Ticket Tracker API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=settings.debug,
        help="Auto-reload on code changes (default: on when DEBUG is set)"
    )
    parser.add_argument("--workers", type=int, default=1, help="Ignored when reloading")
    args = parser.parse_args()

    workers = 1 if args.reload else args.workers
    print(f"NPDI Ticket Tracker [{settings.environment}] on http://{args.host}:{args.port}")
    print(f"  MongoDB: {settings.mongo_db}  reload={args.reload}  workers={workers}")

    uvicorn.run(
        "npdi_tracker.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
