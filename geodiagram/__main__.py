import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from geodiagram import DiagramError, GeneratorOptions, SolveOptions, build_diagram

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Render constraint geometry diagrams to SVG")
    parser.add_argument("path", help="Path to the JSON diagram document")
    parser.add_argument(
        "-o",
        "--output",
        help="Write the SVG document to this path (default: stdout)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--no-gauge",
        action="store_true",
        help="Do not pin origin, rotation and scale before solving",
    )
    parser.add_argument(
        "--positions",
        action="store_true",
        help="Log the solved vertex coordinates",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    text = Path(args.path).read_text(encoding="utf-8")
    logger.info("Loading diagram from %s", args.path)

    options = GeneratorOptions(solve=SolveOptions(gauge=not args.no_gauge))
    try:
        result = build_diagram(text, options)
    except DiagramError as exc:
        logger.error("No diagram produced: %s: %s", type(exc).__name__, exc)
        raise SystemExit(1)

    if args.positions:
        for name, (x, y) in result.solution.positions.items():
            logger.info("%s = (%.4f, %.4f)", name, x, y)
    for warning in result.render.warnings:
        logger.warning("Label placement degraded: %s", warning.message)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.svg, encoding="utf-8")
        logger.info("SVG written to %s", output_path)
    else:
        sys.stdout.write(result.svg)
        sys.stdout.write("\n")


if __name__ == "__main__":
    main()
