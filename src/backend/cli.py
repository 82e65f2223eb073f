"""
Command-line entry point.

Usage::

    ai-schematics-ensemble run --question question.md --baseline-netlist amp.cir --bundle-includes
    ai-schematics-ensemble run --config run.json --providers openai,anthropic --strict
    ai-schematics-ensemble serve --port 8000
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from executor import MissingQuestionError, NoProvidersError, RunFailedError, runBatch
from utils.runConfig import RunConfig, RunConfigError, mergeRunConfig, readRunConfig

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 2
EXIT_MISSING_SPICE = 3


def _splitProviders(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [p.strip() for p in value.split(",") if p.strip()]


def optionsFromArgs(args: argparse.Namespace) -> RunConfig:
    """Config file first, then any flag that was actually given on top of it."""
    cfg = readRunConfig(args.config) if args.config else RunConfig()
    return mergeRunConfig(
        {
            "question_path": args.question,
            "baseline_netlist_path": args.baseline_netlist,
            "baseline_image_path": args.baseline_image,
            "bundle_includes": args.bundle_includes,
            "outdir": args.outdir,
            "openai_model": args.openai_model,
            "grok_model": args.grok_model,
            "gemini_model": args.gemini_model,
            "claude_model": args.claude_model,
            "enabled_providers": _splitProviders(args.providers),
            "schematic_dpi": args.schematic_dpi,
        },
        cfg,
    )


def cmd_run(args: argparse.Namespace) -> int:
    try:
        options = optionsFromArgs(args)
        state = asyncio.run(runBatch(options))
    except (RunConfigError, NoProvidersError, MissingQuestionError, RunFailedError) as e:
        logger.error(str(e))
        return EXIT_FAILED

    outputs = state.context["outputs"]
    print(outputs.run_dir)

    ensemble_result = state.context.get("ensemble_result") or {}
    if args.strict and ensemble_result.get("missing_spice"):
        logger.error("No SPICE netlist was recovered from the ensemble output (--strict).")
        return EXIT_MISSING_SPICE
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("server:app", host=args.host, port=args.port)
    return EXIT_OK


def buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-schematics-ensemble",
        description="Ask several AI providers a circuit question and merge their answers into one netlist and diagram.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Run one batch and print the run folder")
    run_p.add_argument("--config", help="JSON run configuration (camelCase keys)")
    run_p.add_argument("--question", help="Question file (markdown or text)")
    run_p.add_argument("--baseline-netlist", help="Baseline SPICE netlist file")
    run_p.add_argument("--baseline-image", help="Baseline schematic image (.png/.jpg/.jpeg/.webp)")
    run_p.add_argument(
        "--bundle-includes",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Copy .include/.lib files next to the run and rewrite their paths",
    )
    run_p.add_argument("--outdir", help="Parent folder for run folders (default: runs)")
    run_p.add_argument("--openai-model")
    run_p.add_argument("--grok-model")
    run_p.add_argument("--gemini-model")
    run_p.add_argument("--claude-model")
    run_p.add_argument("--providers", help="Comma-separated subset of openai,xai,google,anthropic")
    run_p.add_argument("--schematic-dpi", type=int)
    run_p.add_argument(
        "--strict", action="store_true", help="Exit with code 3 when no SPICE netlist was recovered"
    )
    run_p.set_defaults(func=cmd_run)

    serve_p = sub.add_parser("serve", help="Start the HTTP API")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8000)
    serve_p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n",
    )
    args = buildParser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
