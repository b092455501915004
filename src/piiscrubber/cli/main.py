"""
CLI to scrub documents from the command line.
"""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from piiscrubber import DEFAULT_MODEL, PIIScrubber, list_models
from piiscrubber.audit import AuditRecorder
from piiscrubber.exceptions import ConfigurationError
from piiscrubber.logging_config import configure_logging
from piiscrubber.redaction import STRATEGIES


def build_parser():
    parser = argparse.ArgumentParser(
        prog="piiscrubber",
        description="Detect and redact PII in coaching documents",
    )

    parser.add_argument(
        "file_path",
        type=Path,
        nargs="?",
        help="Path to the text document to scrub ('-' reads stdin)",
    )
    parser.add_argument(
        "-t",
        "--data-type",
        default="transcript",
        help="Document type, e.g. transcript, assessment (default: transcript)",
    )
    parser.add_argument(
        "-m",
        "--model",
        default=DEFAULT_MODEL,
        help=f"Model to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Pattern matching only; no API key needed",
    )
    parser.add_argument(
        "--no-chunking",
        action="store_true",
        help="Send large documents to the model in a single call",
    )
    parser.add_argument(
        "--strategy",
        choices=list(STRATEGIES),
        default="replace",
        help="Placeholder style (default: replace)",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty print JSON output",
    )
    parser.add_argument(
        "--audit",
        action="store_true",
        help="Print a human-readable audit summary to stderr",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="List available models and exit",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    return parser


def print_models():
    """Print available models grouped by provider."""
    models = list_models()

    providers = {}
    for name, info in models.items():
        providers.setdefault(info.get("provider", "unknown"), []).append((name, info))

    print("\nAvailable models:")
    print("=" * 50)

    for provider, model_list in sorted(providers.items()):
        print(f"\n{provider.upper()}:")
        for name, info in sorted(model_list):
            cost = info.get("input_cost", 0)
            cost_str = "free" if not cost else f"${cost}/M tokens"
            print(f"  {name:<20} {cost_str}")

    print(f"\nDefault: {DEFAULT_MODEL}")
    print()


def main(argv=None):
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if args.list_models:
        print_models()
        sys.exit(0)

    if not args.file_path:
        parser.error("file_path is required")

    if str(args.file_path) == "-":
        text = sys.stdin.read()
    elif not args.file_path.exists():
        print(f"Error: File not found: {args.file_path}", file=sys.stderr)
        sys.exit(1)
    else:
        text = args.file_path.read_text(encoding="utf-8", errors="replace")

    try:
        scrubber = PIIScrubber(
            model=args.model,
            enable_llm=not args.no_llm,
            enable_chunking=not args.no_chunking,
            redaction_strategy=args.strategy,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    result = scrubber.scrub(text, args.data_type)

    if args.audit:
        print(AuditRecorder.format(result.audit), file=sys.stderr)

    indent = 2 if args.pretty else None
    output = json.dumps(result.to_dict(), indent=indent, default=str)

    if args.output:
        args.output.write_text(output)
    else:
        print(output)


if __name__ == "__main__":
    main()
