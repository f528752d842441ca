"""Command-line entry point for resolving a single remote manifest.

Example:
    resolvekit --settings config/settings.yaml --type hub \\
        --param kind=task --param name=git-clone --param version=0.9 --param catalog=tekton
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable
from pathlib import Path

from resolvekit.config import Settings, build_resolvers, load_settings
from resolvekit.core.resolution import (
    LABEL_KEY_RESOLVER_TYPE,
    InvalidParamsError,
    Param,
    ResolutionError,
    ResolverDisabledError,
    resolver_registry,
)
from resolvekit.core.validation import ConfigurationError

logger = logging.getLogger(__name__)


def parse_param(text: str) -> Param:
    """Parse a ``KEY=VALUE`` command-line param."""
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return Param.of(name, value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve a task or pipeline manifest from a remote source")
    parser.add_argument(
        "--settings",
        type=Path,
        help="Path to resolver settings YAML (defaults apply if omitted)",
    )
    parser.add_argument(
        "--profile",
        default="default",
        help="Settings profile to load",
    )
    parser.add_argument(
        "--type",
        required=True,
        choices=resolver_registry.factory_types(),
        help="Resolver type to route the request to",
    )
    parser.add_argument(
        "--param",
        dest="params",
        action="append",
        type=parse_param,
        default=[],
        metavar="KEY=VALUE",
        help="Resolver param; repeat for each param",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the manifest to this path instead of stdout",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Request deadline in seconds (overrides settings)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Set logging verbosity",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))


def run(args: argparse.Namespace) -> None:
    configure_logging(args.log_level)

    try:
        settings = load_settings(args.settings, profile=args.profile) if args.settings else Settings()
        if args.timeout is not None:
            settings.timeout = args.timeout

        registry = build_resolvers(settings)
        ctx = settings.request_context()
        resource = registry.resolve(ctx, {LABEL_KEY_RESOLVER_TYPE: args.type}, args.params)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        raise SystemExit(1) from e
    except ResolverDisabledError as e:
        logger.error("Resolver disabled: %s", e)
        raise SystemExit(1) from e
    except InvalidParamsError as e:
        logger.error("Invalid params: %s", e)
        raise SystemExit(1) from e
    except ResolutionError as e:
        logger.error("Resolution error: %s", e)
        raise SystemExit(1) from e

    if not resource.content:
        logger.warning("No %s resource found for the given params", args.type)

    # Content is opaque bytes; write it unchanged
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_bytes(resource.content)
        logger.info("Wrote %d bytes to %s", len(resource.content), args.output)
    else:
        sys.stdout.flush()
        sys.stdout.buffer.write(resource.content)
        sys.stdout.buffer.flush()


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    run(args)


if __name__ == "__main__":  # pragma: no cover
    main()
