import argparse
import logging
import os
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from .core.config import (
    DEFAULT_MASK,
    DEFAULT_NEWLINE,
    DEFAULT_SHUTDOWN_TIMEOUT,
    DEFAULT_STRATEGY,
    SUCCESS,
    MaskerConfig,
)
from .core.dispatcher import FileDispatcher, configure_logging
from .core.errors import ConfigurationError, ReportError
from .core.loader import discover_strategies, select_strategy
from .core.models import CancelToken
from .core.report import group_findings, load_findings, mirror_tree, summarize_rules
from .core.reporting import Reporter, default_output_path

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2

LOG_LEVELS = ["DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR"]


def build_arg_parser() -> argparse.ArgumentParser:
    strategies = sorted(discover_strategies())
    p = argparse.ArgumentParser(
        prog="credmask",
        description="Mask credentials found by a secret scanner in a mirrored copy of a source tree.",
        epilog="Example: credmask --source ./myproject --target ./masked-project --findings ./gitleaks.json",
    )
    p.add_argument("--source", required=True, help="Path to the source repository (never modified).")
    p.add_argument("--target", required=True, help="Path to the target repository for masked files; copied from --source when missing.")
    p.add_argument("--findings", type=Path, required=True, help="Path to the gitleaks findings JSON file.")
    p.add_argument("--mask", default=DEFAULT_MASK, help="Placeholder for masked credentials; up to three %%s filled with file prefix, rule ID and finding ID.")
    p.add_argument("--newline", default=DEFAULT_NEWLINE, help="Newline sequence used to split and write files, e.g. '\\r\\n', '\\n' or 'auto'.")
    p.add_argument("--strategy", default=DEFAULT_STRATEGY, choices=strategies, help="How matches are replaced in text files.")
    p.add_argument("--workers", type=int, default=0, help="Number of files masked in parallel (default: one per CPU).")
    p.add_argument("--shutdown-timeout", type=float, default=DEFAULT_SHUTDOWN_TIMEOUT, help="Seconds to wait for in-flight files after an interrupt.")
    p.add_argument("--output", type=Path, default=None, help="Where to write the grouped findings JSON (default: derived from --findings).")
    p.add_argument("--log-level", default=None, type=str.upper, choices=LOG_LEVELS, help="Log level (default: SUCCESS).")
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")
    return p


@contextmanager
def cancel_on_signals(cancel: CancelToken, logger: logging.Logger) -> Iterator[CancelToken]:
    """Turn SIGINT/SIGTERM into a cancellation request for the duration of the block."""

    def _handler(signum, _frame) -> None:
        if not cancel.is_set():
            logger.warning("Received %s, stopping after in-flight files", signal.Signals(signum).name)
        cancel.cancel()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:  # not the main thread
            pass
    try:
        yield cancel
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def run(args: argparse.Namespace, cancel: Optional[CancelToken] = None) -> int:
    logger = configure_logging(verbose=args.verbose, level=args.log_level)

    try:
        config = MaskerConfig.create(
            args.source,
            args.target,
            placeholder_mask=args.mask,
            newline=args.newline,
            strategy=args.strategy,
            workers=args.workers,
            shutdown_timeout=args.shutdown_timeout,
            findings_path=args.findings,
            output_path=args.output,
        )
        strategy = select_strategy(discover_strategies(), config.strategy)
        findings = load_findings(args.findings)
        logger.debug("Unique types of findings:")
        for rule_id in summarize_rules(findings):
            logger.debug("  - %s", rule_id)
        mirror_tree(Path(config.source_dir), Path(config.target_dir), logger)
    except (ConfigurationError, ReportError) as exc:
        logger.error("%s", exc)
        return EXIT_USAGE
    except OSError as exc:
        logger.error("Error copying %s to %s: %s", args.source, args.target, exc)
        return EXIT_USAGE

    groups = group_findings(findings, config.source_dir, config.target_dir)
    dispatcher = FileDispatcher(
        config,
        strategy,
        logger=logger,
        show_progress=not args.no_progress,
    )

    with cancel_on_signals(cancel or CancelToken(), logger) as token:
        report = dispatcher.dispatch(groups, token)

    if report.timed_out:
        logger.error("Shutdown timeout exceeded. Forcing exit.")
        logging.shutdown()
        os._exit(EXIT_FAILURES)

    out_path = config.output_path or default_output_path(args.findings)
    try:
        Reporter(out_path).write_all(report)
    except OSError as exc:
        logger.error("Error writing grouped findings to %s: %s", out_path, exc)
        return EXIT_FAILURES
    logger.log(SUCCESS, "Saved file findings to %s", out_path)

    if report.interrupted:
        logger.warning(
            "Processing was interrupted: %d of %d file(s) finished",
            len(report.results),
            report.total,
        )
        return EXIT_FAILURES
    if report.failed:
        logger.error("%d of %d file(s) could not be masked", len(report.failed), report.total)
        return EXIT_FAILURES

    logger.log(SUCCESS, "Processed %d findings", len(findings))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
