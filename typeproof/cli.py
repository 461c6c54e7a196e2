"""
typeproof Command-Line Interface
================================

Usage:
    typeproof extract --intervals <intervals.json>
    typeproof prove   --intervals <intervals.json> --content <text> [--output proof.json]
    typeproof verify  --proof <proof.json> [--policy <policy.json>]
    typeproof submit  --proof <proof.json>
    typeproof info    --proof <proof.json>

An intervals file holds a JSON array of inter-keystroke intervals in
milliseconds, or an object with a "keystroke_deltas" array.
"""

import argparse
import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from typeproof.classifier import classify, human_score
from typeproof.commitment import Commitment, build_commitment, system_clock
from typeproof.contract import CONTRACT, ClassifierPolicy
from typeproof.errors import EncodingError
from typeproof.fingerprint import collection_stage, extract_fingerprint, samples_remaining
from typeproof.verifier import verify_local, verify_remote

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """
    Configure logging for the command-line process.

    Args:
        log_level: Minimum level to log (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path of a rotating log file.
    """
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path), maxBytes=5_000_000, backupCount=3,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


# ═══════════════════════════════════════════════════════════════════
# FOOTER
# ═══════════════════════════════════════════════════════════════════

def _print_footer():
    """Print the standard footer restating what a commitment does not prove."""
    print()
    print("  ─────────────────────────────────────────────────────────")
    print("  Commitments are tamper-evident, not zero-knowledge.")
    print("  The human verdict is a heuristic over supplied timings.")
    print("  ─────────────────────────────────────────────────────────")


# ═══════════════════════════════════════════════════════════════════
# INPUT LOADING
# ═══════════════════════════════════════════════════════════════════

def _load_intervals(path: str) -> List[float]:
    """Load intervals from a JSON array or a {"keystroke_deltas": [...]} object."""
    p = Path(path)
    try:
        with open(p) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise EncodingError(f"{p} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("keystroke_deltas")
    if not isinstance(data, list):
        raise EncodingError(
            f"{p} must hold a JSON array or an object with 'keystroke_deltas'"
        )
    return data


def _load_content(args) -> str:
    if args.content_file:
        return Path(args.content_file).read_text(encoding="utf-8")
    return args.content


def _load_policy(args) -> ClassifierPolicy:
    if getattr(args, "policy", None):
        policy = ClassifierPolicy.load(args.policy)
        print(f"  Policy: {args.policy} ({policy.content_hash()})")
        return policy
    return CONTRACT


# ═══════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════

def cmd_extract(args):
    """Extract a fingerprint and show the classifier's view of it."""
    intervals = _load_intervals(args.intervals)
    policy = _load_policy(args)
    stage = collection_stage(len(intervals))
    to_initial, to_full = samples_remaining(len(intervals))
    print(f"  Samples:   {len(intervals)} ({stage})")
    if to_full:
        print(f"  Remaining: {to_initial} to initial check, {to_full} to full verification")

    fp = extract_fingerprint(intervals)
    verdict = classify(fp, policy)

    print(f"  Mean:      {fp.mean:.2f} ms")
    print(f"  Variance:  {fp.variance:.2f}")
    print(f"  Velocity:  {fp.velocity:.3f} keys/s")
    print("  Histogram: " + " ".join(f"{h:.2f}" for h in fp.histogram))
    print(f"  Score:     {human_score(fp.variance)}/100")
    print(f"  Patterns:  {', '.join(fp.edit_patterns)}")
    print()
    symbol = "✅" if verdict.human else "❌"
    print(f"  {symbol} {'HUMAN-LIKE' if verdict.human else 'NOT HUMAN-LIKE'}")
    for check in verdict.checks:
        mark = "pass" if check.passed else "FAIL"
        print(f"    {check.name}: {mark} ({check.reason})")

    _print_footer()
    return 0 if verdict.human else 1


def cmd_prove(args):
    """Build a commitment over content and its typing intervals."""
    intervals = _load_intervals(args.intervals)
    content = _load_content(args)
    policy = _load_policy(args)

    fp = extract_fingerprint(intervals)
    if args.timestamp is not None:
        clock = lambda: args.timestamp  # noqa: E731
    else:
        clock = system_clock
    commitment = build_commitment(content, fp, clock=clock, policy=policy)

    output = args.output or "typing_proof.json"
    commitment.save(output)

    pv = commitment.public_values
    symbol = "✅" if pv.human_verified else "⚠"
    print(f"\n  {symbol} Commitment built (human_verified={pv.human_verified})")
    print(f"  Saved to:       {output}")
    print(f"  Content hash:   {pv.content_hash}")
    print(f"  Authority hash: {pv.authority_hash}")
    print(f"  Pattern hash:   {commitment.pattern_hash}")
    print(f"  Timestamp:      {pv.timestamp}")

    _print_footer()
    return 0


def cmd_verify(args):
    """Check a saved commitment's internal consistency."""
    policy = _load_policy(args)
    text = Path(args.proof).read_text(encoding="utf-8")
    result = verify_local(text, policy=policy)

    symbol = "✅" if result.consistent else "❌"
    print(f"\n  {symbol} {result.decision}")
    for reason in result.reasons:
        print(f"    - {reason}")

    _print_footer()
    return 0 if result.consistent else 1


def cmd_submit(args):
    """Submit a commitment to the simulated ledger."""
    commitment = Commitment.load(args.proof)
    result = verify_remote(commitment)

    symbol = "✅" if result.verified else "❌"
    print(f"\n  {symbol} {'VERIFIED' if result.verified else 'NOT VERIFIED'}")
    print(f"  Reference: {result.reference_id}")
    print("  (simulated ledger: echoes the commitment's human_verified flag)")

    _print_footer()
    return 0 if result.verified else 1


def cmd_info(args):
    """Display commitment details."""
    commitment = Commitment.load(args.proof)
    pv = commitment.public_values
    vd = commitment.verification_data

    print(f"  Schema:          v{commitment.schema_version}")
    print(f"  Content hash:    {pv.content_hash}")
    print(f"  Authority hash:  {pv.authority_hash}")
    print(f"  Human verified:  {pv.human_verified}")
    print(f"  Timestamp:       {pv.timestamp}")
    print(f"  Words:           {vd.word_count}")
    print(f"  Avg keystroke:   {vd.average_keystroke_time:.2f} ms")
    print(f"  Editing time:    {vd.total_editing_time / 1000.0:.1f} s")
    print(f"  Pattern hash:    {commitment.pattern_hash}")

    _print_footer()
    return 0


# ═══════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typeproof",
        description=(
            "typeproof: commit text to the keystroke timings it was typed with.\n"
            "Hash-based, tamper-evident commitments with a heuristic human verdict."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  typeproof extract --intervals timings.json\n"
            "  typeproof prove   --intervals timings.json --content-file essay.txt\n"
            "  typeproof verify  --proof typing_proof.json\n"
            "  typeproof submit  --proof typing_proof.json\n"
        ),
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file", default=None,
        help="Also log to this file (rotating)",
    )
    sub = parser.add_subparsers(dest="command", help="Command to run")

    # ── extract ─────────────────────────────────────────────────
    p_extract = sub.add_parser(
        "extract",
        help="Extract and classify a keystroke fingerprint.",
    )
    p_extract.add_argument(
        "--intervals", required=True,
        help="JSON file of inter-keystroke intervals (ms)",
    )
    p_extract.add_argument(
        "--policy", default=None,
        help="Classifier policy JSON (default: built-in thresholds)",
    )

    # ── prove ───────────────────────────────────────────────────
    p_prove = sub.add_parser(
        "prove",
        help="Build a commitment over content and its typing fingerprint.",
    )
    p_prove.add_argument(
        "--intervals", required=True,
        help="JSON file of inter-keystroke intervals (ms)",
    )
    content = p_prove.add_mutually_exclusive_group(required=True)
    content.add_argument("--content", help="Content text")
    content.add_argument("--content-file", help="File holding the content (UTF-8)")
    p_prove.add_argument(
        "--output", "-o", default=None,
        help="Output commitment file (default: typing_proof.json)",
    )
    p_prove.add_argument(
        "--timestamp", type=int, default=None,
        help="Fixed epoch-ms timestamp (default: now)",
    )
    p_prove.add_argument(
        "--policy", default=None,
        help="Classifier policy JSON (default: built-in thresholds)",
    )

    # ── verify ──────────────────────────────────────────────────
    p_verify = sub.add_parser(
        "verify",
        help="Check a commitment's internal consistency.",
    )
    p_verify.add_argument(
        "--proof", required=True,
        help="Path to the commitment JSON file",
    )
    p_verify.add_argument(
        "--policy", default=None,
        help="Also require human_verified commitments to fit this policy",
    )

    # ── submit ──────────────────────────────────────────────────
    p_submit = sub.add_parser(
        "submit",
        help="Submit a commitment to the simulated ledger.",
    )
    p_submit.add_argument(
        "--proof", required=True,
        help="Path to the commitment JSON file",
    )

    # ── info ────────────────────────────────────────────────────
    p_info = sub.add_parser(
        "info",
        help="Display details of a commitment.",
    )
    p_info.add_argument(
        "--proof", required=True,
        help="Path to the commitment JSON file",
    )
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.log_level, args.log_file)

    print("=" * 60)
    print("typeproof  |  Typing Commitments")
    print("=" * 60)

    dispatch = {
        "extract": cmd_extract,
        "prove": cmd_prove,
        "verify": cmd_verify,
        "submit": cmd_submit,
        "info": cmd_info,
    }
    try:
        return dispatch[args.command](args)
    except (ValueError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"  ERROR: {e}")
        return 1


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
