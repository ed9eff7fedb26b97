# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from allocheck.app import check_allocation
from allocheck.config import STATE_READ_MODES, ConfigurationError, configure_logging
from allocheck.domain.model import ResolutionFailure
from allocheck.domain.units import to_display_units

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from allocheck.domain.model import ResolvedAllocation

log = logging.getLogger(__name__)
progress_log = logging.getLogger("allocheck.progress")

EXIT_FOUND = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 3
EXIT_INTERRUPTED = 130


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {parsed}")
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {parsed}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check a token-sale allocation")
    parser.add_argument("identity", help="Ethereum address or ENS name (e.g. vitalik.eth)")
    parser.add_argument(
        "--state-source",
        choices=STATE_READ_MODES,
        default=None,
        help="How to read on-chain state (defaults to ALLOCHECK_STATE_SOURCE or auto)",
    )
    parser.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=None,
        help="Maximum block range per log query when scanning events",
    )
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Number of log queries to run in parallel when scanning events",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        help="Overall deadline in seconds",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv))


def _report_progress(message: str) -> None:
    progress_log.info(message)


def allocation_to_dict(allocation: ResolvedAllocation) -> dict[str, object]:
    off_chain = allocation.off_chain_allocation
    bid = allocation.active_bid
    return {
        "found": allocation.found,
        "address": allocation.address,
        "entity_id": allocation.entity_id.hex,
        "amount": allocation.amount,
        "raw_amount": allocation.raw_amount,
        "refunded": allocation.refunded,
        "cancelled": allocation.cancelled,
        "bid_timestamp": allocation.bid_timestamp.isoformat() if allocation.bid_timestamp else None,
        "state_source": str(allocation.state_source),
        "active_bid": (
            {"amount": to_display_units(bid.amount), "timestamp": bid.timestamp}
            if bid
            else None
        ),
        "as_of_block": allocation.as_of_block,
        "transaction_hash": allocation.transaction_hash,
        "off_chain_allocation": (
            {
                "usdt_allocation": off_chain.usdt_allocation,
                "token_allocation": off_chain.token_allocation,
                "clearing_price": off_chain.clearing_price,
            }
            if off_chain
            else None
        ),
        "off_chain_error": allocation.off_chain_error,
    }


def format_amount(value: float) -> str:
    whole, _, fraction = f"{value:,.6f}".partition(".")
    fraction = fraction.rstrip("0")
    return f"{whole}.{fraction}" if fraction else whole


def render_allocation(allocation: ResolvedAllocation) -> list[str]:
    lines: list[str] = []
    if allocation.found:
        lines.append("Allocation found")
        lines.append(f"  Amount:    {format_amount(allocation.amount)} USDT (on-chain)")
    else:
        lines.append("No allocation detected")
    lines.append(f"  Address:   {allocation.address}")
    lines.append(f"  Entity ID: {allocation.entity_id.hex}")
    if allocation.refunded:
        lines.append("  Status:    Refunded")
    if allocation.cancelled:
        lines.append("  Status:    Cancelled")
    if allocation.bid_timestamp is not None:
        lines.append(f"  Bid time:  {allocation.bid_timestamp.isoformat()}")
    if allocation.active_bid is not None:
        bid = allocation.active_bid
        bid_time = datetime.fromtimestamp(bid.timestamp, tz=UTC).isoformat()
        lines.append(f"  Active bid: {format_amount(to_display_units(bid.amount))} USDT at {bid_time}")
    if allocation.as_of_block is not None:
        lines.append(f"  As of:     block {allocation.as_of_block} ({allocation.transaction_hash})")

    off_chain = allocation.off_chain_allocation
    if off_chain is not None:
        if off_chain.usdt_allocation is not None:
            lines.append(f"  Confirmed: {format_amount(off_chain.usdt_allocation)} USDT (off-chain)")
        if off_chain.token_allocation is not None:
            lines.append(f"  Tokens:    {format_amount(off_chain.token_allocation)}")
        if off_chain.clearing_price is not None:
            lines.append(f"  Clearing price: {off_chain.clearing_price}")
    if allocation.off_chain_error:
        lines.append(f"  Off-chain data unavailable: {allocation.off_chain_error}")
    return lines


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        outcome = check_allocation(
            parsed_args.identity,
            progress=_report_progress,
            timeout_seconds=parsed_args.timeout,
            state_read_mode=parsed_args.state_source,
            log_chunk_size=parsed_args.chunk_size,
            scan_concurrency=parsed_args.concurrency,
        )
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(EXIT_USAGE)
    except TimeoutError:
        log.error("Allocation check timed out after %s seconds", parsed_args.timeout)  # noqa: TRY400
        sys.exit(EXIT_FAILURE)

    if isinstance(outcome, ResolutionFailure):
        if parsed_args.json:
            print(json.dumps({"error": outcome.message, "kind": outcome.kind}))
        else:
            print(f"Error: {outcome.message}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)

    allocation = outcome.allocation
    if parsed_args.json:
        print(json.dumps(allocation_to_dict(allocation), indent=2))
    else:
        print("\n".join(render_allocation(allocation)))
    sys.exit(EXIT_FOUND if allocation.found else EXIT_NOT_FOUND)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) without reporting a result."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(EXIT_INTERRUPTED)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
