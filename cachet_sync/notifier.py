"""
Console Notifier — structured console output for the CLI.

Renders each reconciled check result and the batch summary as
timestamped lines, with ANSI colors for readability.
"""

from __future__ import annotations

from datetime import datetime

from cachet_sync.models import BatchReport, ReconcileAction, UnitResult

# ANSI color codes for terminal styling
_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[91m"
_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_CYAN = "\033[96m"
_WHITE = "\033[97m"
_GRAY = "\033[90m"

_ACTION_COLORS = {
    ReconcileAction.CREATED: _YELLOW,
    ReconcileAction.UPDATED: _CYAN,
    ReconcileAction.SKIPPED: _GRAY,
}


def _ts() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def print_banner() -> None:
    """Print the startup banner."""
    banner = f"""
{_BOLD}{_CYAN}+------------------------------------------------------------------+
|          Cachet Sync -- Status Page Reconciliation               |
+------------------------------------------------------------------+{_RESET}
"""
    print(banner)


def print_batch_start(api_url: str, count: int) -> None:
    print(
        f"  {_BOLD}{_BLUE}> Reconciling:{_RESET} {_WHITE}{count} check result(s){_RESET}"
        f"  {_DIM}({api_url}){_RESET}"
    )


def format_unit(result: UnitResult) -> str:
    """
    One line per check result:
    [2026-10-19 14:32:00] API (invalid) component #3, incident created
    """
    outcome = result.outcome
    state = f"{_GREEN}valid{_RESET}" if outcome.valid else f"{_RED}invalid{_RESET}"
    line = f"{_GRAY}[{_ts()}]{_RESET} {_BOLD}{outcome.name}{_RESET} ({state})"

    if not result.ok:
        return f"{line} {_RED}FAILED{_RESET}: {result.error}"

    if result.component is not None:
        line += f" component #{result.component.id}"
    if result.decision is not None:
        color = _ACTION_COLORS.get(result.decision.action, _WHITE)
        line += f", incident {color}{result.decision.action.value}{_RESET}"
        if result.decision.reason:
            line += f" {_DIM}({result.decision.reason}){_RESET}"
    return line


def print_unit(result: UnitResult) -> None:
    print(f"  {format_unit(result)}")


def print_summary(report: BatchReport) -> None:
    """Print the per-unit lines followed by the totals."""
    for result in report.results:
        print_unit(result)

    total = len(report.results)
    failed = len(report.failures)
    color = _GREEN if report.ok else _RED
    print()
    print(
        f"  {_BOLD}{color}{total - failed} of {total} check result(s) reconciled{_RESET}"
        + (f"  {_RED}{failed} failed{_RESET}" if failed else "")
    )
    print()


def print_error(message: str) -> None:
    """Print an error message."""
    print(f"  {_GRAY}[{_ts()}]{_RESET} {_RED}ERROR{_RESET} {message}")
