"""
CLI reporter for real-time status display.

Provides a terminal status panel showing pass outcomes, stage
latencies and dispatch results.
"""

import asyncio
import sys
from typing import TextIO

from dexarb import __version__
from dexarb.telemetry.metrics import MetricsCollector


class CLIReporter:
    """
    Real-time CLI status panel.

    Displays:
    - Uptime, mode and roster size
    - Build/search latency
    - Pass outcome counts
    - Dispatch results and best cycle seen
    """

    # Box drawing characters
    BOX_TL = "╔"  # ╔
    BOX_TR = "╗"  # ╗
    BOX_BL = "╚"  # ╚
    BOX_BR = "╝"  # ╝
    BOX_H = "═"  # ═
    BOX_V = "║"  # ║
    BOX_LT = "╠"  # ╠
    BOX_RT = "╣"  # ╣
    THIN_V = "│"  # │

    def __init__(
        self,
        metrics: MetricsCollector,
        width: int = 68,
        output: TextIO | None = None,
        dry_run: bool = True,
        simulate: bool = False,
        clear_screen: bool = True,
    ) -> None:
        """
        Initialize CLI reporter.

        Args:
            metrics: Metrics collector instance.
            width: Panel width in characters.
            output: Output stream (default: stdout).
            dry_run: Whether trades are only simulated.
            simulate: Whether market data is simulated.
            clear_screen: Redraw in place instead of appending.
        """
        self._metrics = metrics
        self._width = width
        self._output = output or sys.stdout
        self._dry_run = dry_run
        self._simulate = simulate
        self._clear_screen = clear_screen
        self._running = False
        self._task: asyncio.Task[None] | None = None

        self._pair_count = 0
        self._venue_count = 0

    def set_state(self, pair_count: int = 0, venue_count: int = 0) -> None:
        """Update roster figures shown in the header."""
        self._pair_count = pair_count
        self._venue_count = venue_count

    @staticmethod
    def _format_uptime(seconds: float) -> str:
        """Format uptime as HH:MM:SS."""
        hours, remainder = divmod(int(seconds), 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    def _line(self, content: str) -> str:
        inner_width = self._width - 2
        return f"{self.BOX_V}{content.ljust(inner_width)[:inner_width]}{self.BOX_V}"

    def _divider(self, left: str = BOX_LT, right: str = BOX_RT) -> str:
        return f"{left}{self.BOX_H * (self._width - 2)}{right}"

    def render(self) -> str:
        """
        Render the status panel.

        Returns:
            Formatted panel string.
        """
        c = self._metrics.counters
        build = self._metrics.get_latency_stats("build")
        search = self._metrics.get_latency_stats("search")
        total = self._metrics.get_latency_stats("pass")

        mode = "SIMULATED" if self._simulate else "LIVE FEED"
        dry_run_text = "DRY_RUN: ON " if self._dry_run else "DRY_RUN: OFF"
        uptime = self._format_uptime(self._metrics.uptime_seconds)

        def avg(stats: object) -> str:
            return f"{stats.avg_us:.0f}" if stats.count else "---"  # type: ignore[attr-defined]

        v = self.THIN_V
        lines = [
            self._divider(self.BOX_TL, self.BOX_TR),
            self._line(f"  DEX ARBITRAGE ENGINE v{__version__} | {mode} | {dry_run_text}"),
            self._divider(),
            self._line(
                f"  Uptime: {uptime}  |  Pairs: {self._pair_count}  |  "
                f"Venues: {self._venue_count}  |  Swaps: {c['observations']:,}"
            ),
            self._divider(),
            self._line(f"  {'LATENCY (μs)':<17}{v}  {'PASSES':<18}{v}  {'DISPATCH':<16}"),
            self._line(
                f"  Build: {avg(build):<10}{v}  Started: {c['passes_started']:<9,}"
                f"{v}  Done: {c['dispatch_success']:<10,}"
            ),
            self._line(
                f"  Search: {avg(search):<9}{v}  Cancelled: {c['passes_cancelled']:<7,}"
                f"{v}  Failed: {c['dispatch_failed']:<8,}"
            ),
            self._line(
                f"  Pass: {avg(total):<11}{v}  Found: {c['cycles_found']:<11,}"
                f"{v}  None: {c['no_arbitrage']:<10,}"
            ),
            self._divider(),
            self._line(f"  Best cycle: {self._metrics.best_profit_pct:+.4f}%  {self._metrics.last_cycle}"),
            self._divider(self.BOX_BL, self.BOX_BR),
        ]
        return "\n".join(lines)

    def display(self) -> None:
        """Display the panel once."""
        if self._clear_screen:
            self._output.write("\033[2J\033[H")
        self._output.write(self.render())
        self._output.write("\n")
        self._output.flush()

    async def run(self, interval: float = 1.0) -> None:
        """
        Redraw the panel until stopped.

        Args:
            interval: Update interval in seconds.
        """
        self._running = True
        while self._running:
            self.display()
            await asyncio.sleep(interval)

    def start(self, interval: float = 1.0) -> asyncio.Task[None]:
        """Start the reporter as a background task."""
        self._task = asyncio.create_task(self.run(interval))
        return self._task

    def stop(self) -> None:
        """Stop the reporter."""
        self._running = False
        if self._task:
            self._task.cancel()

    def get_status_line(self) -> str:
        """Single-line status for log output."""
        c = self._metrics.counters
        return (
            f"Swaps: {c['observations']} | "
            f"Passes: {c['passes_started']}/{c['passes_cancelled']} cancelled | "
            f"Found: {c['cycles_found']} | "
            f"Dispatch: {c['dispatch_success']}/{c['dispatch_failed']} failed"
        )

    def print_summary(self) -> None:
        """Print a final summary."""
        c = self._metrics.counters
        uptime = self._format_uptime(self._metrics.uptime_seconds)
        out = self._output

        out.write("\n" + "=" * 50 + "\n")
        out.write("  SESSION SUMMARY\n")
        out.write("=" * 50 + "\n")
        out.write(f"  Uptime: {uptime}\n")
        out.write(f"  Pairs monitored: {self._pair_count}\n")
        out.write(f"  Swaps observed:  {c['observations']:,}\n\n")
        out.write("  PASSES:\n")
        out.write(f"    Started:      {c['passes_started']:,}\n")
        out.write(f"    Cancelled:    {c['passes_cancelled']:,}\n")
        out.write(f"    No arbitrage: {c['no_arbitrage']:,}\n")
        out.write(f"    Cycles found: {c['cycles_found']:,}\n\n")
        out.write("  DISPATCH:\n")
        out.write(f"    Completed: {c['dispatch_success']:,}\n")
        out.write(f"    Failed:    {c['dispatch_failed']:,}\n")
        out.write(f"    Best cycle: {self._metrics.best_profit_pct:+.4f}%\n")
        out.write("=" * 50 + "\n")
        out.flush()
