"""HealthView - Render health dashboards from a monitoring status API."""

import argparse
import logging
import signal
import sys
from pathlib import Path
from threading import Event
from typing import Optional

__version__ = "0.1.0"

# Global events for signal handlers
_shutdown_event: Optional[Event] = None
_refresh_event: Optional[Event] = None

# How often the watch loop re-reads stored preferences (seconds).
PREFERENCE_POLL_INTERVAL = 5.0

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _handle_refresh(signum: int, frame: object) -> None:
    """Signal handler that asks the watch loop for an immediate refresh."""
    logger.info("Received %s, refreshing now", signal.Signals(signum).name)
    if _refresh_event is not None:
        _refresh_event.set()


def _load(args: argparse.Namespace):
    """Load configuration and open the preference store, exiting on errors."""
    from .config import ConfigError, load_config
    from .preferences import PreferenceError, Preferences, PreferenceStore

    try:
        config = load_config(args.config)
        logger.info("Configuration loaded from %s", args.config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    try:
        store = PreferenceStore(config.preferences.path)
    except PreferenceError as e:
        logger.error("Preference store error: %s", e)
        sys.exit(1)

    preferences = Preferences(store, default_refresh_interval=config.dashboard.refresh_interval)
    return config, store, preferences


def _write(path: str, content: str) -> bool:
    try:
        Path(path).write_text(content, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write %s: %s", path, e)
        return False
    logger.info("Wrote %s", path)
    return True


def _build_dashboard(config, preferences):
    from .client import StatusClient
    from .dashboard import Dashboard
    from .models import Viewport

    client = StatusClient(config.api.base_url, timeout=config.api.timeout)
    dashboard = Dashboard(
        client,
        preferences,
        max_results=config.dashboard.max_results,
        page_size=config.dashboard.page_size,
        viewport=Viewport(config.viewport.width, config.viewport.height),
        dark=config.dashboard.dark_mode,
    )
    return client, dashboard


def _render_chart(client, config, key: str, duration: str) -> tuple[str, bool]:
    """Fetch and draw one endpoint's chart; returns ``(svg, ok)``."""
    from .chart import ResponseTimeChart

    chart = ResponseTimeChart(
        client,
        key,
        duration=duration,
        width=config.chart.width,
        dark=config.dashboard.dark_mode,
    )
    chart.load()
    return chart.to_svg(), chart.error is None


def _render_detail(client, config, kind: str, key: str, page: int) -> tuple[str, bool]:
    """Load one endpoint or suite page and render it; returns ``(html, ok)``."""
    from .detail import DetailView
    from .models import Viewport

    view = DetailView(
        client,
        key,
        kind=kind,
        page_size=config.dashboard.page_size,
        duration=config.chart.duration,
        chart_width=config.chart.width,
        viewport=Viewport(config.viewport.width, config.viewport.height),
        dark=config.dashboard.dark_mode,
    )
    view.load()
    while view.page < page and view.next_page():
        pass
    if view.page < page:
        logger.warning("%s %s has no page %d, showing page %d", kind, key, page, view.page)
    ok = view.error is None and (view.chart is None or view.chart.error is None)
    page_html = view.render_html()
    view.unmount()
    return page_html, ok


def _cmd_render(args: argparse.Namespace) -> None:
    """Execute the render command - write a one-off HTML snapshot."""
    _setup_logging(args.verbose)

    config, store, preferences = _load(args)
    try:
        client, dashboard = _build_dashboard(config, preferences)
        key = args.endpoint or args.suite
        if key:
            kind = "endpoint" if args.endpoint else "suite"
            page_html, ok = _render_detail(client, config, kind, key, args.page)
            written = _write(args.output, page_html)
            if not (ok and written):
                sys.exit(1)
            return

        dashboard.refresh_config()
        dashboard.refresh()
        written = _write(args.output, dashboard.render_html())
        dashboard.unmount()
        if dashboard.errors or not written:
            sys.exit(1)
    finally:
        store.close()


def _sync_refresh_interval(refresher, preferences) -> None:
    """Pick up a refresh interval stored by another process (``healthview prefs``)."""
    interval = preferences.refresh_interval
    if interval != refresher.interval:
        logger.info("Refresh interval changed to %ds", interval)
        refresher.set_interval(interval)


def _cmd_watch(args: argparse.Namespace) -> None:
    """Execute the watch command - keep the snapshot fresh until shutdown."""
    global _shutdown_event, _refresh_event

    _setup_logging(args.verbose)

    logger.info("HealthView %s starting...", __version__)

    from .refresh import Refresher

    config, store, preferences = _load(args)
    _, dashboard = _build_dashboard(config, preferences)

    _shutdown_event = Event()
    _refresh_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _handle_refresh)

    interval = preferences.refresh_interval
    logger.info("Refreshing every %ds, writing %s", interval, args.output)

    statuses = Refresher(
        "statuses",
        dashboard.refresh,
        lambda _: _write(args.output, dashboard.render_html()),
        interval,
    )
    server_config = Refresher(
        "config",
        dashboard.refresh_config,
        lambda _: None,
        config.dashboard.config_refresh_interval,
    )

    try:
        server_config.start()
        statuses.start()
        while not _shutdown_event.wait(PREFERENCE_POLL_INTERVAL):
            if _refresh_event.is_set():
                _refresh_event.clear()
                statuses.refresh_now()
            _sync_refresh_interval(statuses, preferences)
    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.info("Keyboard interrupt received")
    finally:
        logger.info("Shutting down...")
        statuses.stop()
        server_config.stop()
        dashboard.unmount()
        store.close()
        logger.info("Shutdown complete")


def _cmd_prefs(args: argparse.Namespace) -> None:
    """Execute the prefs command - show or change stored display preferences."""
    _setup_logging(args.verbose)

    from .preferences import PreferenceError
    from .timefmt import format_refresh_interval

    _, store, preferences = _load(args)
    try:
        if args.refresh_interval is not None:
            preferences.refresh_interval = args.refresh_interval
        if args.response_time is not None:
            preferences.show_average_response_time = args.response_time == "average"
        if args.filter is not None:
            preferences.filter_by = args.filter
        if args.sort is not None:
            preferences.sort_by = args.sort

        print(f"refresh interval: {format_refresh_interval(preferences.refresh_interval)}")
        print(f"response time:    {'average' if preferences.show_average_response_time else 'min-max'}")
        print(f"filter:           {preferences.filter_by}")
        print(f"sort:             {preferences.sort_by}")
    except PreferenceError as e:
        logger.error("Preference error: %s", e)
        sys.exit(1)
    finally:
        store.close()


def _cmd_chart(args: argparse.Namespace) -> None:
    """Execute the chart command - write one endpoint's response-time chart as SVG."""
    _setup_logging(args.verbose)

    config, store, preferences = _load(args)
    store.close()

    client, _ = _build_dashboard(config, preferences)
    svg, ok = _render_chart(client, config, args.key, args.duration or config.chart.duration)
    written = _write(args.output, svg)
    if not (ok and written):
        sys.exit(1)


def main() -> None:
    """Main entry point for the healthview package."""
    from .client import DURATIONS
    from .preferences import FILTER_CHOICES, REFRESH_INTERVALS, SORT_CHOICES

    parser = argparse.ArgumentParser(
        description="HealthView - Render health dashboards from a monitoring status API"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"healthview {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Render subcommand
    render_parser = subparsers.add_parser(
        "render",
        help="Fetch once and write an HTML snapshot",
    )
    render_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    render_parser.add_argument(
        "-o", "--output",
        default="dashboard.html",
        help="Output HTML file (default: dashboard.html)",
    )
    target = render_parser.add_mutually_exclusive_group()
    target.add_argument(
        "--endpoint",
        metavar="KEY",
        help="Render this endpoint's detail page instead of the dashboard",
    )
    target.add_argument(
        "--suite",
        metavar="KEY",
        help="Render this suite's detail page instead of the dashboard",
    )
    render_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Results page of the detail page (default: 1)",
    )
    render_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    render_parser.set_defaults(func=_cmd_render)

    # Watch subcommand
    watch_parser = subparsers.add_parser(
        "watch",
        help="Refresh periodically and rewrite the HTML snapshot",
    )
    watch_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    watch_parser.add_argument(
        "-o", "--output",
        default="dashboard.html",
        help="Output HTML file (default: dashboard.html)",
    )
    watch_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    watch_parser.set_defaults(func=_cmd_watch)

    # Chart subcommand
    chart_parser = subparsers.add_parser(
        "chart",
        help="Write an endpoint's response-time chart as SVG",
    )
    chart_parser.add_argument(
        "key",
        help="Endpoint key",
    )
    chart_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    chart_parser.add_argument(
        "--duration",
        choices=DURATIONS,
        help="History bucket (default: chart.duration from config)",
    )
    chart_parser.add_argument(
        "-o", "--output",
        default="chart.svg",
        help="Output SVG file (default: chart.svg)",
    )
    chart_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    chart_parser.set_defaults(func=_cmd_chart)

    # Prefs subcommand
    prefs_parser = subparsers.add_parser(
        "prefs",
        help="Show or change stored display preferences",
    )
    prefs_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    prefs_parser.add_argument(
        "--refresh-interval",
        type=int,
        choices=REFRESH_INTERVALS,
        help="Seconds between dashboard refreshes; a running watch picks it up",
    )
    prefs_parser.add_argument(
        "--response-time",
        choices=("average", "min-max"),
        help="Response time shown on endpoint cards",
    )
    prefs_parser.add_argument(
        "--filter",
        choices=FILTER_CHOICES,
        help="Which entities the dashboard shows",
    )
    prefs_parser.add_argument(
        "--sort",
        choices=SORT_CHOICES,
        help="Dashboard ordering",
    )
    prefs_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    prefs_parser.set_defaults(func=_cmd_prefs)

    args = parser.parse_args()
    args.func(args)
