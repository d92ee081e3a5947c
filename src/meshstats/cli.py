import argparse

from meshstats.config import Config, ErrorPolicy
from meshstats.errors import InvalidArgument
from meshstats.models import TimeWindow
from meshstats.window import compute_window, utcnow

_EPILOG = """\
duration must be formatted like 168h (units: h, m, s, ms, us, ns).

end_date must be formatted like 2006-01-02. If no end_date is supplied,
the current time is used.
"""


def build_parser() -> "argparse.ArgumentParser":
    parser = argparse.ArgumentParser(
        prog="stat-collector",
        description="Collect mesh bandwidth usage periods",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("duration", help="Window length, e.g. 168h")
    parser.add_argument(
        "end_date",
        nargs="?",
        default=None,
        help="Window end as YYYY-MM-DD (default: now)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )
    parser.add_argument(
        "--on-error",
        dest="error_policy",
        default=ErrorPolicy.ABORT.value,
        choices=[p.value for p in ErrorPolicy],
        help="Stop on the first failure or keep going (default: abort)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Members processed at once (default: 1)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute usage periods without storing them",
    )
    return parser


def parse_args(argv: "list[str] | None" = None) -> "tuple[Config, TimeWindow]":
    """
    parses the command line into the run configuration and the
    window to collect. Bad arguments exit through argparse with
    the usage line and the parse error, before any network call.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    try:
        window = compute_window(args.duration, args.end_date, now=utcnow)
    except InvalidArgument as exc:
        parser.error(str(exc))

    config = Config.from_env()
    config.log_level = args.log_level
    config.log_format = args.log_format
    config.error_policy = ErrorPolicy(args.error_policy)
    config.concurrency = args.concurrency
    config.dry_run = args.dry_run
    return config, window
