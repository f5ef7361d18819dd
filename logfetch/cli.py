#!/usr/bin/env python3
"""Fetch a remote log over SSH and optionally clear it.

Usage:
    python -m logfetch -host prod -logfile /var/log/app.log -localfile ./app.log
    python -m logfetch -host prod -logfile /var/log/app.log -localfile ./app.log -clear
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from .config import LogFetchSettings, load_config
from .errors import LogFetchError
from .fetcher import clear_log, fetch_log
from .keys import private_key_auth_methods
from .remote import SSHConnection
from .ssh_config import resolve_host

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Options:
    """Parsed command line for one run."""

    host: str
    logfile: str
    localfile: str
    clear: bool = False
    insecure: bool = False
    config: Optional[str] = None
    ssh_config: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.host and self.logfile and self.localfile)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="logfetch", description="Fetch a remote log over SSH")
    parser.add_argument("-host", default="", help="The host entry in ssh_config")
    parser.add_argument("-logfile", default="", help="The full path to the remote log")
    parser.add_argument("-localfile", default="", help="The local filename to save the log as")
    parser.add_argument("-clear", action="store_true", help="Whether to clear the remote file (default: false)")
    parser.add_argument("-insecure", action="store_true", help="Accept any host key without verification")
    parser.add_argument("-config", default=None, help="Settings YAML file (default: $LOGFETCH_CONFIG)")
    parser.add_argument("-ssh-config", dest="ssh_config", default=None, help="SSH config file to read host aliases from")
    return parser


def parse_options(argv: Optional[Sequence[str]] = None) -> Options:
    args = build_parser().parse_args(argv)
    return Options(
        host=args.host,
        logfile=args.logfile,
        localfile=args.localfile,
        clear=args.clear,
        insecure=args.insecure,
        config=args.config,
        ssh_config=args.ssh_config,
    )


def configure_logging(level: str) -> None:
    """Route structlog output to stderr at ``level``."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def build_connection(options: Options, settings: LogFetchSettings) -> SSHConnection:
    """Resolve the alias and load its key into a connection descriptor."""
    params = resolve_host(options.host, options.ssh_config or settings.ssh_config_path)
    return SSHConnection(
        host=params.hostname,
        port=params.port,
        user=params.user,
        credential=private_key_auth_methods(params.identityfile),
        verify_host_key=settings.verify_host_key and not options.insecure,
        known_hosts_file=settings.known_hosts_file,
        connect_timeout=settings.connect_timeout,
    )


def run(options: Options, settings: LogFetchSettings) -> None:
    """Fetch the log, then clear it if asked. Failures are logged, never raised."""
    connection = build_connection(options, settings)
    if not connection.verify_host_key:
        logger.warning("Host key verification is disabled", host=options.host)

    try:
        fetch_log(options.logfile, options.localfile, connection)
    except LogFetchError as e:
        logger.error("Failed to fetch log", host=options.host, logfile=options.logfile, error=str(e))

    if options.clear:
        try:
            clear_log(options.logfile, connection)
        except LogFetchError as e:
            logger.error("Failed to clear log", host=options.host, logfile=options.logfile, error=str(e))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point. Always returns 0."""
    options = parse_options(argv)
    if not options.complete:
        build_parser().print_help(sys.stdout)
        return 0

    configure_logging("INFO")
    settings = load_config(options.config)
    configure_logging(settings.log_level)
    run(options, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
