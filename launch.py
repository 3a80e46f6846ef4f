#!/usr/bin/env python3
"""Start the BlazeBlog storefront under waitress, or the Flask dev server with --dev."""

import argparse
import datetime
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / 'src'))

import constants
from common.base.logging_config import configure_logging, get_logger
from common.config.storefront_config import init_storefront_config

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

EPILOG = """
Environment:
  BLAZEBLOG_API_BASE_URL, BLAZEBLOG_TENANT_SLUG, BLAZEBLOG_DOMAIN and
  BLAZEBLOG_VIEWS_COLLECTOR_URL override the config file.
  FLASK_ENV=development enables development mode.

Each run logs to logs/storefront_YYYYMMDD_HHMMSS_pidNNNN.log.
"""


def get_log_filename() -> str:
    stamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"storefront_{stamp}_pid{os.getpid()}.log"


def init_system(log_level: str = "INFO", app_log_level: str = "DEBUG", config_path=None):
    """
    Put the process in production state, then set up logging and load the storefront config.

    :param config_path: TOML file to load instead of config/storefront.toml
    :return: The loaded StorefrontConfigManager
    """
    constants.init_production(service='storefront')
    log_filename = get_log_filename()
    configure_logging(log_level=log_level, app_log_level=app_log_level, log_filename=log_filename)

    logger = get_logger(__name__)
    config = init_storefront_config(config_path)
    logger.info(f"Storefront pid {os.getpid()} logging to {log_filename}")
    logger.info(f"Upstream API: {config.api_base_url()} (tenant: {config.api.tenant_slug or 'by host'})")
    return config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='launch.py',
        description='Launch the BlazeBlog storefront server.',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--host', default='0.0.0.0', help='Bind address (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=3000, help='Port (default: 3000)')
    parser.add_argument('--config', help='Storefront TOML file (default: config/storefront.toml)')
    parser.add_argument('--dev', action='store_true', help='Flask dev server with auto-reload')
    parser.add_argument('--debug', action='store_true', help='Debug mode and DEBUG console logging')
    parser.add_argument('--log-level', default='INFO', choices=LOG_LEVELS,
                        help='Console and file log level (default: INFO)')
    parser.add_argument('--app-log-level', default='DEBUG', choices=LOG_LEVELS,
                        help='Level for the storefront and blazeblog loggers (default: DEBUG)')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only log warnings and errors')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.quiet:
        log_level = 'WARNING'
    elif args.debug:
        log_level = 'DEBUG'
    else:
        log_level = args.log_level

    try:
        init_system(log_level=log_level, app_log_level=args.app_log_level, config_path=args.config)

        from storefront.server import run_server
        if not args.quiet:
            print(f"Starting storefront on http://{args.host}:{args.port}")
        run_server(host=args.host, port=args.port, debug=args.debug or args.dev)
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
