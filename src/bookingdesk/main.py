from __future__ import annotations

import argparse
import logging

from .cli import run_cli
from .config import ConfigError, config_path_from_env, load_config
from .db import Db, DbError
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Service booking desk.")
    parser.add_argument("command", nargs="?", choices=("serve", "cli"), default="serve")
    parser.add_argument("--config", help="Path to config.toml (default: $BOOKINGDESK_CONFIG or ./config.toml)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config or config_path_from_env())
        configure_logging(cfg.log_level)

        if args.command == "cli":
            run_cli(Db(cfg.db))
            return 0

        from .web_app import create_app

        app = create_app(cfg)
        logger.info("Starting %s with %s order data", cfg.name, cfg.data_source)
        app.run(debug=args.debug, host=args.host, port=args.port)
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}")
        return 3
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
