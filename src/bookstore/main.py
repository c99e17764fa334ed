from __future__ import annotations

from .cli import run_cli
from .config import ConfigError, configure_logging, load_config
from .db import Db, DbError
from .repositories.book_repo import BookRepository
from .web_app import build_order_service


def main() -> int:
    try:
        cfg = load_config()
        configure_logging(cfg.log_level)
        db = Db(cfg.db, cfg.pool)
        db.open()
        try:
            run_cli(db, build_order_service(), BookRepository())
        finally:
            db.close()
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
