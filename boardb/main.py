import argparse
import sys
from typing import List, Optional

import uvicorn

from .config_loader import build_effective_config
from .core import BoarDB
from .errors import DatabaseError
from .logging_utils import get_logger


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="boardb", description="Serve the BoarDB dashboard")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--config", default=None, help="JSON or YAML config file")
    args = ap.parse_args(argv)

    log = get_logger("boardb")
    cfg = build_effective_config(args.config)
    if args.host:
        cfg["host"] = args.host
    if args.port:
        cfg["port"] = args.port

    boardb = BoarDB(cfg)
    # Auto-connect when the environment or config file names a database
    if cfg.get("database"):
        try:
            boardb.connect_db(cfg["database"])
            log.info("db.auto_connected")
        except DatabaseError as e:
            log.warning("db.auto_connect_failed", extra={"error": str(e)})

    app = boardb.create_dashboard_app()
    log.info("dashboard.serving", extra={"url": f"http://{cfg['host']}:{cfg['port']}"})
    try:
        uvicorn.run(app, host=cfg["host"], port=int(cfg["port"]), log_level=cfg["log_level"])
    finally:
        boardb.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
