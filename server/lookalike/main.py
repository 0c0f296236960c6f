"""进程入口 — 校验 API key 后启动 uvicorn。"""

from __future__ import annotations

import sys

import uvicorn

from lookalike.app import create_app
from lookalike.config import ConfigError, load_settings, require_api_key


def main() -> None:
    settings = load_settings()
    try:
        require_api_key(settings)
    except ConfigError as exc:
        print(f"\n!!! ERROR: {exc}\n", file=sys.stderr)
        raise SystemExit(1) from exc

    app = create_app(settings)
    print(f"Server listening at http://localhost:{settings.server.port}")
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
