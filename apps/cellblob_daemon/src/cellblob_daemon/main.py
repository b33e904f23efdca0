from __future__ import annotations

import json
import logging
import socket
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from cellblob_daemon.config import Settings
from cellblob_daemon.http import create_app


def _find_free_port(host: str) -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return int(sock.getsockname()[1])


def _write_daemon_state(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=True, indent=2), encoding="utf-8")


def main() -> None:
    load_dotenv()
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings.ensure_dirs()

    token = settings.resolved_auth_token()
    port = settings.app_port if settings.app_port > 0 else _find_free_port(settings.app_host)
    runtime_info = {
        "port": port,
        "token": token,
        "base_url": f"http://{settings.app_host}:{port}",
        "database": str(settings.sqlite_path),
    }
    _write_daemon_state(settings.daemon_state_path, runtime_info)
    print(json.dumps(runtime_info, ensure_ascii=True), flush=True)

    app = create_app(settings=settings, auth_token=token)
    uvicorn.run(app, host=settings.app_host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
