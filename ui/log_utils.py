"""Shared logging utilities."""

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

SENSITIVE_MARKERS = ("key", "authorization", "cookie", "token")


def write_forward_log(
    route: str,
    method: str,
    path: str,
    target_url: str,
    status: int,
    headers: list[tuple[str, str]],
    *,
    elapsed_ms: float,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single forwarded request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "route": route,
        "method": method,
        "path": path,
        "target": target_url,
        "status": status,
        "elapsed_ms": round(elapsed_ms, 2),
        "headers": _redact_headers(headers),
    }
    return _write_json(log_root / "forwarded" / _route_folder(route), payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path | None = None,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path = LOG_ROOT) -> int:
    """Delete per-request logs from a previous run, keeping the CLI log."""
    folder = log_root / "forwarded"
    if not folder.exists():
        return 0

    deleted = 0
    for old_file in folder.glob("*/*.json"):
        try:
            old_file.unlink()
            deleted += 1
        except OSError:
            pass
    return deleted


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _route_folder(route: str) -> str:
    name = re.sub(r"[^A-Za-z0-9_.-]+", "_", route).strip("_")
    return name or "root"


def _redact_headers(headers: list[tuple[str, str]]) -> list[list[str]]:
    """Redact sensitive headers, keeping duplicates and order."""
    redacted = []
    for key, value in headers:
        if any(marker in key.lower() for marker in SENSITIVE_MARKERS):
            redacted.append([key, _mask(value)])
        else:
            redacted.append([key, value])
    return redacted


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
