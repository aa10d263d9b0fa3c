import json
from datetime import datetime, timezone
from pathlib import Path

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def iso_now() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def load_json(path, default):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return default


def save_json(path, data) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    tmp.replace(path)
    return path


def make_table(headers, rows, min_widths=None):
    """
    Build a fixed-width monospace table for operator-facing summaries.
    """
    if not rows:
        return "No data available."

    widths = [len(h) for h in headers]
    if min_widths:
        widths = [max(w, m) for w, m in zip(widths, min_widths)]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    def fmt_row(row):
        return " | ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)).rstrip()

    lines = [
        fmt_row(headers),
        "-+-".join("-" * w for w in widths),
    ]

    for row in rows:
        lines.append(fmt_row(row))

    return "\n".join(lines)
