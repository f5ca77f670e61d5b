"""
Human-readable formatting helpers for log lines.
"""

_UNITS = ["B", "KiB", "MiB", "GiB", "TiB"]


def byte_format(num_bytes: float) -> str:
    """Format a byte count with a binary unit, e.g. ``1.0 KiB``."""
    value = float(num_bytes)
    for unit in _UNITS[:-1]:
        if abs(value) < 1024:
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {_UNITS[-1]}"


def parse_size(text: str) -> int:
    """Parse a payload size such as ``1024``, ``64KB`` or ``1MB`` into bytes."""
    value = text.strip().upper()
    multipliers = {
        "GB": 1024 ** 3,
        "MB": 1024 ** 2,
        "KB": 1024,
        "B": 1,
    }
    for suffix, multiplier in multipliers.items():
        if value.endswith(suffix):
            number = value[: -len(suffix)].strip()
            break
    else:
        number, multiplier = value, 1

    try:
        size = int(number) * multiplier
    except ValueError:
        raise ValueError(f"Invalid payload size: {text!r}")

    if size < 0:
        raise ValueError(f"Payload size must not be negative: {text!r}")
    return size
