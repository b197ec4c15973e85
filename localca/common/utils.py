# localca/common/utils.py
import datetime


def utcnow() -> datetime.datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def days_after(start: datetime.datetime, days: int) -> datetime.datetime:
    return start + datetime.timedelta(days=days)


def hex_serial(serial: int) -> str:
    """Format a serial number the way OpenSSL writes .srl files (uppercase, even length)."""
    s = format(serial, "X")
    if len(s) % 2:
        s = "0" + s
    return s


def colon_hex(data: bytes) -> str:
    """AB:CD:... rendering used for fingerprints in summaries."""
    return ":".join(f"{b:02X}" for b in data)
