"""Address and port checks applied before a relay is admitted."""

import math
import re


_OCTET_RE = re.compile(r"0|[1-9][0-9]{0,2}")
_PORT_STR_RE = re.compile(r"[0-9]+(\.0+)?")


def validate_address(address) -> bool:
    """Return True if *address* is a dotted-quad IPv4 string.

    Each of the four segments must be ASCII digits without a leading zero
    and must parse to a value in [0, 255].
    """
    if not isinstance(address, str):
        return False
    parts = address.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not _OCTET_RE.fullmatch(part):
            return False
        if int(part) > 255:
            return False
    return True


def normalize_port(port) -> int:
    """Coerce *port* to an int in [1, 65535] or raise ValueError.

    Accepts ints, integral floats and plain decimal strings, so ``8080``,
    ``8080.0`` and ``"8080"`` all normalise to ``8080``.
    """
    if isinstance(port, bool):
        raise ValueError(f"invalid port: {port!r}")
    if isinstance(port, int):
        value = port
    elif isinstance(port, str):
        if not _PORT_STR_RE.fullmatch(port):
            raise ValueError(f"invalid port: {port!r}")
        value = int(port.split(".")[0])
    elif isinstance(port, float):
        number = port
        if not math.isfinite(number) or not number.is_integer():
            raise ValueError(f"invalid port: {port!r}")
        value = int(number)
    else:
        raise ValueError(f"invalid port: {port!r}")

    if not 1 <= value <= 65535:
        raise ValueError(f"port out of range: {port!r}")
    return value


def validate_port(port) -> bool:
    """Return True if *port* coerces to an integer in [1, 65535]."""
    try:
        normalize_port(port)
    except ValueError:
        return False
    return True
