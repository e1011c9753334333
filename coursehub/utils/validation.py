import math

from flask import request

from ..errors import ValidationError

# largest value an Integer column holds on every backend we run on
MAX_INT = 2 ** 31 - 1


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and -MAX_INT <= value <= MAX_INT


def is_number(value) -> bool:
    """Finite JSON number small enough to store; NaN, Infinity and huge ints are not."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return is_int(value)
    return isinstance(value, float) and math.isfinite(value) and abs(value) <= MAX_INT


def require_int(data, name):
    raw = data.get(name)
    if raw is None:
        raise ValidationError(f"'{name}' is required")
    if isinstance(raw, str) and raw.isascii() and raw.isdigit():
        raw = int(raw)
    if not is_int(raw):
        raise ValidationError(f"'{name}' must be an integer")
    return raw


def optional_number(data, name, default=0, min_value=None):
    raw = data.get(name)
    if raw is None:
        return default
    if not is_number(raw):
        raise ValidationError(f"'{name}' must be a number")
    if min_value is not None and raw < min_value:
        raise ValidationError(f"'{name}' must be >= {min_value}")
    return raw


def optional_bool(data, name, default=None):
    raw = data.get(name, default)
    if raw is not None and not isinstance(raw, bool):
        raise ValidationError(f"'{name}' must be a boolean")
    return raw


def required_text(data, name, min_length=1):
    value = (data.get(name) or "")
    if not isinstance(value, str):
        raise ValidationError(f"'{name}' must be a string")
    value = value.strip()
    if len(value) < min_length:
        raise ValidationError(f"'{name}' is required")
    return value


def parse_int_arg(name, default, min_value=None, max_value=MAX_INT):
    """Read an integer query-string parameter."""
    raw = request.args.get(name, default)
    try:
        v = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"param '{name}' must be an integer")
    if min_value is not None and v < min_value:
        raise ValidationError(f"param '{name}' < {min_value}")
    if max_value is not None and v > max_value:
        raise ValidationError(f"param '{name}' > {max_value}")
    return v
