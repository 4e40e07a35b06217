import math
import re
from typing import Any, Optional

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_leading_int(value: Any) -> Optional[int]:
    """
    문자열 앞부분의 정수만 읽어 반환합니다.

    "12.5abc" -> 12, " 7층" -> 7, "abc" -> None
    숫자 타입은 정수 부분만 취합니다. bool은 숫자로 보지 않습니다.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value)
    if not isinstance(value, str):
        return None
    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_leading_float(value: Any) -> Optional[float]:
    """
    문자열 앞부분의 실수만 읽어 반환합니다.

    "84.99㎡" -> 84.99, "120" -> 120.0, "" -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if not isinstance(value, str):
        return None
    match = _LEADING_FLOAT_RE.match(value)
    if not match:
        return None
    return float(match.group(1))


def is_number(value: Any) -> bool:
    """int/float 이면서 유한한 값인지 확인 (bool 제외)"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and not math.isfinite(value))
