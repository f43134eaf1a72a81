from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import AnyUrl, TypeAdapter, ValidationError

from portfolio_labs.core.errors import (
    InvalidParameterError,
    InvalidURLFormatError,
    MissingParameterError,
)

E = TypeVar("E", bound=Enum)

_url_adapter = TypeAdapter(AnyUrl)


def require_fields(payload: Dict[str, Any], *names: str):
    """检查必需字段，缺失时抛出 MissingParameterError"""
    missing = [name for name in names if payload.get(name) in (None, "")]
    if missing:
        raise MissingParameterError(
            f"Missing required parameters: {' and '.join(missing)}"
        )


def validate_url(value: Any) -> str:
    """校验 URL 必须带协议与主机"""
    if not isinstance(value, str):
        raise InvalidURLFormatError()
    try:
        url = _url_adapter.validate_python(value.strip())
    except ValidationError:
        raise InvalidURLFormatError()
    if not url.host:
        raise InvalidURLFormatError()
    return value.strip()


def coerce_positive_int(value: Any, default: int) -> int:
    """宽松解析正整数，非法或非正数时使用默认值"""
    if isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number if number > 0 else default


def parse_enum(enum_cls: Type[E], value: Any, field: str, default: Optional[E] = None) -> E:
    """按值解析闭合枚举；枚举可通过 _missing_ 提供别名"""
    if value in (None, ""):
        if default is not None:
            return default
        raise MissingParameterError(f"Missing required parameters: {field}")
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidParameterError(
            f"Invalid {field}: {value!r} (expected one of: {allowed})"
        )
