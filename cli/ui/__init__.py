# cli/ui - 콘솔 출력 / 로깅 설정 (rich)
from .console import configure_logging, console, get_console

__all__ = [
    "configure_logging",
    "console",
    "get_console",
]
