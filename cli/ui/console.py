"""
cli/ui/console.py - Rich 콘솔 및 로깅 설정

프로세스 전역 로깅 설정은 여기서만 합니다. ecs_sd 패키지는
logging.getLogger(__name__) 또는 주입된 logger만 사용합니다.
"""

import logging
import platform

from rich.console import Console
from rich.logging import RichHandler

# 라이브러리 노이즈 로그 제한
NOISY_LOGGERS = (
    "botocore",
    "boto3",
    "urllib3",
    "uvicorn.error",
)


def get_console() -> Console:
    """로그 출력용 Rich Console (stderr) 생성"""
    is_windows = platform.system().lower() == "windows"

    return Console(
        stderr=True,
        color_system="auto",
        highlight=True,
        soft_wrap=True,
        markup=False,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스
console = get_console()


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """루트 logger에 Rich 핸들러 설정

    여러 번 호출해도 핸들러가 중복 등록되지 않습니다.

    Args:
        level: 로그 레벨 (logging.DEBUG 등)

    Returns:
        설정된 루트 logger
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(level)

    noisy_level = max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return root
