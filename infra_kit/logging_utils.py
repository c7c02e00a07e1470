import logging
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(verbosity: int = 0) -> None:
    """
    -v 가 하나라도 있으면 DEBUG, 아니면 INFO.
    settings 파일 경로 등 진행 로그는 stdout 으로 내보낸다.
    """
    level = logging.DEBUG if verbosity >= 1 else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stdout,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
