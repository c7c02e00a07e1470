from __future__ import annotations

import contextlib
import os
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from textwrap import shorten
from typing import Sequence

from .errors import CommandNotFoundError, RemoteCallError
from .logging_utils import get_logger


logger = get_logger(__name__)


# -----------------------------
# 진행 표시(spinner) 전역 설정
# -----------------------------
_progress_lock = threading.Lock()
_show_progress: bool = True
_progress_idle_seconds: float = 2.0
_progress_style: str = "braille"  # braille | ascii
_progress_interval: float = 0.12

_BRAILLE_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
_ASCII_FRAMES = ["|", "/", "-", "\\"]


def configure_cli_progress(
    *,
    show_progress: bool | None = None,
    idle_seconds: float | None = None,
    style: str | None = None,
    interval: float | None = None,
) -> None:
    """
    CLI 엔트리포인트에서 --no-progress 등을 한 번 반영하기 위한 전역 설정.
    """
    global _show_progress, _progress_idle_seconds, _progress_style, _progress_interval
    with _progress_lock:
        if show_progress is not None:
            _show_progress = bool(show_progress)
        if idle_seconds is not None:
            _progress_idle_seconds = float(idle_seconds)
        if style is not None:
            _progress_style = str(style)
        if interval is not None:
            _progress_interval = float(interval)


def _env_bool(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class ProgressSettings:
    show: bool
    idle_seconds: float
    style: str
    interval: float


def effective_progress_settings(
    *,
    show_progress: bool | None = None,
    idle_seconds: float | None = None,
    style: str | None = None,
    interval: float | None = None,
) -> ProgressSettings:
    """
    우선순위: 호출 인자 > INFRA_* 환경변수 > configure_cli_progress 전역값
    """
    with _progress_lock:
        defaults = (_show_progress, _progress_idle_seconds, _progress_style, _progress_interval)

    env_values = (
        _env_bool("INFRA_SHOW_PROGRESS"),
        _env_float("INFRA_PROGRESS_IDLE_SECONDS"),
        os.getenv("INFRA_PROGRESS_STYLE") or None,
        _env_float("INFRA_PROGRESS_INTERVAL_SECONDS"),
    )
    call_values = (show_progress, idle_seconds, style, interval)

    merged = []
    for call_value, env_value, default in zip(call_values, env_values, defaults):
        if call_value is not None:
            merged.append(call_value)
        elif env_value is not None:
            merged.append(env_value)
        else:
            merged.append(default)

    show, idle, style_value, interval_value = merged
    return ProgressSettings(
        show=bool(show),
        idle_seconds=max(float(idle), 0.0),
        style=str(style_value),
        interval=max(float(interval_value), 0.02),
    )


def _is_tty(stream) -> bool:  # noqa: ANN001
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False


def _format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:0.1f}s"
    minutes, sec = divmod(int(seconds), 60)
    return f"{minutes}m{sec:02d}s"


class IdleProgressIndicator:
    """
    명령 시작 후 idle_seconds 가 지나면 stderr 한 줄에 스피너 + 경과시간을 그린다.
    az deployment group create 처럼 수 분씩 출력이 없는 호출용.
    """

    def __init__(
        self,
        message: str,
        *,
        stream=None,  # noqa: ANN001
        style: str = "braille",
        interval: float = 0.12,
        idle_seconds: float = 2.0,
    ) -> None:
        self._message = message
        self._stream = stream if stream is not None else sys.stderr
        self._frames = _ASCII_FRAMES if style.strip().lower() == "ascii" else _BRAILLE_FRAMES
        self._interval = interval
        self._idle_seconds = idle_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._width = 0

    def _render(self, idx: int, elapsed: float) -> None:
        frame = self._frames[idx % len(self._frames)]
        text = f"{frame} {self._message}  {_format_elapsed(elapsed)}"
        self._width = max(self._width, len(text))
        self._stream.write("\r" + text)
        self._stream.flush()

    def _clear(self) -> None:
        if self._width:
            self._stream.write("\r" + " " * self._width + "\r")
            self._stream.flush()
            self._width = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        started = time.monotonic()

        def _run() -> None:
            idx = 0
            while not self._stop.is_set():
                now = time.monotonic()
                idle = now - started
                if idle < self._idle_seconds:
                    self._stop.wait(min(self._interval, self._idle_seconds - idle))
                    continue
                self._render(idx, now - started)
                idx += 1
                self._stop.wait(self._interval)

        self._thread = threading.Thread(target=_run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self._clear()

    def __enter__(self) -> "IdleProgressIndicator":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.stop()


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def run_command(
    cmd: Sequence[str],
    *,
    timeout: float | None = None,
    spinner_message: str | None = None,
    show_progress: bool | None = None,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    stdout/stderr 를 캡처하고, 0 이 아닌 종료 코드는 RemoteCallError 로 올린다.
    timeout 기본값은 None(무제한): az 자체의 전송 타임아웃을 그대로 따른다.
    """
    logger.info("명령 실행: %s", " ".join(cmd))

    settings = effective_progress_settings(show_progress=show_progress)
    indicator: IdleProgressIndicator | None = None
    if settings.show and _is_tty(sys.stderr):
        indicator = IdleProgressIndicator(
            spinner_message or shorten(" ".join(cmd), width=72, placeholder="…"),
            stream=sys.stderr,
            style=settings.style,
            interval=settings.interval,
            idle_seconds=settings.idle_seconds,
        )

    progress = indicator if indicator is not None else contextlib.nullcontext()
    try:
        with progress:
            result = subprocess.run(  # noqa: S603
                list(cmd),
                check=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
    except FileNotFoundError as e:
        raise CommandNotFoundError(cmd) from e
    except subprocess.TimeoutExpired as e:
        raise RemoteCallError(
            cmd,
            1,
            message=f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}",
        ) from e
    except subprocess.CalledProcessError as e:
        raise RemoteCallError(
            cmd,
            e.returncode,
            stderr=e.stderr or "",
            stdout=e.stdout or "",
        ) from e

    if result.stdout:
        logger.debug("명령 stdout: %s", shorten(result.stdout.strip(), width=2000))
    if result.stderr:
        logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))
    return RunResult(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")
