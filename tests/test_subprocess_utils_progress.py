from __future__ import annotations

import io
import sys

import pytest

from infra_kit.errors import CommandNotFoundError, RemoteCallError
from infra_kit.subprocess_utils import configure_cli_progress, effective_progress_settings, run_command


class _FakeTty(io.StringIO):
    def isatty(self) -> bool:  # type: ignore[override]
        return True


_BRAILLE_FRAMES = {"⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"}


@pytest.fixture(autouse=True)
def _reset_progress_defaults():  # noqa: ANN202
    yield
    configure_cli_progress(show_progress=True, idle_seconds=2.0, style="braille", interval=0.12)


def test_capture_mode_shows_progress_when_idle(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    az deployment 처럼 오래 조용한 명령이면 stderr 에 스피너가 그려져야 한다.
    """
    fake_err = _FakeTty()
    monkeypatch.setattr(sys, "stderr", fake_err)
    configure_cli_progress(idle_seconds=0.05, interval=0.02)

    result = run_command(
        [sys.executable, "-c", "import time; time.sleep(0.3); print('done')"],
        spinner_message="Test capture progress",
        show_progress=True,
    )

    assert result.returncode == 0
    assert result.stdout.strip() == "done"
    stderr_text = fake_err.getvalue()
    assert any(ch in stderr_text for ch in _BRAILLE_FRAMES), stderr_text
    assert "Test capture progress" in stderr_text


def test_no_progress_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_err = _FakeTty()
    monkeypatch.setattr(sys, "stderr", fake_err)
    configure_cli_progress(show_progress=False, idle_seconds=0.0, interval=0.02)

    run_command([sys.executable, "-c", "import time; time.sleep(0.1)"])

    assert fake_err.getvalue() == ""


def test_nonzero_exit_raises_remote_call_error_with_stderr() -> None:
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('ERROR: boom'); sys.exit(3)"]

    with pytest.raises(RemoteCallError) as excinfo:
        run_command(cmd, show_progress=False)

    assert excinfo.value.returncode == 3
    assert excinfo.value.exit_code == 3
    assert "ERROR: boom" in str(excinfo.value)


def test_missing_executable_raises_command_not_found() -> None:
    with pytest.raises(CommandNotFoundError) as excinfo:
        run_command(["definitely-not-a-real-az-binary"], show_progress=False)

    assert excinfo.value.exit_code == 127


def test_timeout_is_reported_as_remote_call_error() -> None:
    with pytest.raises(RemoteCallError):
        run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2, show_progress=False)


def test_env_settings_override_module_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFRA_SHOW_PROGRESS", "false")
    monkeypatch.setenv("INFRA_PROGRESS_STYLE", "ascii")

    settings = effective_progress_settings()
    assert settings.show is False
    assert settings.style == "ascii"

    # 호출 인자가 환경변수보다 우선한다.
    assert effective_progress_settings(show_progress=True).show is True
    assert effective_progress_settings(style="braille").style == "braille"
