"""
errors
------

infra_kit 전역에서 사용하는 예외 타입 모음.

모든 예외는 InfraError 를 상속하며, CLI 최상위 핸들러가
exit_code 를 그대로 프로세스 종료 코드로 사용한다.
"""

from __future__ import annotations

from typing import Sequence


class InfraError(Exception):
    """infra_kit 예외의 베이스 클래스."""

    exit_code: int = 1


class MissingArgumentError(InfraError):
    """필수 인자(프로젝트 이름 등)가 CLI 인자와 .settings 어디에도 없을 때."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} 이(가) 필요합니다.")
        self.name = name


class UnknownCommandError(InfraError):
    """create/delete/cancel/env 이외의 커맨드가 주어졌을 때."""

    def __init__(self, command: str) -> None:
        super().__init__(f"알 수 없는 커맨드입니다: '{command}'")
        self.command = command


class RemoteCallError(InfraError):
    """
    az CLI 호출 실패.

    az 가 돌려준 stderr 를 가공하지 않고 그대로 보존하며,
    exit_code 는 az 프로세스의 종료 코드를 따른다.
    """

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int,
        stderr: str = "",
        stdout: str = "",
        message: str | None = None,
    ) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        if message is None:
            message = f"명령 실행 실패: {' '.join(self.cmd)} (exit={returncode})"
            detail = stderr.strip() or stdout.strip()
            if detail:
                message += "\n" + detail
        super().__init__(message)

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode if self.returncode > 0 else 1


class ResourceNotFoundError(RemoteCallError):
    """리소스 그룹이나 배포가 존재하지 않는다고 az 가 응답한 경우."""


class CommandNotFoundError(RemoteCallError):
    """az 실행 파일을 찾을 수 없는 경우."""

    def __init__(self, cmd: Sequence[str]) -> None:
        super().__init__(
            cmd,
            127,
            message=(
                f"필요한 명령을 찾을 수 없습니다: {cmd[0]} "
                "(Azure CLI 가 설치되어 있는지 확인하세요)"
            ),
        )


class MalformedOutputError(InfraError):
    """배포 outputs 를 해석할 수 없을 때. 일부만 기록하지 않고 전체를 중단한다."""


class SettingsFileError(InfraError):
    """settings 파일 읽기/쓰기 실패."""

    def __init__(self, path: str, reason: OSError) -> None:
        super().__init__(f"settings 파일 처리 실패: {path} ({reason})")
        self.path = path
        self.reason = reason
