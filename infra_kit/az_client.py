"""
az_client
---------

Azure 관리 API 호출 계층.

orchestrator 는 ProviderClient 프로토콜에만 의존하고,
실제 구현(AzCliClient)은 az CLI 를 subprocess 로 호출한 뒤 JSON 출력을 해석한다.
테스트에서는 같은 프로토콜을 만족하는 가짜 클라이언트를 넣어 쓴다.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .errors import MalformedOutputError, RemoteCallError, ResourceNotFoundError
from .logging_utils import get_logger
from .subprocess_utils import run_command


logger = get_logger(__name__)


# az 가 stderr 에 남기는 "없음" 계열 에러 코드
NOT_FOUND_MARKERS = (
    "ResourceNotFound",
    "ResourceGroupNotFound",
    "DeploymentNotFound",
    "could not be found",
)

REGISTRY_USERNAME_QUERY = "username"
REGISTRY_PASSWORD_QUERY = "passwords[0].value"


class ProviderClient(Protocol):
    def create_or_update_group(self, name: str, location: str, tags: Mapping[str, str]) -> None:
        ...

    def create_deployment(
        self,
        resource_group: str,
        name: str,
        template_file: str,
        parameters: Mapping[str, str],
        mode: str = "Complete",
    ) -> Any:
        ...

    def show_deployment(self, resource_group: str, name: str) -> Any:
        ...

    def cancel_deployment(self, resource_group: str, name: str) -> None:
        ...

    def delete_group(self, name: str) -> None:
        ...

    def get_registry_credential(self, registry_name: str, query: str) -> str:
        ...


def _is_not_found(error: RemoteCallError) -> bool:
    text = f"{error.stderr}\n{error.stdout}"
    return any(marker in text for marker in NOT_FOUND_MARKERS)


def _parse_json(stdout: str, cmd: List[str]) -> Any:
    text = stdout.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(
            f"az 출력이 JSON 이 아닙니다: {' '.join(cmd)} ({e})"
        ) from e


class AzCliClient:
    """
    az CLI 래퍼.

    - 명령 실패는 RemoteCallError 로, "없음" 응답은 ResourceNotFoundError 로 올린다.
    - 재시도는 하지 않는다.
    """

    def __init__(self, az_executable: str = "az", *, verbose: bool = False) -> None:
        self.az = az_executable
        self.verbose = verbose

    def _run(self, args: List[str], *, spinner_message: Optional[str] = None) -> str:
        cmd = [self.az, *args]
        try:
            result = run_command(cmd, spinner_message=spinner_message)
        except RemoteCallError as e:
            if _is_not_found(e):
                raise ResourceNotFoundError(cmd, e.returncode, stderr=e.stderr, stdout=e.stdout) from e
            raise
        if result.stderr.strip():
            # --verbose 일 때 az 는 진행 상황을 stderr 로 남긴다.
            logger.debug("az stderr: %s", result.stderr.strip())
        return result.stdout

    def create_or_update_group(self, name: str, location: str, tags: Mapping[str, str]) -> None:
        self._run(
            [
                "group",
                "create",
                "--name",
                name,
                "--location",
                location,
                "--tags",
                *[f"{k}={v}" for k, v in tags.items()],
                "--output",
                "none",
            ]
        )

    def create_deployment(
        self,
        resource_group: str,
        name: str,
        template_file: str,
        parameters: Mapping[str, str],
        mode: str = "Complete",
    ) -> Any:
        args = [
            "deployment",
            "group",
            "create",
            "--resource-group",
            resource_group,
            "--template-file",
            template_file,
            "--name",
            name,
            "--parameters",
            *[f"{k}={v}" for k, v in parameters.items()],
            "--query",
            "properties.outputs",
            "--mode",
            mode,
            "--output",
            "json",
        ]
        if self.verbose:
            args.append("--verbose")
        stdout = self._run(args, spinner_message=f"배포 진행 중: {name}")
        return _parse_json(stdout, [self.az, *args])

    def show_deployment(self, resource_group: str, name: str) -> Any:
        args = [
            "deployment",
            "group",
            "show",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--query",
            "properties.outputs",
            "--output",
            "json",
        ]
        stdout = self._run(args)
        return _parse_json(stdout, [self.az, *args])

    def cancel_deployment(self, resource_group: str, name: str) -> None:
        args = [
            "deployment",
            "group",
            "cancel",
            "--resource-group",
            resource_group,
            "--name",
            name,
        ]
        if self.verbose:
            args.append("--verbose")
        self._run(args)

    def delete_group(self, name: str) -> None:
        self._run(["group", "delete", "--yes", "--name", name], spinner_message=f"리소스 그룹 삭제 중: {name}")

    def get_registry_credential(self, registry_name: str, query: str) -> str:
        stdout = self._run(
            [
                "acr",
                "credential",
                "show",
                "--name",
                registry_name,
                "--query",
                query,
                "--output",
                "tsv",
            ]
        )
        return stdout.strip()


def deployment_parameters(project_name: str, environment: str, location: str) -> Dict[str, str]:
    """main.bicep 이 받는 파라미터 이름으로 매핑한다."""
    return {
        "projectName": project_name,
        "environment": environment,
        "location": location,
    }
