from __future__ import annotations

from typing import Callable, Dict

from . import az_registry, settings_file
from .az_client import ProviderClient, deployment_parameters
from .config import InfraConfig
from .errors import UnknownCommandError
from .logging_utils import get_logger


logger = get_logger(__name__)

DEPLOYMENT_MODE = "Complete"


def _materialize(cfg: InfraConfig, client: ProviderClient, outputs: object) -> str:
    """outputs -> settings 파일 -> secret 추가까지 한 번에 처리한다."""
    entries = settings_file.parse_outputs(outputs)
    path = settings_file.write_settings(cfg.env_file_path, cfg.identity.environment, entries)
    az_registry.append_secrets(cfg, client, entries)
    return path


def create_environment(cfg: InfraConfig, client: ProviderClient) -> str:
    """
    리소스 그룹을 준비하고 템플릿을 Complete 모드로 배포한 뒤 settings 파일을 만든다.

    Returns:
        생성된 settings 파일 경로
    """
    identity = cfg.identity
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' 을(를) 준비합니다...",
        identity.project_name,
        identity.environment,
    )

    client.create_or_update_group(
        identity.resource_group_name,
        identity.location,
        cfg.resource_group_tags,
    )
    logger.info("리소스 그룹 '%s' 준비 완료.", identity.resource_group_name)

    logger.warning(
        "%s 모드로 배포합니다. 템플릿에 없는 리소스는 '%s' 에서 삭제됩니다.",
        DEPLOYMENT_MODE,
        identity.resource_group_name,
    )
    outputs = client.create_deployment(
        identity.resource_group_name,
        identity.deployment_name,
        cfg.template_path,
        deployment_parameters(identity.project_name, identity.environment, identity.location),
        mode=DEPLOYMENT_MODE,
    )

    path = _materialize(cfg, client, outputs)
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' 준비 완료.",
        identity.project_name,
        identity.environment,
    )
    return path


def delete_environment(cfg: InfraConfig, client: ProviderClient) -> None:
    """리소스 그룹을 통째로 삭제한다. (확인 프롬프트 없음)"""
    identity = cfg.identity
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' 을(를) 삭제합니다...",
        identity.project_name,
        identity.environment,
    )
    client.delete_group(identity.resource_group_name)
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' 삭제 완료.",
        identity.project_name,
        identity.environment,
    )


def cancel_deployment(cfg: InfraConfig, client: ProviderClient) -> None:
    identity = cfg.identity
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' 배포를 취소합니다...",
        identity.project_name,
        identity.environment,
    )
    client.cancel_deployment(identity.resource_group_name, identity.deployment_name)
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' 배포 취소 요청 완료.",
        identity.project_name,
        identity.environment,
    )


def retrieve_environment_settings(cfg: InfraConfig, client: ProviderClient) -> str:
    """
    이미 끝난 배포의 outputs 로 settings 파일을 다시 만든다. (재배포하지 않음)

    배포가 없으면 ResourceNotFoundError 가 그대로 올라가고 settings 파일은 건드리지 않는다.
    """
    identity = cfg.identity
    logger.info(
        "프로젝트 '%s' 의 환경 '%s' settings 를 가져옵니다...",
        identity.project_name,
        identity.environment,
    )
    outputs = client.show_deployment(identity.resource_group_name, identity.deployment_name)
    return _materialize(cfg, client, outputs)


COMMANDS: Dict[str, Callable[[InfraConfig, ProviderClient], object]] = {
    "create": create_environment,
    "delete": delete_environment,
    "cancel": cancel_deployment,
    "env": retrieve_environment_settings,
}

def dispatch(command: str, cfg: InfraConfig, client: ProviderClient) -> object:
    """커맨드 이름을 해당 동작에 매핑해 실행한다."""
    try:
        handler = COMMANDS[command]
    except KeyError:
        raise UnknownCommandError(command) from None
    return handler(cfg, client)
