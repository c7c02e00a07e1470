"""
az_registry
-----------

settings 파일에 Container Registry 자격 증명을 덧붙이는 모듈.

'### Secrets ###' 구분자는 registry 가 없어도 항상 기록한다.
static web app 토큰, connection string 등 다른 secret 은 아직 다루지 않는다.
"""

from __future__ import annotations

import os
from typing import Iterable, List

from .az_client import REGISTRY_PASSWORD_QUERY, REGISTRY_USERNAME_QUERY, ProviderClient
from .config import InfraConfig
from .errors import SettingsFileError
from .logging_utils import get_logger
from .settings_file import OutputEntry, append_lines, shell_quote, sourced_values


logger = get_logger(__name__)


SECRETS_SEPARATOR = "### Secrets ###"
REGISTRY_NAME_KEY = "registry_name"


def append_secrets(cfg: InfraConfig, client: ProviderClient, entries: Iterable[OutputEntry]) -> List[str]:
    """
    방금 기록한 settings 파일의 entries 에서 registry_name 을 찾고,
    있으면 username/password 를 조회해 Secrets 구간에 추가한다.

    Returns:
        추가한 secret 키 목록
    """
    identity = cfg.identity
    env_file = cfg.env_file_path
    if not os.path.exists(env_file):
        raise SettingsFileError(env_file, FileNotFoundError(env_file))
    settings = sourced_values(entries)

    logger.info(
        "환경 '%s' (프로젝트 '%s') 의 secret 을 조회합니다.",
        identity.environment,
        identity.project_name,
    )

    lines: List[str] = ["", SECRETS_SEPARATOR, ""]
    added: List[str] = []

    registry_name = settings.get(REGISTRY_NAME_KEY, "").strip()
    if registry_name:
        username = client.get_registry_credential(registry_name, REGISTRY_USERNAME_QUERY)
        password = client.get_registry_credential(registry_name, REGISTRY_PASSWORD_QUERY)
        lines.append(f"registry_username={shell_quote(username)}")
        lines.append(f"registry_password={shell_quote(password)}")
        added.extend(["registry_username", "registry_password"])
    else:
        logger.debug("%s 이(가) 없어 registry 자격 증명 조회를 건너뜁니다.", REGISTRY_NAME_KEY)

    append_lines(env_file, lines)

    logger.info("환경 '%s' secret 을 '%s' 에 저장했습니다.", identity.environment, env_file)
    return added
