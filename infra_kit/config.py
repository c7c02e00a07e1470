from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .errors import MissingArgumentError, SettingsFileError


SETTINGS_FILE = ".settings"

DEFAULT_ENVIRONMENT = "prod"
DEFAULT_LOCATION = "eastus2"
DEFAULT_TEMPLATE_FILE = os.path.join("infra", "main.bicep")
DEFAULT_MANAGED_BY = "blue"

# .settings 에서 인식하는 키
SETTINGS_KEYS = ("project_name", "environment", "location")


def load_settings_defaults(base_dir: str = ".",
                           filename: str = SETTINGS_FILE) -> Dict[str, str]:
    """
    base_dir 의 .settings 파일에서 project_name/environment/location 기본값을 읽는다.
    os.environ 은 건드리지 않는다. 파일이 없으면 빈 dict.
    """
    path = os.path.join(base_dir, filename)
    if not os.path.exists(path):
        return {}

    try:
        raw = dotenv_values(dotenv_path=path, interpolate=False)
    except OSError as e:
        raise SettingsFileError(path, e) from e

    values: Dict[str, str] = {}
    for key in SETTINGS_KEYS:
        value = raw.get(key)
        # 값이 없는 키(None)나 빈 문자열은 설정되지 않은 것으로 본다.
        if value:
            values[key] = value
    return values


@dataclass(frozen=True)
class EnvironmentIdentity:
    project_name: str
    environment: str = DEFAULT_ENVIRONMENT
    location: str = DEFAULT_LOCATION

    @property
    def resource_group_name(self) -> str:
        return f"rg-{self.project_name}-{self.environment}"

    @property
    def deployment_name(self) -> str:
        return f"deployment-{self.project_name}-{self.environment}-{self.location}"

    @property
    def env_file_name(self) -> str:
        return f".{self.environment}.env"

    @property
    def tags(self) -> Dict[str, str]:
        return {"project": self.project_name, "environment": self.environment}


@dataclass(frozen=True)
class InfraConfig:
    identity: EnvironmentIdentity
    base_dir: str = "."
    template_file: str = DEFAULT_TEMPLATE_FILE
    managed_by: str = DEFAULT_MANAGED_BY

    @property
    def env_file_path(self) -> str:
        return os.path.join(self.base_dir, self.identity.env_file_name)

    @property
    def template_path(self) -> str:
        if os.path.isabs(self.template_file):
            return self.template_file
        return os.path.join(self.base_dir, self.template_file)

    @property
    def resource_group_tags(self) -> Dict[str, str]:
        tags = dict(self.identity.tags)
        tags["managedBy"] = self.managed_by
        return tags


def resolve_config(
    base_dir: str = ".",
    project_name: Optional[str] = None,
    environment: Optional[str] = None,
    location: Optional[str] = None,
    template_file: Optional[str] = None,
) -> InfraConfig:
    """
    내장 기본값 < .settings < CLI 인자 순으로 설정을 합쳐 InfraConfig 를 만든다.

    프로젝트 이름은 기본값이 없으므로 어디에도 없으면 MissingArgumentError.
    """
    persisted = load_settings_defaults(base_dir)

    def pick(cli_value: Optional[str], key: str, default: str = "") -> str:
        if cli_value:
            return cli_value
        return persisted.get(key, default)

    resolved_project = pick(project_name, "project_name")
    if not resolved_project:
        raise MissingArgumentError("project name")

    identity = EnvironmentIdentity(
        project_name=resolved_project,
        environment=pick(environment, "environment", DEFAULT_ENVIRONMENT),
        location=pick(location, "location", DEFAULT_LOCATION),
    )
    return InfraConfig(
        identity=identity,
        base_dir=base_dir,
        template_file=template_file or DEFAULT_TEMPLATE_FILE,
    )
