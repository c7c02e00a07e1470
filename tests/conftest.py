"""
pytest 설정:

로컬에 다른 버전의 infra_kit 이 설치되어 있어도 항상 현재 레포 소스를 대상으로
테스트하도록 repo root 를 sys.path 최상단에 고정한다.

az 를 실제로 호출하지 않도록 ProviderClient 를 흉내내는 FakeProvider 도 여기서 제공한다.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


class FakeProvider:
    """호출 기록만 남기고, 미리 넣어둔 outputs / 자격 증명 / 예외를 돌려준다."""

    def __init__(
        self,
        outputs: Any = None,
        credentials: Optional[Dict[str, str]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.outputs = outputs
        self.credentials = credentials or {}
        self.errors = errors or {}
        self.calls: List[Tuple[str, tuple]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]

    @property
    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def create_or_update_group(self, name: str, location: str, tags: Mapping[str, str]) -> None:
        self._record("create_or_update_group", name, location, dict(tags))

    def create_deployment(self, resource_group, name, template_file, parameters, mode="Complete"):  # noqa: ANN001, ANN201
        self._record("create_deployment", resource_group, name, template_file, dict(parameters), mode)
        return self.outputs

    def show_deployment(self, resource_group: str, name: str) -> Any:
        self._record("show_deployment", resource_group, name)
        return self.outputs

    def cancel_deployment(self, resource_group: str, name: str) -> None:
        self._record("cancel_deployment", resource_group, name)

    def delete_group(self, name: str) -> None:
        self._record("delete_group", name)

    def get_registry_credential(self, registry_name: str, query: str) -> str:
        self._record("get_registry_credential", registry_name, query)
        return self.credentials[query]


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider(
        outputs={
            "registryName": {"type": "String", "value": "demoregistry"},
            "subnetIds": {"type": "Array", "value": ["a", "b"]},
        },
        credentials={
            "username": "demoregistry",
            "passwords[0].value": "s3cr3t'pw",
        },
    )
