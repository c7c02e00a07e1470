"""
settings_file
-------------

배포 outputs 를 셸에서 source 할 수 있는 .<environment>.env 파일로 기록하는 모듈.

파일 형식:

    # Generated settings for environment 'prod'
    # Do not edit this file manually!

    registry_name=myregistry
    subnet_ids=(a b)

이후 az_registry.append_secrets 가 '### Secrets ###' 구간을 덧붙인다.
"""

from __future__ import annotations

import enum
import json
import os
import shlex
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from .casing import to_lower_snake_case
from .errors import MalformedOutputError, SettingsFileError
from .logging_utils import get_logger


logger = get_logger(__name__)


HEADER_TEMPLATE = "# Generated settings for environment '{environment}'"
HEADER_WARNING = "# Do not edit this file manually!"


class OutputType(enum.Enum):
    SCALAR = "scalar"
    ARRAY = "array"

    @classmethod
    def from_provider(cls, raw_type: str) -> "OutputType":
        # ARM 은 "Array" / "String" / "Int" / "Bool" / "Object" / "SecureString" 등을 돌려준다.
        return cls.ARRAY if raw_type.lower() == "array" else cls.SCALAR


@dataclass(frozen=True)
class OutputEntry:
    key: str
    value: Any
    type: OutputType = OutputType.SCALAR

    @property
    def name(self) -> str:
        return to_lower_snake_case(self.key)


def parse_outputs(payload: Any) -> List[OutputEntry]:
    """
    az 의 properties.outputs ({key: {"type": ..., "value": ...}}) 를 OutputEntry 목록으로 바꾼다.

    - payload 가 JSON 문자열이면 먼저 파싱한다.
    - None 이나 빈 값은 output 이 없는 배포로 보고 빈 목록을 돌려준다.
    - 항목 하나라도 형식이 맞지 않으면 전체를 MalformedOutputError 로 중단한다.
    - 순서는 provider 가 돌려준 순서를 그대로 따른다.
    - value 가 없는 항목(secure output)은 None 으로 두고 파일에는 null 로 쓴다.
    """
    if isinstance(payload, str):
        if not payload.strip():
            return []
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedOutputError(f"배포 outputs 를 JSON 으로 해석할 수 없습니다: {e}") from e

    if not payload:
        return []

    if not isinstance(payload, Mapping):
        raise MalformedOutputError(
            f"배포 outputs 는 객체여야 합니다 (받은 타입: {type(payload).__name__})"
        )

    entries: List[OutputEntry] = []
    for key, item in payload.items():
        if not isinstance(item, Mapping):
            raise MalformedOutputError(f"output '{key}' 는 {{type, value}} 객체여야 합니다: {item!r}")

        # SecureString / SecureObject output 은 value 없이 type 만 온다.
        raw_type = item.get("type", "String")
        if not isinstance(raw_type, str):
            raise MalformedOutputError(f"output '{key}' 의 type 이 문자열이 아닙니다: {raw_type!r}")

        output_type = OutputType.from_provider(raw_type)
        value = item.get("value")
        if output_type is OutputType.ARRAY and not isinstance(value, list):
            raise MalformedOutputError(f"output '{key}' 는 Array 인데 값이 배열이 아닙니다: {value!r}")

        entries.append(OutputEntry(key=str(key), value=value, type=output_type))

    return entries


def shell_quote(value: Any) -> str:
    """
    JSON 스칼라 값을 셸 안전한 토큰으로 바꾼다.

    문자열은 shlex.quote, bool 은 true/false, null 은 null, 숫자는 JSON 표기.
    객체/배열은 한 토큰으로 표현할 수 없으므로 MalformedOutputError.
    """
    if isinstance(value, str):
        return shlex.quote(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return shlex.quote(json.dumps(value))
    raise MalformedOutputError(f"셸 값으로 표현할 수 없는 output 값입니다: {value!r}")


def format_entry(entry: OutputEntry) -> str:
    if entry.type is OutputType.ARRAY:
        items = " ".join(shell_quote(v) for v in entry.value)
        return f"{entry.name}=({items})"
    return f"{entry.name}={shell_quote(entry.value)}"


def render_settings(environment: str, entries: Iterable[OutputEntry]) -> str:
    """
    헤더 + 항목별 대입문을 한 번에 만든다.
    하나라도 실패하면 예외가 나므로 파일에 일부만 쓰이는 일이 없다.
    """
    lines = [
        HEADER_TEMPLATE.format(environment=environment),
        HEADER_WARNING,
        "",
    ]
    lines.extend(format_entry(entry) for entry in entries)
    return "\n".join(lines) + "\n"


def write_settings(path: str, environment: str, entries: Iterable[OutputEntry]) -> str:
    """
    settings 파일을 처음부터 다시 쓴다. (기존 내용은 버린다)

    임시 파일에 기록한 뒤 os.replace 로 바꿔치기하여
    중간에 실패해도 반쯤 쓰인 파일이 남지 않게 한다.
    """
    content = render_settings(environment, entries)
    directory = os.path.dirname(os.path.abspath(path))

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=directory,
            prefix=".settings-",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(content)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise SettingsFileError(path, e) from e

    logger.info("환경 '%s' settings 를 '%s' 에 저장했습니다.", environment, path)
    return path


def append_lines(path: str, lines: Iterable[str]) -> None:
    try:
        with open(path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
    except OSError as e:
        raise SettingsFileError(path, e) from e


def sourced_values(entries: Iterable[OutputEntry]) -> Dict[str, str]:
    """
    settings 파일을 셸에서 source 했을 때 각 스칼라 변수가 갖게 될 값.

    파일을 다시 파싱하지 않고 기록에 쓴 entries 로부터 바로 계산한다.
    같은 이름이 여러 번 나오면 셸처럼 마지막 대입이 이긴다.
    배열과 value 가 없는 항목은 포함하지 않는다.
    """
    values: Dict[str, str] = {}
    for entry in entries:
        if entry.type is OutputType.ARRAY or entry.value is None:
            values.pop(entry.name, None)
            continue
        if isinstance(entry.value, str):
            values[entry.name] = entry.value
        else:
            values[entry.name] = shell_quote(entry.value)
    return values
