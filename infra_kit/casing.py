"""
casing
------

배포 output 키(camelCase / PascalCase / kebab 등)를 lower_snake_case 로 바꾼다.

규칙:
  1. 소문자/숫자 바로 뒤에 대문자가 오면 그 사이에서 토큰을 나눈다.
     대문자가 연속되면 하나의 토큰으로 본다. (myHTTPServer -> my / HTTPServer)
  2. 공백, '_', '-' 가 연속된 구간은 하나의 구분자로 접는다.
  3. 토큰을 '_' 로 잇고 전체를 소문자로 바꾼다.
"""

from __future__ import annotations

import string
from typing import List


_DELIMITERS = frozenset(" _-")
_LOWER_OR_DIGIT = frozenset(string.ascii_lowercase + string.digits)
_UPPER = frozenset(string.ascii_uppercase)


def tokenize(name: str) -> List[str]:
    """
    식별자를 토큰 목록으로 나눈다.

    앞/뒤 구분자는 빈 토큰으로 남기 때문에 "_id" 는 ["", "id"] 가 된다.
    """
    tokens: List[str] = [""]
    prev = None
    for ch in name:
        if ch in _DELIMITERS:
            if prev not in _DELIMITERS:
                tokens.append("")
        else:
            # 대문자 연속 구간은 나누지 않는다: myHTTPServer -> my_httpserver (my_http_server 아님)
            if ch in _UPPER and prev in _LOWER_OR_DIGIT:
                tokens.append("")
            tokens[-1] += ch
        prev = ch
    return tokens


def to_lower_snake_case(name: str) -> str:
    return "_".join(tokenize(name)).lower()
