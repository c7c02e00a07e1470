"""
infra_kit
---------

Azure 리소스 그룹 단위 인프라 배포용 CLI 패키지.
<project>/<environment>/<location> 이름 규칙으로 리소스 그룹과 배포를 만들고,
배포 outputs 와 registry 자격 증명을 .<environment>.env 파일로 내려받는 것을 목표로 한다.
"""

__all__ = [
    "config",
    "orchestrator",
]
