import sys
from typing import List, NoReturn, Optional

import click

from . import orchestrator
from .az_client import AzCliClient
from .config import InfraConfig, resolve_config
from .errors import (
    InfraError,
    MalformedOutputError,
    MissingArgumentError,
    RemoteCallError,
    ResourceNotFoundError,
    UnknownCommandError,
)
from .logging_utils import setup_logging, get_logger
from .subprocess_utils import configure_cli_progress


logger = get_logger(__name__)


def handle_error(exc: InfraError) -> int:
    """
    예외를 stderr 메시지로 바꾸고 종료 코드를 돌려준다. (traceback 은 출력하지 않음)
    """
    if isinstance(exc, ResourceNotFoundError):
        click.echo(f"[ERROR] 대상을 찾을 수 없습니다: {exc}", err=True)
    elif isinstance(exc, RemoteCallError):
        click.echo(f"[ERROR] Azure 호출 실패: {exc}", err=True)
    elif isinstance(exc, MalformedOutputError):
        click.echo(f"[ERROR] 배포 outputs 해석 실패: {exc}", err=True)
        click.echo("settings 파일을 source 하기 전에 종료 코드를 확인하세요.", err=True)
    else:
        click.echo(f"[ERROR] {exc}", err=True)
    return exc.exit_code


def _usage_error(ctx: click.Context, exc: InfraError) -> NoReturn:
    """사용법을 먼저 출력하고 에러와 함께 종료한다."""
    root = ctx.find_root()
    click.echo(root.get_help())
    click.echo(f"[ERROR] {exc}", err=True)
    ctx.exit(exc.exit_code)


class _CommandGroup(click.Group):
    """등록되지 않은 커맨드는 click 기본(exit 2) 대신 사용법 + exit 1 로 처리한다."""

    def resolve_command(self, ctx: click.Context, args: List[str]):  # noqa: ANN201
        name = args[0] if args else ""
        if self.get_command(ctx, name) is None and not ctx.resilient_parsing:
            _usage_error(ctx, UnknownCommandError(name))
        return super().resolve_command(ctx, args)


@click.group(cls=_CommandGroup, invoke_without_command=True, no_args_is_help=False)
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help=".settings / 템플릿 / .<environment>.env 가 위치한 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올리고 az 호출에 --verbose 를 붙입니다.",
)
@click.option(
    "--no-progress",
    "no_progress",
    is_flag=True,
    help="오래 걸리는 az 호출 중 진행 표시(스피너)를 끕니다.",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int, no_progress: bool) -> None:
    """
    프로젝트의 Azure 인프라(리소스 그룹 + 배포)를 관리하는 CLI

    \b
    사용법: infra-kit <command> <project_name> [environment] [location]
    """
    setup_logging(verbose)
    if no_progress:
        configure_cli_progress(show_progress=False)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        _usage_error(ctx, UnknownCommandError(""))


def _load_config_from_ctx(
    ctx: click.Context,
    project_name: Optional[str],
    environment: Optional[str],
    location: Optional[str],
    template_file: Optional[str] = None,
) -> InfraConfig:
    base_dir: str = ctx.obj["chdir"]
    try:
        cfg = resolve_config(
            base_dir,
            project_name=project_name,
            environment=environment,
            location=location,
            template_file=template_file,
        )
    except MissingArgumentError as e:
        _usage_error(ctx, e)
    logger.debug("Config resolved: %s", cfg)
    return cfg


def _run(ctx: click.Context, command: str, cfg: InfraConfig) -> None:
    client = AzCliClient(verbose=ctx.obj["verbose"] > 0)
    try:
        orchestrator.dispatch(command, cfg, client)
    except InfraError as e:
        logger.debug("'%s' 실패", command, exc_info=True)
        sys.exit(handle_error(e))
    except Exception as e:  # noqa: BLE001
        logger.exception("'%s' 실행 중 예기치 못한 오류 발생", command)
        click.echo(f"[ERROR] {command} 실패: {e}", err=True)
        sys.exit(1)


_project_argument = click.argument("project_name", required=False)
_environment_argument = click.argument("environment", required=False)
_location_argument = click.argument("location", required=False)


@main.command()
@_project_argument
@_environment_argument
@_location_argument
@click.option(
    "--template-file",
    "template_file",
    type=str,
    default=None,
    help="배포할 Bicep 템플릿 경로 (기본: infra/main.bicep, --chdir 기준 상대 경로)",
)
@click.pass_context
def create(
    ctx: click.Context,
    project_name: Optional[str],
    environment: Optional[str],
    location: Optional[str],
    template_file: Optional[str],
) -> None:
    """
    인프라를 생성/갱신합니다.

    Complete 모드로 배포하므로 템플릿에 없는 리소스는 리소스 그룹에서 삭제됩니다.
    """
    cfg = _load_config_from_ctx(ctx, project_name, environment, location, template_file)
    _run(ctx, "create", cfg)


@main.command()
@_project_argument
@_environment_argument
@_location_argument
@click.pass_context
def delete(
    ctx: click.Context,
    project_name: Optional[str],
    environment: Optional[str],
    location: Optional[str],
) -> None:
    """리소스 그룹째로 인프라를 삭제합니다. (확인 없이 진행)"""
    cfg = _load_config_from_ctx(ctx, project_name, environment, location)
    _run(ctx, "delete", cfg)


@main.command()
@_project_argument
@_environment_argument
@_location_argument
@click.pass_context
def cancel(
    ctx: click.Context,
    project_name: Optional[str],
    environment: Optional[str],
    location: Optional[str],
) -> None:
    """진행 중인 마지막 배포를 취소합니다."""
    cfg = _load_config_from_ctx(ctx, project_name, environment, location)
    _run(ctx, "cancel", cfg)


@main.command(name="env")
@_project_argument
@_environment_argument
@_location_argument
@click.pass_context
def env_command(
    ctx: click.Context,
    project_name: Optional[str],
    environment: Optional[str],
    location: Optional[str],
) -> None:
    """대상 환경의 배포 outputs 와 secret 을 .<environment>.env 로 가져옵니다."""
    cfg = _load_config_from_ctx(ctx, project_name, environment, location)
    _run(ctx, "env", cfg)
