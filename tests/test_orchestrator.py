import pytest

from conftest import FakeProvider
from infra_kit import orchestrator
from infra_kit.config import EnvironmentIdentity, InfraConfig
from infra_kit.errors import MalformedOutputError, RemoteCallError, ResourceNotFoundError, UnknownCommandError


def _cfg(base_dir: str) -> InfraConfig:
    return InfraConfig(
        identity=EnvironmentIdentity(project_name="demo", environment="prod", location="eastus2"),
        base_dir=base_dir,
    )


def test_create_environment_deploys_and_writes_settings(tmp_path, fake_provider: FakeProvider) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))

    path = orchestrator.create_environment(cfg, fake_provider)

    assert fake_provider.call_names == [
        "create_or_update_group",
        "create_deployment",
        "get_registry_credential",
        "get_registry_credential",
    ]
    _, group_args = fake_provider.calls[0]
    assert group_args == (
        "rg-demo-prod",
        "eastus2",
        {"project": "demo", "environment": "prod", "managedBy": "blue"},
    )
    _, deploy_args = fake_provider.calls[1]
    assert deploy_args[0] == "rg-demo-prod"
    assert deploy_args[1] == "deployment-demo-prod-eastus2"
    assert deploy_args[2] == cfg.template_path
    assert deploy_args[3] == {"projectName": "demo", "environment": "prod", "location": "eastus2"}
    assert deploy_args[4] == "Complete"

    lines = (tmp_path / ".prod.env").read_text(encoding="utf-8").splitlines()
    assert path == cfg.env_file_path
    assert lines == [
        "# Generated settings for environment 'prod'",
        "# Do not edit this file manually!",
        "",
        "registry_name=demoregistry",
        "subnet_ids=(a b)",
        "",
        "### Secrets ###",
        "",
        "registry_username=demoregistry",
        "registry_password='s3cr3t'\"'\"'pw'",
    ]


def test_retrieve_settings_uses_existing_deployment(tmp_path, fake_provider: FakeProvider) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))

    orchestrator.retrieve_environment_settings(cfg, fake_provider)

    assert fake_provider.calls[0] == ("show_deployment", ("rg-demo-prod", "deployment-demo-prod-eastus2"))
    assert "create_deployment" not in fake_provider.call_names
    assert (tmp_path / ".prod.env").exists()


def test_retrieve_settings_without_deployment_writes_nothing(tmp_path) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))
    not_found = ResourceNotFoundError(["az"], 3, stderr="(DeploymentNotFound) Deployment not found")
    provider = FakeProvider(errors={"show_deployment": not_found})

    with pytest.raises(ResourceNotFoundError):
        orchestrator.retrieve_environment_settings(cfg, provider)

    assert not (tmp_path / ".prod.env").exists()


def test_remote_failure_during_create_aborts_before_deploy(tmp_path) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))
    provider = FakeProvider(errors={"create_or_update_group": RemoteCallError(["az"], 1, stderr="AuthorizationFailed")})

    with pytest.raises(RemoteCallError):
        orchestrator.create_environment(cfg, provider)

    assert provider.call_names == ["create_or_update_group"]
    assert not (tmp_path / ".prod.env").exists()


def test_malformed_outputs_abort_without_secrets(tmp_path) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))
    provider = FakeProvider(outputs={"registryName": {"type": "Object", "value": {"nested": True}}})

    with pytest.raises(MalformedOutputError):
        orchestrator.create_environment(cfg, provider)

    assert "get_registry_credential" not in provider.call_names
    assert not (tmp_path / ".prod.env").exists()


def test_secure_outputs_do_not_abort_env(tmp_path) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))
    provider = FakeProvider(
        outputs={
            "adminPassword": {"type": "SecureString"},
            "registryName": {"type": "String", "value": "demoregistry"},
        },
        credentials={"username": "demoregistry", "passwords[0].value": "pw"},
    )

    orchestrator.retrieve_environment_settings(cfg, provider)

    lines = (tmp_path / ".prod.env").read_text(encoding="utf-8").splitlines()
    assert lines[3:5] == ["admin_password=null", "registry_name=demoregistry"]
    assert provider.call_names.count("get_registry_credential") == 2


def test_delete_and_cancel_target_derived_names(tmp_path) -> None:  # noqa: ANN001
    cfg = _cfg(str(tmp_path))
    provider = FakeProvider()

    orchestrator.delete_environment(cfg, provider)
    orchestrator.cancel_deployment(cfg, provider)

    assert provider.calls == [
        ("delete_group", ("rg-demo-prod",)),
        ("cancel_deployment", ("rg-demo-prod", "deployment-demo-prod-eastus2")),
    ]


def test_dispatch_maps_commands(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:  # noqa: ANN001
    called = []
    monkeypatch.setitem(orchestrator.COMMANDS, "cancel", lambda cfg, client: called.append(cfg))
    cfg = _cfg(str(tmp_path))

    orchestrator.dispatch("cancel", cfg, FakeProvider())

    assert called == [cfg]
    assert list(orchestrator.COMMANDS) == ["create", "delete", "cancel", "env"]


def test_dispatch_rejects_unknown_command(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(UnknownCommandError):
        orchestrator.dispatch("deploy", _cfg(str(tmp_path)), FakeProvider())
