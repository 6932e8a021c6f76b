"""Tests for the apm command line tool."""

from pathlib import Path

import pytest

from apm.apm import APM
from apm.config import ApmConfig
from apm.constants import CORE_URL
from apm.tool import apm as apm_tool
from apm.tool.install import InstallAction, UpgradeAction
from apm.tool.repository import AddRepositoryAction
from apm.tool.update import UpdateAction

from fakes import FakeInstaller, FakeNotifier, FakeSynchronizer, vm_doc

URL = "https://example.com/acme/plugins.git"


@pytest.fixture(autouse=True)
def fake_apm(
    monkeypatch: pytest.MonkeyPatch,
    synchronizer: FakeSynchronizer,
    installer: FakeInstaller,
    notifier: FakeNotifier,
) -> None:
    """Build the command line APM instance over the fakes."""
    synchronizer.commit(CORE_URL, "c" * 40, {"vms/corevm.yaml": vm_doc("corevm")})
    synchronizer.commit(URL, "1" * 40, {"vms/foo.yaml": vm_doc("foo")})

    def make_apm(config: ApmConfig) -> APM:
        return APM(
            config, synchronizer=synchronizer, installer=installer, notifier=notifier
        )

    monkeypatch.setattr(apm_tool, "APM", make_apm)


def run_cli(tmp_path: Path, *args: str) -> None:
    apm_tool.main(
        [
            "--apm-path",
            str(tmp_path / "apm"),
            "--plugin-path",
            str(tmp_path / "plugins"),
            *args,
        ]
    )


def test_parser() -> None:
    """Test the sub commands and their arguments."""
    parser = apm_tool._make_parser()

    args = parser.parse_args(["add-repository", "acme/plugins", URL])
    assert args.cls is AddRepositoryAction
    assert args.alias == "acme/plugins"
    assert args.url == URL
    assert args.branch == "main"

    assert parser.parse_args(["sync"]).cls is UpdateAction
    assert parser.parse_args(["install", "foo"]).cls is InstallAction

    args = parser.parse_args(["upgrade"])
    assert args.cls is UpgradeAction
    assert args.name is None


def test_parser_environment_defaults(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Test the global flags default to the environment."""
    monkeypatch.setenv("APM_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("APM_PLUGIN_PATH", str(tmp_path / "plugins"))
    monkeypatch.setenv("APM_ADMIN_API_ENDPOINT", "10.0.0.1:9650")

    args = apm_tool._make_parser().parse_args(["update"])
    assert args.apm_path == tmp_path / "home"
    assert args.plugin_path == tmp_path / "plugins"
    assert args.admin_api_endpoint == "10.0.0.1:9650"
    assert args.credentials_file is None


def test_install_flow(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test adding a repository and installing one of its VMs."""
    run_cli(tmp_path, "add-repository", "acme/plugins", URL)
    run_cli(tmp_path, "update")
    run_cli(tmp_path, "install", "foo")
    capsys.readouterr()

    run_cli(tmp_path, "list-repositories")
    out = capsys.readouterr().out
    assert "acme/plugins" in out
    assert "MetalBlockchain/metal-plugins-core" in out

    run_cli(tmp_path, "info", "foo")
    out = capsys.readouterr().out
    assert "name: acme/plugins:foo" in out
    assert "installed:" in out
    assert "version: v1.0.0" in out

    assert (tmp_path / "plugins" / "foo-id").exists()


def test_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test an apm error is printed and exits with an error code."""
    with pytest.raises(SystemExit) as exc_info:
        run_cli(tmp_path, "install", "unknown")
    assert exc_info.value.code == 1
    assert "apm error: No repository provides a plugin named unknown" in (
        capsys.readouterr().err
    )


def test_credentials_file(tmp_path: Path) -> None:
    """Test credentials are read from the file passed on the command line."""
    credentials = tmp_path / "credentials.yaml"
    credentials.write_text("username: user\npassword: secret\n")
    args = apm_tool._make_parser().parse_args(
        ["--credentials-file", str(credentials), "update"]
    )
    config = apm_tool._make_config(args)
    assert config.auth is not None
    assert config.auth.username == "user"
    assert config.auth.password == "secret"
