import os
from pathlib import Path

import pytest
from pyfakefs.fake_filesystem import FakeFilesystem
from pytest_mock import MockerFixture

from stackup.cli._commands._check import describe_sources
from stackup.config import Config


@pytest.fixture(autouse=True)
def isolated(
    fs: FakeFilesystem, mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch
) -> FakeFilesystem:
    for name in list(os.environ):
        if name.startswith("STACKUP_"):
            monkeypatch.delenv(name)
    fs.create_dir("/work")
    fs.cwd = "/work"
    _ = mocker.patch(
        "stackup.config._discovery.get_user_config_path",
        return_value=Path("/home/user/.config/stackup/stackup.toml"),
    )
    return fs


class TestDescribeSources:
    def test_defaults_only(self) -> None:
        assert describe_sources(Config.load()) == "default"

    def test_every_layer_highest_first(
        self, isolated: FakeFilesystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        isolated.create_file(
            "/srv/stackup.toml", contents="[supervisor]\ncontrol_port = 9191\n"
        )
        monkeypatch.setenv("STACKUP_SUPERVISOR__POLL_INTERVAL", "1.0")

        config = Config.load(
            config_path=Path("/srv/stackup.toml"),
            cli_overrides={"supervisor": {"control_port": 9393}},
        )

        assert describe_sources(config) == "cli, env, file /srv/stackup.toml, default"
