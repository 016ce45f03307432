import runpy
import warnings
from pathlib import Path

import pytest
from pydantic.warnings import PydanticDeprecatedSince20

import storefront.config.admin_config as admin_config_module
import storefront.config.settings as settings_module


@pytest.mark.parametrize("module", [settings_module, admin_config_module])
def test_settings_modules_load_without_deprecation_warnings(module):
    with warnings.catch_warnings():
        warnings.simplefilter("error", PydanticDeprecatedSince20)
        namespace = runpy.run_path(str(Path(module.__file__)))

    assert namespace["Settings"].model_config["env_file"] == ".env"
    assert namespace["Settings"].model_config["extra"] == "ignore"


def test_unknown_environment_keys_are_ignored(monkeypatch):
    monkeypatch.setenv("SOMETHING_ELSE_ENTIRELY", "1")
    monkeypatch.setenv("FEDERATION_MIN_RELOAD_SECONDS", "15")

    settings = settings_module.Settings()

    assert settings.FEDERATION_MIN_RELOAD_SECONDS == 15.0
    assert not hasattr(settings, "SOMETHING_ELSE_ENTIRELY")
