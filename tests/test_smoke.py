"""Basic smoke tests."""

import shuffle_radio
import shuffle_radio.version


def test_version_defined() -> None:
    assert isinstance(shuffle_radio.__version__, str)


def test_version_module_exposes_project_metadata() -> None:
    assert shuffle_radio.version.__version__ == "0.3.0"
    assert shuffle_radio.version.PROJECT_URL in shuffle_radio.version.build_help_epilog()
