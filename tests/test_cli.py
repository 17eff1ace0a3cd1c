import pytest
from typer.testing import CliRunner

from snowops.cli.cli import app
from snowops.cli.commands.reverse import sampling_from_options
from snowops.core.errors import ConfigurationError
from snowops.core.models import SamplingMode

runner = CliRunner()


def test_fe_drop_schema_prints_script():
    result = runner.invoke(app, ["fe", "drop-schema", "ANALYTICS"])

    assert result.exit_code == 0
    assert "DROP SCHEMA IF EXISTS ANALYTICS;" in result.stdout


def test_fe_create_schema_with_options():
    result = runner.invoke(
        app,
        [
            "fe",
            "create-schema",
            "SALES",
            "--database",
            "DB",
            "--transient",
            "--retention",
            "3",
        ],
    )

    assert result.exit_code == 0
    assert (
        "CREATE TRANSIENT SCHEMA IF NOT EXISTS DB.SALES DATA_RETENTION_TIME_IN_DAYS = 3;"
        in result.stdout
    )


def test_sampling_from_options_defaults_to_absolute():
    policy = sampling_from_options(None, None)

    assert policy.active is SamplingMode.ABSOLUTE
    assert policy.absolute == 1000


def test_sampling_from_options_percent():
    policy = sampling_from_options(None, 25)

    assert policy.active is SamplingMode.RELATIVE
    assert policy.relative == 25


def test_sampling_from_options_rejects_both_flags():
    with pytest.raises(ConfigurationError, match="not both"):
        sampling_from_options(10, 25)


def test_sampling_from_options_validates_range():
    with pytest.raises(ConfigurationError):
        sampling_from_options(None, 150)
