from click.testing import CliRunner

from forgecompat import __version__
from forgecompat.cli.main import cli


def test_version():
    assert __version__ == "0.1.0"


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "engine and dependency compatibility" in result.output


def test_public_imports():
    from forgecompat.core.catalog import VersionCatalog
    from forgecompat.core.resolution import ChangePropagator
    from forgecompat.core.store import InMemoryRepository
    from forgecompat.importer import ImportNormalizer

    store = InMemoryRepository()
    propagator = ChangePropagator.for_store(store)
    assert isinstance(propagator.catalog, VersionCatalog)
    assert ImportNormalizer(propagator.catalog).extract("SPT 3.8.0") is None
