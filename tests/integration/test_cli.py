"""Integration tests for the command-line interface."""

import pytest
import yaml
from PIL import Image
from sqlalchemy import select

from seconde.cli import main, parse_args
from seconde.core.indexing.maintainer import IndexMaintainer
from seconde.database import DocumentStore, SearchIndexRow
from seconde.utils import reset_config
from seconde.utils.config import DatabaseConfig

pytestmark = pytest.mark.integration


@pytest.fixture
def config_file(tmp_path):
    """Config pointing both stores into the temporary directory."""
    reset_config()
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "database": {"url": f"sqlite:///{tmp_path / 'seconde.db'}"},
        "vector_store": {"persist_directory": str(tmp_path / "chroma"), "embedding_dim": 512},
        "log_level": "DEBUG",
    }), encoding="utf-8")
    yield path
    reset_config()


@pytest.fixture
def seeded(tmp_path, config_file, make_item, now):
    store = DocumentStore(DatabaseConfig(url=f"sqlite:///{tmp_path / 'seconde.db'}"))
    maintainer = IndexMaintainer(store, clock=lambda: now)
    maintainer.apply_item_write(None, make_item("keep"))
    maintainer.apply_item_write(None, make_item("sold", is_sold=True))
    yield store
    store.dispose()


class TestParseArgs:
    """Test argument parsing."""

    def test_run_job(self):
        args = parse_args(["run-job", "popularity"])
        assert args.command == "run-job"
        assert args.job == "popularity"

    def test_unknown_job(self):
        with pytest.raises(SystemExit):
            parse_args(["run-job", "reindex"])

    def test_backfill_needs_media_dir(self):
        with pytest.raises(SystemExit):
            parse_args(["backfill-embeddings"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestMain:
    """Test command execution."""

    def test_run_prune_job(self, seeded, config_file, capsys):
        assert main(["--config", str(config_file), "run-job", "prune_index"]) == 0

        assert "prune_index: 1 processed, 1 updated" in capsys.readouterr().out
        with seeded.session() as session:
            assert session.scalars(select(SearchIndexRow.id)).all() == ["keep"]

    def test_run_swap_job_on_empty_store(self, config_file, capsys):
        assert main(["--config", str(config_file), "run-job", "swap_party_status"]) == 0
        assert "0 processed" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        reset_config()
        assert main(["--config", str(tmp_path / "absent.yaml"), "run-job", "popularity"]) == 1
        assert "failed" in capsys.readouterr().out

    def test_backfill_rejects_mismatched_store(self, tmp_path, config_file, capsys):
        """A store sized for another model is refused before any weights load."""
        config = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        config["vector_store"]["embedding_dim"] = 1408
        config_file.write_text(yaml.safe_dump(config), encoding="utf-8")
        media = tmp_path / "media"
        media.mkdir()
        Image.new("RGB", (4, 4)).save(media / "a.png")

        assert main(["--config", str(config_file), "backfill-embeddings", "--media-dir", str(media)]) == 1
        assert "1408" in capsys.readouterr().out
