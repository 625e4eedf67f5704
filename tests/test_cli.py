"""
Tests for the nit-registry CLI.
"""

import json

import pytest

from cli.main import DEMO_SEED, main
from lib.registry_store import JsonFileStore, SqliteStore


@pytest.fixture(autouse=True)
def keep_pytest_logging(monkeypatch):
    """main() reconfigures the root logger; leave pytest's handlers alone."""
    monkeypatch.setattr("cli.main.configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def store_file(tmp_path):
    return tmp_path / "registrations.json"


class TestInit:
    def test_creates_empty_json_store(self, store_file, capsys):
        assert main(["--store", str(store_file), "init"]) == 0
        assert json.loads(store_file.read_text()) == []
        assert "0 registrations" in capsys.readouterr().out

    def test_init_keeps_existing_records(self, store_file):
        main(["--store", str(store_file), "seed"])
        main(["--store", str(store_file), "init"])
        assert JsonFileStore(store_file).count() == len(DEMO_SEED)

    def test_sqlite_backend(self, tmp_path):
        path = tmp_path / "registrations.db"
        assert main(["--backend", "sqlite", "--store", str(path), "init"]) == 0
        assert SqliteStore(path).count() == 0

    def test_default_location_under_home(self, isolated_home):
        assert main(["init"]) == 0
        assert (isolated_home / "data" / "registrations.json").exists()


class TestSeed:
    def test_demo_seed(self, store_file):
        assert main(["--store", str(store_file), "seed"]) == 0

        store = JsonFileStore(store_file)
        assert [e.raw_identifier for e in store.list_all()] == [
            "900674335",
            "900674336",
            "811033098",
        ]

    def test_seed_twice_does_not_duplicate(self, store_file):
        main(["--store", str(store_file), "seed"])
        main(["--store", str(store_file), "seed"])
        assert JsonFileStore(store_file).count() == len(DEMO_SEED)

    def test_seed_from_file_merges(self, store_file, tmp_path):
        main(["--store", str(store_file), "seed"])
        rows = [{**DEMO_SEED[0], "raw_identifier": "900-674-335", "name": "Renamed"}]
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(json.dumps(rows))

        assert main(["--store", str(store_file), "seed", "--file", str(seed_file)]) == 0

        store = JsonFileStore(store_file)
        assert store.count() == len(DEMO_SEED)
        assert store.find_by_identifier("900674335").name == "Renamed"

    def test_seed_file_must_be_array(self, store_file, tmp_path, capsys):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text('{"name": "x"}')
        assert main(["--store", str(store_file), "seed", "--file", str(seed_file)]) == 2
        assert "JSON array" in capsys.readouterr().err

    def test_seed_row_missing_field(self, store_file, tmp_path):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(json.dumps([{"raw_identifier": "900674335"}]))
        assert main(["--store", str(store_file), "seed", "--file", str(seed_file)]) == 2
        assert not store_file.exists()


    def test_seed_file_missing(self, store_file, tmp_path, capsys):
        missing = tmp_path / "nope.json"
        assert main(["--store", str(store_file), "seed", "--file", str(missing)]) == 2
        assert "Cannot read seed file" in capsys.readouterr().err

    def test_seed_file_not_json(self, store_file, tmp_path, capsys):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text("[{not json")
        assert main(["--store", str(store_file), "seed", "--file", str(seed_file)]) == 2
        assert "Cannot read seed file" in capsys.readouterr().err

    @pytest.mark.parametrize("backend,name", [("json", "r.json"), ("sqlite", "r.db")])
    def test_seed_row_without_identifier(self, tmp_path, capsys, backend, name):
        path = tmp_path / name
        seed_file = tmp_path / "seed.json"
        seed_file.write_text(json.dumps([{**DEMO_SEED[0], "raw_identifier": "- -"}]))

        code = main(
            ["--backend", backend, "--store", str(path), "seed", "--file", str(seed_file)]
        )

        assert code == 2
        assert "Invalid seed data" in capsys.readouterr().err

    def test_seed_row_not_an_object(self, store_file, tmp_path):
        seed_file = tmp_path / "seed.json"
        seed_file.write_text('["900674335"]')
        assert main(["--store", str(store_file), "seed", "--file", str(seed_file)]) == 2


class TestLookupAndList:
    def test_lookup_found(self, store_file, capsys):
        main(["--store", str(store_file), "seed"])
        capsys.readouterr()

        assert main(["--store", str(store_file), "lookup", "811-033-098"]) == 0
        record = json.loads(capsys.readouterr().out)
        assert record["normalized_identifier"] == "811033098"
        assert record["name"] == "Seeded Company C"

    def test_lookup_missing(self, store_file, capsys):
        assert main(["--store", str(store_file), "lookup", "123456789"]) == 1
        assert "Not registered" in capsys.readouterr().err

    def test_list(self, store_file, capsys):
        main(["--store", str(store_file), "seed"])
        capsys.readouterr()

        assert main(["--store", str(store_file), "list"]) == 0
        out = capsys.readouterr().out
        assert "REGISTRATIONS (3)" in out
        assert "Seeded Company A" in out

    def test_list_empty(self, store_file, capsys):
        assert main(["--store", str(store_file), "list"]) == 0
        assert "No registrations." in capsys.readouterr().out


class TestErrors:
    def test_corrupt_store_exit_code(self, store_file, capsys):
        store_file.write_text("[{broken")
        assert main(["--store", str(store_file), "list"]) == 3
        assert "Store unavailable" in capsys.readouterr().err

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
