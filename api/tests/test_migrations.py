import pytest

pytest.importorskip("fastapi")

import chessnkaffe.main as m


class _Result:
    def __init__(self, values=None):
        self._values = values or []

    def scalars(self):
        return self

    def all(self):
        return list(self._values)


class _Session:
    def __init__(self, applied):
        self.applied = applied
        self.statements = []
        self.committed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, statement, params=None):
        sql = str(statement)
        self.statements.append((sql, params))
        if sql.startswith("SELECT filename"):
            return _Result(self.applied)
        return _Result()

    def commit(self):
        self.committed = True


def test_only_unrecorded_files_run_in_name_order(tmp_path, monkeypatch):
    (tmp_path / "002_notifications.sql").write_text("SELECT 2;", encoding="utf-8")
    (tmp_path / "001_init.sql").write_text("SELECT 1;", encoding="utf-8")
    (tmp_path / "003_cafes.sql").write_text("SELECT 3;", encoding="utf-8")
    (tmp_path / "README.txt").write_text("not a migration", encoding="utf-8")
    session = _Session(applied=["001_init.sql"])
    monkeypatch.setenv("MIGRATIONS_DIR", str(tmp_path))
    monkeypatch.setattr(m, "SessionLocal", lambda: session)

    m.run_migrations()

    executed = [sql for sql, _ in session.statements]
    assert "SELECT 1;" not in executed
    assert executed.index("SELECT 2;") < executed.index("SELECT 3;")
    recorded = [params["filename"] for sql, params in session.statements if sql.startswith("INSERT INTO schema_migration")]
    assert recorded == ["002_notifications.sql", "003_cafes.sql"]
    assert session.committed


def test_missing_directory_is_reported(tmp_path, monkeypatch):
    monkeypatch.setenv("MIGRATIONS_DIR", str(tmp_path / "nope"))
    with pytest.raises(FileNotFoundError):
        m.run_migrations()


def test_bundled_migrations_are_found(monkeypatch):
    monkeypatch.delenv("MIGRATIONS_DIR", raising=False)
    assert (m._migrations_dir() / "001_init.sql").is_file()
