from pathlib import Path

from cesizen.backend.app import main


def test_resolve_db_path_stable_across_cwd(monkeypatch):
    monkeypatch.delenv("CESIZEN_DB_PATH", raising=False)
    monkeypatch.delenv("DB_PATH", raising=False)
    monkeypatch.chdir(Path(main.__file__).resolve().parents[2])
    assert Path(main.resolve_db_path()) == main.REPO_ROOT / "cesizen.db"


def test_relative_env_path_is_anchored_at_repo_root(monkeypatch):
    monkeypatch.delenv("CESIZEN_DB_PATH", raising=False)
    monkeypatch.setenv("DB_PATH", "data/test.db")
    assert Path(main.resolve_db_path()) == main.REPO_ROOT / "data" / "test.db"
    monkeypatch.setenv("CESIZEN_DB_PATH", "/tmp/cesizen-alt.db")
    assert main.resolve_db_path() == "/tmp/cesizen-alt.db"


def test_env_flag_and_list(monkeypatch):
    monkeypatch.setenv("CESIZEN_STRICT_EVENT_IDS", "Yes")
    assert main.strict_event_ids() is True
    monkeypatch.setenv("CESIZEN_ADMIN_EMAILS", " Admin@Example.com, ,ops@example.com")
    assert main.admin_emails() == {"admin@example.com", "ops@example.com"}
