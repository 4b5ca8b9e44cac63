"""End-to-end tests for the command-line entry point."""

from datetime import datetime, timedelta

import pytest

from tracker.config import reset_config
from tracker.main import main


@pytest.fixture
def config_file(tmp_path):
    reset_config()
    path = tmp_path / "config.yaml"
    path.write_text(
        f"data_path: {tmp_path / 'data' / 'tracker.sqlite'}\n"
        f"log_dir: {tmp_path / 'logs'}\n"
        f"export_dir: {tmp_path / 'exports'}\n"
        "log_level: DEBUG\n"
    )
    yield path
    reset_config()


@pytest.fixture
def run(config_file, capsys):
    def runner(*argv):
        code = main(["--config", str(config_file), *argv])
        return code, capsys.readouterr()

    return runner


def added_id(output: str) -> str:
    return output.strip().rsplit("(", 1)[1].rstrip(")")


def test_add_and_list(run):
    code, out = run("add", "--company", "Acme", "--title", "Engineer", "--tags", "python, remote")
    assert code == 0
    assert "Added Acme - Engineer" in out.out

    code, out = run("list")
    assert code == 0
    assert "Acme - Engineer  [Wishlist]" in out.out
    assert "#python #remote" in out.out
    assert "Showing 1 of 1 applications" in out.out


def test_list_filters(run):
    run("add", "--company", "Acme", "--title", "Engineer", "--status", "Applied")
    run("add", "--company", "Globex", "--title", "Analyst")

    code, out = run("list", "--status", "Applied")
    assert code == 0
    assert "Acme" in out.out
    assert "Globex" not in out.out
    assert "Showing 1 of 2 applications" in out.out


def test_add_rejects_missing_company(run):
    code, out = run("add", "--company", " ", "--title", "Engineer")
    assert code == 1
    assert "Company name is required" in out.err


def test_add_rejects_past_deadline(run):
    yesterday = (datetime.now() - timedelta(days=1)).strftime("%Y-%m-%d")
    code, out = run("add", "--company", "Acme", "--title", "Engineer", "--deadline", yesterday)
    assert code == 1
    assert "Deadline cannot be in the past" in out.err

    code, _ = run("add", "--company", "Acme", "--title", "Engineer", "--deadline", yesterday,
                  "--allow-past-deadline")
    assert code == 0


def test_update_and_delete(run):
    _, out = run("add", "--company", "Acme", "--title", "Engineer", "--resume-url",
                 "https://example.com/cv.pdf")
    app_id = added_id(out.out)

    code, out = run("update", app_id, "--status", "Interview", "--clear", "resume-url")
    assert code == 0
    assert f"Updated Acme - Engineer ({app_id})" in out.out

    code, out = run("list", "--status", "Interview")
    assert app_id in out.out

    code, out = run("delete", app_id)
    assert code == 0
    code, out = run("list")
    assert "Showing 0 of 0 applications" in out.out


def test_unknown_id_reports_not_found(run):
    code, out = run("update", "missing", "--notes", "x")
    assert code == 1
    assert "not found" in out.err

    code, out = run("delete", "missing")
    assert code == 1
    assert "not found" in out.err


def test_stats_and_reminders(run):
    today = datetime.now().strftime("%Y-%m-%d")
    run("add", "--company", "Acme", "--title", "Engineer", "--status", "Applied")
    run("add", "--company", "Globex", "--title", "Analyst", "--status", "Interview",
        "--follow-up", today)

    code, out = run("stats")
    assert code == 0
    assert "Total applications: 2" in out.out
    assert "Response rate: 100%" in out.out
    assert "Follow-ups due: 1" in out.out

    code, out = run("reminders")
    assert code == 0
    assert "Globex - Analyst" in out.out


def test_facets(run):
    run("add", "--company", "Acme", "--title", "Engineer", "--source", "LinkedIn", "--tags", "b,a")
    code, out = run("facets")
    assert code == 0
    assert "Sources: LinkedIn" in out.out
    assert "Tags: a, b" in out.out


def test_export(run, tmp_path):
    code, out = run("export")
    assert code == 1
    assert "No job applications to export" in out.out

    run("add", "--company", "Acme", "--title", "Engineer", "--notes", 'He said, "yes"')
    code, out = run("export")
    assert code == 0

    [path] = (tmp_path / "exports").iterdir()
    assert path.name.startswith("job-applications-")
    assert '"He said, ""yes"""' in path.read_text(encoding="utf-8")


def test_unusable_data_directory_reports_error(tmp_path, capsys):
    reset_config()
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    path = tmp_path / "config.yaml"
    path.write_text(
        f"data_path: {blocker / 'tracker.sqlite'}\n"
        f"log_dir: {tmp_path / 'logs'}\n"
    )

    code = main(["--config", str(path), "list"])

    assert code == 1
    assert "Could not create data directory" in capsys.readouterr().err
    reset_config()
