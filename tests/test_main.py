import json

import pytest

from applicant_filters import config
from applicant_filters.main import cli, load_records, parse_args


@pytest.fixture
def files(tmp_path, job_postings, applicants):
    """Job postings, applicants and a state database on disk."""
    jobs = tmp_path / "jobs.json"
    jobs.write_text(json.dumps({"data": job_postings}), encoding="utf-8")
    people = tmp_path / "applicants.json"
    people.write_text(json.dumps(applicants), encoding="utf-8")
    return {"jobs": str(jobs), "applicants": str(people), "db": str(tmp_path / "state.db")}


def run(files, *argv):
    cli(["--db", files["db"], *argv])


# --- argument parsing ---


def test_parse_args_fields():
    args = parse_args(["fields", "jobs.json", "--job", "a", "--job", "b"])
    assert args.command == "fields"
    assert args.jobs == "jobs.json"
    assert args.job == ["a", "b"]
    assert args.db is None


def test_parse_args_filter_options():
    args = parse_args(["--db", "x.db", "filter", "j.json", "a.json", "--status", "trashed", "--privileged"])
    assert args.db == "x.db"
    assert args.status == ["trashed"]
    assert args.privileged is True


def test_parse_args_requires_command():
    with pytest.raises(SystemExit):
        parse_args([])


# --- record loading ---


def test_load_records_bare_list_and_envelope(tmp_path):
    bare = tmp_path / "bare.json"
    bare.write_text("[1, 2]", encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text('{"results": [3]}', encoding="utf-8")

    assert load_records(str(bare)) == [1, 2]
    assert load_records(str(wrapped)) == [3]


def test_load_records_rejects_other_shapes(tmp_path):
    path = tmp_path / "odd.json"
    path.write_text('{"count": 3}', encoding="utf-8")
    with pytest.raises(ValueError, match="list of records"):
        load_records(str(path))


# --- commands ---


def test_fields_lists_merged_fields(files, capsys):
    run(files, "fields", files["jobs"])
    out = capsys.readouterr().out

    assert "Education Level / المؤهل الدراسي [hasField] (2 jobs)" in out
    assert "    choices: Bachelor, Master" in out
    assert "Expected Salary / الراتب المتوقع [range] (1 job)" in out
    assert "Work Experience / الخبرات العملية [hasWorkExperience] (1 job)" in out
    assert "City / المدينة [multi] (1 job)" in out
    assert "Notes [text] (1 job)" in out


def test_fields_for_unknown_job(files, capsys):
    run(files, "fields", files["jobs"], "--job", "job-zzz")
    assert capsys.readouterr().out.strip() == "No custom fields found for selected jobs."


def test_add_filter_and_show(files, capsys):
    descriptor = {"fieldId": "__gender", "labelEn": "Gender", "type": "multi", "value": ["Female"]}
    run(files, "add", json.dumps(descriptor))
    assert capsys.readouterr().out.strip() == "Gender: Female"

    run(files, "filter", files["jobs"], files["applicants"])
    assert capsys.readouterr().out.split() == ["app-2"]

    run(files, "show")
    assert capsys.readouterr().out.strip() == "Gender: Female"

    run(files, "remove", "__gender")
    run(files, "show")
    assert capsys.readouterr().out.strip() == "No active filters."


def test_select_jobs_restricts_filter(files, capsys):
    run(files, "select", "--job", "job-a")
    assert capsys.readouterr().out.strip() == "Jobs: job-a"

    run(files, "filter", files["jobs"], files["applicants"])
    assert capsys.readouterr().out.split() == ["app-1"]

    run(files, "filter", files["jobs"], files["applicants"], "--status", "trashed", "--privileged")
    assert capsys.readouterr().out.split() == ["app-3"]


def test_revert_and_clear(files, capsys):
    run(files, "add", '{"fieldId": "__has_cv", "labelEn": "Has CV", "type": "hasCV", "value": true}')
    run(files, "select", "--company", "co-1")
    capsys.readouterr()

    run(files, "revert")
    out = capsys.readouterr().out
    assert "Has CV: No" in out
    assert "Companies: co-1" in out

    run(files, "clear")
    run(files, "show")
    assert capsys.readouterr().out.strip() == "No active filters."


def test_invalid_descriptor_exits_with_error(files):
    with pytest.raises(SystemExit) as exc_info:
        run(files, "add", '{"fieldId": "x", "type": "multi", "value": []}')
    assert exc_info.value.code == 1

    with pytest.raises(SystemExit) as exc_info:
        run(files, "add", "{not json")
    assert exc_info.value.code == 1


def test_missing_input_file_exits_with_error(files, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        run(files, "fields", str(tmp_path / "missing.json"))
    assert exc_info.value.code == 1


def test_invalid_log_level_exits_with_error(files, monkeypatch, caplog):
    monkeypatch.setenv("LOG_LEVEL", "LOUD")
    monkeypatch.setattr(config, "_cfg", config._Config())

    with pytest.raises(SystemExit) as exc_info:
        run(files, "show")
    assert exc_info.value.code == 1
    assert "LOG_LEVEL" in caplog.text
