import json
import tarfile

import pytest

from course_batch_toolkit.cli import create_parser, main, options_from_args


def _documents(path):
    with tarfile.open(path, "r:gz") as tar:
        return {
            m.name: json.loads(tar.extractfile(m).read())
            for m in tar.getmembers()
            if m.isfile() and m.name.endswith(".json")
        }


def test_options_from_args_overrides_defaults(archive_path):
    args = create_parser().parse_args([str(archive_path), "--lock-unlock", "lock", "--num-attempts", "3", "--clean"])
    options = options_from_args(args)
    assert options.lock_unlock == "lock"
    assert options.num_attempts == 3
    assert options.clean is True
    assert options.video_intro is False


def test_process_writes_archive_and_sheet(archive_path, tmp_path, capsys):
    out = tmp_path / "out" / "processed.tgz"
    sheet = tmp_path / "sheet.csv"
    code = main([
        str(archive_path),
        "--section-scope", "section_per_te",
        "--lock-unlock", "lock",
        "-o", str(out),
        "--sheet", str(sheet),
    ])
    assert code == 0
    documents = _documents(out)
    activities = documents["activities.json"]
    assert any(a["id"] == 1000000000000000 for a in activities)
    assert all(a["data"].get("locked") is not False for a in activities if a["type"] == "SECTION")
    assert sheet.read_text(encoding="utf-8").startswith("module,folder,page,section,leaf_container")
    assert "Processed course" in capsys.readouterr().out


def test_default_output_named_after_course(archive_path, tmp_path):
    assert main([str(archive_path), "--clean"]) == 0
    assert (tmp_path / "Test_Course.tgz").exists()


def test_report_only_leaves_course_alone(archive_path, tmp_path):
    assert main([str(archive_path), "--report-only", "--lock-unlock", "lock"]) == 0
    assert (tmp_path / "Test_Course.csv").exists()
    assert not (tmp_path / "Test_Course.tgz").exists()


def test_repack_only_round_trip(archive_path, tmp_path, scenario_course):
    out = tmp_path / "repacked.tgz"
    assert main([str(archive_path), "--repack-only", "--section-scope", "section_per_page", "-o", str(out)]) == 0
    assert _documents(out) == scenario_course.documents()


def test_missing_input_fails(tmp_path, capsys):
    assert main([str(tmp_path / "absent.tgz")]) == 1
    assert "Error:" in capsys.readouterr().out


def test_invalid_choice_exits(archive_path):
    with pytest.raises(SystemExit) as excinfo:
        main([str(archive_path), "--section-scope", "per_folder"])
    assert excinfo.value.code == 2


def test_modes_are_exclusive(archive_path):
    with pytest.raises(SystemExit):
        create_parser().parse_args([str(archive_path), "--report-only", "--repack-only"])


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("course-batch v")


def test_infinite_number_option_means_no_change(archive_path):
    args = create_parser().parse_args([str(archive_path), "--num-attempts", "inf", "--pass-percent", "1e999"])
    options = options_from_args(args)
    assert options.num_attempts == -1
    assert options.pass_percent == -1
