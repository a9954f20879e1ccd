import json
from pathlib import Path


def _args(source: Path, target: Path, findings: Path, *extra):
    return ["--source", source, "--target", target, "--findings", findings, "--no-progress", *extra]


def test_cli_masks_a_mirrored_tree(tmp_path, source_tree, findings_file, run_cli, assert_exit, read_json):
    target = tmp_path / "masked"
    proc = run_cli(_args(source_tree, target, findings_file, "--log-level", "info"))
    assert_exit(proc)

    settings = (target / "app" / "settings.py").read_bytes().decode("utf-8")
    assert 'API_KEY = \'***MASKED["settings__github-pat__' in settings
    assert "ghp_" not in settings
    note = (target / "certs" / "client.txt").read_text()
    assert str(target / "certs" / "client.p12") in note

    grouped = read_json(findings_file.parent / "demo.gitleaks-grouped.json")
    entry = grouped[str(target / "app" / "settings.py")]
    # the placeholder carries the finding id recorded in the grouped report
    assert entry["findings"][0]["id"] in settings
    assert "Processed 3 findings" in proc.stderr
    assert (findings_file.parent / "demo.gitleaks-grouped.md").exists()


def test_cli_relative_paths_and_existing_target(tmp_path, source_tree, run_cli, assert_exit, read_json):
    reports = tmp_path / "reports"
    reports.mkdir()
    (reports / "gitleaks.json").write_text(json.dumps([
        {"RuleID": "aws-access-token", "File": "source/app/settings.py", "StartLine": 3, "EndLine": 3,
         "Match": "demo", "Secret": "demo"},
    ]))

    first = run_cli(_args(Path("source"), Path("masked"), Path("reports/gitleaks.json"), "--mask", "[%s]"), cwd=tmp_path)
    assert_exit(first)
    assert (tmp_path / "masked" / "app" / "settings.py").read_bytes().endswith(b"NAME = '[settings]'\r\n")

    # a second run reuses the existing target; the value is gone, so the file fails
    second = run_cli(
        _args(Path("source"), Path("masked"), Path("reports/gitleaks.json"), "--log-level", "INFO"), cwd=tmp_path
    )
    assert_exit(second, 1)
    grouped = read_json(reports / "gitleaks-grouped.json")
    assert grouped["masked/app/settings.py"]["status"] == "failed"
    assert "Target directory already exists" in second.stderr


def test_cli_literal_strategy(tmp_path, source_tree, run_cli, assert_exit):
    (source_tree / "app" / "settings.py").write_bytes(b"A = 'pw1'\nB = 'pw1'\n")
    findings = tmp_path / "findings.json"
    findings.write_text(json.dumps([
        {"RuleID": "generic", "File": str(source_tree / "app" / "settings.py"), "StartLine": 1, "EndLine": 1,
         "Match": "A = 'pw1'", "Secret": "pw1"},
    ]))
    target = tmp_path / "masked"

    proc = run_cli(_args(source_tree, target, findings, "--strategy", "literal", "--mask", "X", "--newline", "auto"))
    assert_exit(proc)
    assert (target / "app" / "settings.py").read_bytes() == b"A = 'X'\nB = 'X'\n"
    assert (tmp_path / "findings.grouped.json").exists()


def test_cli_partial_failure_exit_code(tmp_path, source_tree, run_cli, assert_exit, read_json):
    findings = tmp_path / "findings.json"
    findings.write_text(json.dumps([
        {"RuleID": "generic", "File": str(source_tree / "app" / "settings.py"), "StartLine": 40, "EndLine": 41,
         "Match": "x", "Secret": "x"},
        {"RuleID": "pkcs12-file", "File": str(source_tree / "certs" / "client.p12"), "StartLine": 1, "EndLine": 1},
    ]))
    target = tmp_path / "masked"

    proc = run_cli(_args(source_tree, target, findings))
    assert_exit(proc, 1)
    grouped = read_json(tmp_path / "findings.grouped.json")
    assert grouped[str(target / "app" / "settings.py")]["status"] == "failed"
    assert grouped[str(target / "certs" / "client.p12")]["status"] == "done"
    assert (target / "app" / "settings.py").read_bytes() == (source_tree / "app" / "settings.py").read_bytes()


def test_cli_dot_prefixed_source_and_lf_file(tmp_path, source_tree, run_cli, assert_exit):
    (source_tree / "app" / "settings.py").write_bytes(b"A = 1\nTOKEN = 'hunter2'\nB = 2\n")
    (tmp_path / "findings.json").write_text(json.dumps([
        {"RuleID": "generic", "File": "./source/app/settings.py", "StartLine": 2, "EndLine": 2,
         "Match": "TOKEN = 'hunter2'", "Secret": "hunter2"},
    ]))

    # default flags: newline auto, span strategy
    proc = run_cli(
        ["--source", "./source", "--target", "./masked", "--findings", "findings.json", "--no-progress", "--mask", "X"],
        cwd=tmp_path,
    )
    assert_exit(proc)
    assert (tmp_path / "masked" / "app" / "settings.py").read_bytes() == b"A = 1\nTOKEN = 'X'\nB = 2\n"
