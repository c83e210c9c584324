import json

from logger import SessionLogger


def test_writes_jsonl_records(tmp_path):
    with SessionLogger(log_dir=tmp_path, session_name="game") as log:
        log.log("move", {"direction": "left", "score": 8})
        log.log("game_over", {"score": 1200})
        path = log.log_file

    assert path.name.startswith("game_")
    lines = path.read_text().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["event"] == "move"
    assert first["direction"] == "left"
    assert "timestamp" in first
    assert json.loads(lines[1])["score"] == 1200


def test_unique_file_per_logger(tmp_path):
    a = SessionLogger(log_dir=tmp_path)
    b = SessionLogger(log_dir=tmp_path)
    assert a.log_file != b.log_file
    a.close()
    b.close()


def test_verbose_echo(capsys):
    log = SessionLogger(verbose=True)
    log.log("submission", {"score": 1500, "ok": True})
    out = capsys.readouterr().out
    assert "[submission] score: 1500  ok: True" in out


def test_quiet_without_log_dir(capsys):
    log = SessionLogger()
    log.log("move", {"score": 4})
    assert capsys.readouterr().out == ""
    assert log.log_file is None
