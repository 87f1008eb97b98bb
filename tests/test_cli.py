import json
import os
import subprocess
import sys

import pytest

from paybuilder import cli

SAMPLE_CSV = (
    "debtor_name,debtor_iban,creditor_name,creditor_iban,creditor_bic,amount,currency,"
    "execution_date,end_to_end_id,remittance_info\n"
    "John Doe,DE89370400440532013000,Jane Smith,GB29NWBK60161331926819,NWBKGB2L,1000.50,EUR,"
    "2025-11-15,INV-12345,Payment for Invoice 12345\n"
)


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "configure_logging", lambda level, fmt: calls.append((level, fmt)))
    for name in ("INPUT_DIR", "OUTPUT_DIR", "SEPARATOR", "ENCODING", "ERROR_POLICY", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(f"PAYMENT_BUILDER_{name}", raising=False)
    return calls


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "payments.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


def test_cli_parse(sample_file, capsys):
    cli.main(["parse", str(sample_file)])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["debtor"]["name"] == "John Doe"
    assert data[0]["amount"] == "1000.50"


def test_cli_generate_stdout(sample_file, capsys):
    cli.main(["generate", str(sample_file)])
    out = capsys.readouterr().out
    assert "<EndToEndId>INV-12345</EndToEndId>" in out
    assert '<InstdAmt Ccy="EUR">1000.50</InstdAmt>' in out


def test_cli_generate_to_file(sample_file, tmp_path, capsys):
    target = tmp_path / "out.xml"
    cli.main(["generate", str(sample_file), "-o", str(target)])
    assert "Generated payment message" in capsys.readouterr().out
    assert target.read_text(encoding="utf-8").endswith("</Document>")


def test_cli_generate_malformed_file(tmp_path, capsys):
    bad = tmp_path / "bad.csv"
    bad.write_text("creditor_name,amount\nBob,ten\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["generate", str(bad)])
    assert exc_info.value.code == 1
    assert "line 2" in capsys.readouterr().err


def test_cli_generate_lenient(tmp_path, capsys):
    bad = tmp_path / "bad.csv"
    bad.write_text("creditor_name,amount\nBob,ten\nAlice,5\n", encoding="utf-8")
    cli.main(["--lenient", "generate", str(bad)])
    out = capsys.readouterr().out
    assert "<NbOfTxs>1</NbOfTxs>" in out
    assert "<Nm>Alice</Nm>" in out


def test_cli_generate_header_only(tmp_path, capsys):
    empty = tmp_path / "empty.csv"
    empty.write_text("creditor_name,amount\n", encoding="utf-8")
    cli.main(["generate", str(empty)])
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "No records found" in captured.err


def test_cli_validate(sample_file, tmp_path, capsys):
    cli.main(["validate", str(sample_file)])
    assert "Validation Successful" in capsys.readouterr().out

    bad = tmp_path / "bad_bic.csv"
    bad.write_text("creditor_name,creditor_bic\nJane,NOPE\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["validate", str(bad)])
    assert exc_info.value.code == 1
    assert "[Record 1]" in capsys.readouterr().out


def test_cli_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["parse", str(tmp_path / "missing.csv")])
    assert exc_info.value.code == 1
    assert "Error parsing file" in capsys.readouterr().err


def test_cli_run(sample_file, tmp_path, capsys, quiet_logging):
    out_dir = tmp_path / "xml"
    cli.main(["--log-format", "json", "run", "--input-dir", str(tmp_path), "--output-dir", str(out_dir)])

    assert "1 file(s) processed successfully" in capsys.readouterr().out
    assert (out_dir / "payments_pain013.xml").exists()
    assert quiet_logging == [("INFO", "json")]


def test_cli_invalid_env_configuration(monkeypatch, capsys):
    monkeypatch.setenv("PAYMENT_BUILDER_ERROR_POLICY", "sometimes")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["run"])
    assert exc_info.value.code == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_cli_empty_separator(sample_file, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--separator", "", "parse", str(sample_file)])
    assert exc_info.value.code == 2
    assert "separator must not be empty" in capsys.readouterr().err


def test_cli_generate_drops_control_characters(tmp_path, capsys):
    noisy = tmp_path / "noisy.csv"
    noisy.write_text("creditor_name,amount\nAcme\x01Corp,10.00\n", encoding="utf-8")
    cli.main(["generate", str(noisy)])
    assert "<Nm>AcmeCorp</Nm>" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv, message",
    [
        (["--log-level", "chatty"], "log level"),
        (["--encoding", "klingon-8"], "encoding"),
    ],
)
def test_cli_invalid_option_values(sample_file, capsys, quiet_logging, argv, message):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv + ["parse", str(sample_file)])
    assert exc_info.value.code == 2
    err = capsys.readouterr().err
    assert "Invalid configuration" in err
    assert message in err
    assert quiet_logging == []


def test_cli_invalid_env_log_level(monkeypatch, capsys):
    monkeypatch.setenv("PAYMENT_BUILDER_LOG_LEVEL", "chatty")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["run"])
    assert exc_info.value.code == 2
    assert "Unknown log level" in capsys.readouterr().err


def test_cli_invalid_command():
    result = subprocess.run(
        [sys.executable, "-m", "paybuilder", "garbage"],
        capture_output=True,
        text=True,
        cwd=os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    )
    assert result.returncode != 0
    assert "invalid choice" in result.stderr
