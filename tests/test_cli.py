import re
from pathlib import Path

import pytest

from smb_payables import __version__
from smb_payables.cli import main


def write_config(tmp_path: Path, display_mode: str = "table") -> str:
    path = tmp_path / "smb_payables_config.toml"
    path.write_text(
        f"""
[fiscal_year]
start_date = "2024-01-01"
end_date = "2024-12-31"

[database]
path = "cli.sqlite"

[logging]
level = "WARNING"

[display]
mode = "{display_mode}"
""",
        encoding="utf-8",
    )
    return str(path)


def add_rent(config: str, capsys) -> str:
    main(
        [
            "--config",
            config,
            "obligations",
            "add",
            "--description",
            "Office rent",
            "--value",
            "1200",
            "--anchor-date",
            "2024-01-05",
            "--recurring",
            "monthly",
        ]
    )
    out = capsys.readouterr().out
    match = re.search(r"Created obligation (\S+)", out)
    assert match is not None
    return match.group(1)


def test_version(capsys):
    main(["--version"])

    assert __version__ in capsys.readouterr().out


def test_ledger_pay_and_unpay_flow(tmp_path, capsys):
    config = write_config(tmp_path)
    rent_id = add_rent(config, capsys)

    main(["--config", config, "obligations", "list"])
    assert "Office rent" in capsys.readouterr().out

    ledger_args = [
        "--config",
        config,
        "--as-of",
        "2024-03-10",
        "ledger",
        "--from-date",
        "2024-01-01",
        "--to-date",
        "2024-03-31",
    ]
    main(ledger_args)
    out = capsys.readouterr().out
    assert out.count("Overdue") >= 3
    assert "2024-03-05" in out

    main(
        [
            "--config",
            config,
            "--as-of",
            "2024-03-10",
            "pay",
            rent_id,
            "--due-date",
            "2024-02-05",
        ]
    )
    assert "as paid" in capsys.readouterr().out

    main(ledger_args)
    ledger_table = capsys.readouterr().out.split("=== Ledger summary ===")[0]
    assert " Paid " in ledger_table

    main(["--config", config, "unpay", rent_id, "--due-date", "2024-02-05"])
    capsys.readouterr()

    main(ledger_args)
    ledger_table = capsys.readouterr().out.split("=== Ledger summary ===")[0]
    assert "1200.00" in ledger_table
    assert " Paid " not in ledger_table


def test_pay_recurring_requires_due_date(tmp_path, capsys):
    config = write_config(tmp_path)
    rent_id = add_rent(config, capsys)

    with pytest.raises(SystemExit, match="--due-date"):
        main(["--config", config, "pay", rent_id])


def test_pay_unknown_obligation(tmp_path):
    config = write_config(tmp_path)

    with pytest.raises(SystemExit, match="not found"):
        main(["--config", config, "pay", "missing", "--due-date", "2024-01-05"])


def test_pay_rejects_a_date_that_is_not_due(tmp_path, capsys):
    config = write_config(tmp_path)
    rent_id = add_rent(config, capsys)

    with pytest.raises(SystemExit, match="Error: 2024-02-06 is not a due date"):
        main(["--config", config, "pay", rent_id, "--due-date", "2024-02-06"])

    main(
        [
            "--config",
            config,
            "--as-of",
            "2024-03-10",
            "ledger",
            "--from-date",
            "2024-01-01",
            "--to-date",
            "2024-03-31",
        ]
    )
    out = capsys.readouterr().out
    assert " Paid " not in out.split("=== Ledger summary ===")[0]
    assert "orphaned_payment" not in out


def test_pay_with_fine_and_interest(tmp_path, capsys):
    config = write_config(tmp_path)
    rent_id = add_rent(config, capsys)

    main(
        [
            "--config",
            config,
            "pay",
            rent_id,
            "--due-date",
            "2024-02-05",
            "--paid-date",
            "2024-02-15",
            "--fine",
            "24",
            "--interest",
            "3.15",
        ]
    )
    capsys.readouterr()

    main(
        [
            "--config",
            config,
            "--as-of",
            "2024-03-10",
            "ledger",
            "--from-date",
            "2024-02-01",
            "--to-date",
            "2024-02-29",
        ]
    )
    ledger_table = capsys.readouterr().out.split("=== Ledger summary ===")[0]

    assert "fine_amount" in ledger_table
    assert "24.00" in ledger_table
    assert "3.15" in ledger_table


def test_profit_command(tmp_path, capsys):
    config = write_config(tmp_path)
    add_rent(config, capsys)
    main(
        ["--config", config, "sales", "add", "--date", "2024-02-10", "--amount", "2000"]
    )
    main(
        [
            "--config",
            config,
            "expenses",
            "add",
            "--date",
            "2024-02-03",
            "--amount",
            "80",
            "--description",
            "Ink",
        ]
    )
    capsys.readouterr()

    main(
        [
            "--config",
            config,
            "profit",
            "--from-date",
            "2024-02-01",
            "--to-date",
            "2024-02-29",
        ]
    )
    out = capsys.readouterr().out

    # 1200 / 30 * 29 days = 1160.00 of prorated rent.
    assert "1160.00" in out
    assert "760.00" in out


def test_alerts_command(tmp_path, capsys):
    config = write_config(tmp_path)
    add_rent(config, capsys)

    main(["--config", config, "--as-of", "2024-03-05", "alerts"])
    out = capsys.readouterr().out

    assert "due_today" in out
    assert "overdue" in out


def test_csv_display_mode_writes_files(tmp_path, capsys):
    config = write_config(tmp_path, display_mode="csv")
    add_rent(config, capsys)
    output_dir = tmp_path / "out"

    main(
        [
            "--config",
            config,
            "--as-of",
            "2024-03-10",
            "--output",
            str(output_dir),
            "ledger",
        ]
    )

    names = sorted(p.name for p in output_dir.glob("*.csv"))
    assert any(n.startswith("payable_ledger_") for n in names)
    assert any(n.startswith("ledger_summary_") for n in names)


def test_invalid_obligation_is_reported_as_error(tmp_path):
    config = write_config(tmp_path)

    with pytest.raises(SystemExit, match="Error"):
        main(
            [
                "--config",
                config,
                "obligations",
                "add",
                "--description",
                "Bad",
                "--value",
                "10",
                "--anchor-date",
                "2024-02-01",
                "--recurring",
                "weekly",
                "--end-date",
                "2024-01-01",
            ]
        )
