import csv
import sys

import pytest

import experiments as exp


def test_demo_prints_sample(capsys):
    assert exp.run_demo() == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        f"Compressed: {exp.SAMPLE_BITS}",
        "Uncompressed: Hello world!",
    ]


def test_main_defaults_to_demo(capsys):
    assert exp.main([]) == 0
    assert "Uncompressed: Hello world!" in capsys.readouterr().out


def test_main_reads_sys_argv(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["experiments.py", "demo"])
    assert exp.main() == 0
    assert "Compressed: " in capsys.readouterr().out


def test_generators_are_seeded():
    for name in exp.GENERATOR_REGISTRY:
        _, first = exp.generate_dataset(name, 512, seed=7)
        _, second = exp.generate_dataset(name, 512, seed=7)
        assert first == second
        assert len(first) == 512


def test_unknown_generator():
    with pytest.raises(ValueError):
        exp.generate_dataset("nope", 10, seed=0)


def test_tied_generator_has_equal_counts():
    text = exp.gen_tied(320, alphabet=32, seed=1)
    counts = {c: text.count(c) for c in set(text)}
    assert len(counts) == 32
    assert set(counts.values()) == {10}


def test_size_steps():
    assert exp.size_steps(1024, 8192) == [1024, 2048, 4096, 8192]
    assert exp.size_steps(4, 3) == []


@pytest.mark.parametrize("mode", exp.DECODE_MODES)
def test_run_one(mode):
    text = exp.gen_zipf_like(2000, alphabet=32, seed=3)
    row = exp.run_one(text, mode)
    assert row.correctness_ok == 1
    assert row.decode_mode == mode
    assert row.text_length == 2000
    assert row.unique_symbols == len(set(text))
    assert row.entropy_bits <= row.bits_per_symbol < row.entropy_bits + 1
    assert 0 < row.efficiency <= 1


def test_run_one_rejects_unknown_mode():
    with pytest.raises(ValueError):
        exp.run_one("abc", "fast")


def test_run_writes_csv(tmp_path, capsys):
    code = exp.main([
        "run", "--outdir", str(tmp_path), "--runs", "1",
        "--size_kb", "1", "--generators", "zipf32,tied32",
        "--min_kb", "1", "--max_kb", "2", "--scaling_generators", "uniform16",
        "--no_plots",
    ])
    assert code == 0

    with (tmp_path / "metrics.csv").open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 8
    assert all(r["correctness_ok"] == "1" for r in rows)

    with (tmp_path / "summary.csv").open(encoding="utf-8") as f:
        summary = list(csv.DictReader(f))
    assert len(summary) == 8
    assert all(float(r["correctness_ok_rate"]) == 1.0 for r in summary)
    assert "Correctness rate across all runs: 1.000" in capsys.readouterr().out


def test_plots_are_written(tmp_path):
    rows = []
    for name in ("zipf32", "tied32"):
        for mode in exp.DECODE_MODES:
            row = exp.run_one(exp.generate_dataset(name, 1000, seed=1)[1], mode)
            row.exp_name = "exp1_distribution"
            row.dataset_name = name
            rows.append(row)
    exp.plot_experiment_1(rows, tmp_path)
    assert (tmp_path / "exp1_bits_per_symbol.png").exists()
    assert (tmp_path / "exp1_decode_time.png").exists()
