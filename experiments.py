"""
Huffman prefix-code experiments

Two commands:
  demo   encodes "Hello world!" and decodes the matching bit string with the
         fixed sample code table
  run    builds code tables for synthetic texts, measures build / encode / decode
         time and code quality, and writes CSV + charts

Outputs of `run` (in --outdir):
  - metrics.csv     (raw row per run per decode mode)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py demo
  python experiments.py run --outdir results --runs 5
  python experiments.py run --outdir results --runs 3 --size_kb 64 --generators uniform64,zipf64,tied32
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
from loguru import logger

from code_table import shannon_entropy
from huffman_codes import HuffmanTree, count_symbols
from huffman_errors import HuffmanError


SAMPLE_CODE_TABLE: Dict[str, str] = {
    'o': "100",
    'l': "01",
    'e': "111",
    ' ': "0000",
    '!': "110",
    'w': "101",
    'd': "0011",
    'H': "0010",
    'r': "0001",
}
SAMPLE_MESSAGE = "Hello world!"
SAMPLE_BITS = "0010111010110000001011000001010011110"

DECODE_MODES = ("lenient", "strict")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


# Demo

def run_demo() -> int:
    engine = HuffmanTree.from_table(SAMPLE_CODE_TABLE)
    print(f"Compressed: {engine.encode(SAMPLE_MESSAGE)}")
    print(f"Uncompressed: {engine.decode(SAMPLE_BITS)}")
    return 0


# Synthetic text generators

PRINTABLE = "".join(chr(c) for c in range(33, 127))

def _pick_alphabet(alphabet: int) -> str:
    if not 1 <= alphabet <= len(PRINTABLE):
        raise ValueError(f"alphabet must be between 1 and {len(PRINTABLE)}, got {alphabet}")
    return PRINTABLE[:alphabet]

def _sample_cdf(rng: random.Random, symbols: str, weights: List[float], size: int) -> str:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)

    out = []
    for _ in range(size):
        r = rng.random()
        lo, hi = 0, len(cdf) - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if r <= cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        out.append(symbols[lo])
    return "".join(out)

def gen_uniform(size: int, alphabet: int = 64, seed: int = 0) -> str:
    rng = random.Random(seed)
    symbols = _pick_alphabet(alphabet)
    return "".join(rng.choice(symbols) for _ in range(size))

def gen_repetitive(size: int, dominant: str = "A", dom_frac: float = 0.90, seed: int = 0) -> str:
    rng = random.Random(seed)
    others = [c for c in PRINTABLE if c != dominant]
    return "".join(dominant if rng.random() < dom_frac else rng.choice(others) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 64, s: float = 1.2, seed: int = 0) -> str:
    rng = random.Random(seed)
    symbols = _pick_alphabet(alphabet)
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return _sample_cdf(rng, symbols, weights, size)

def gen_english_like(size: int, seed: int = 0) -> str:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == " ":
            weights.append(13.0)
        elif ch == "\n":
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return _sample_cdf(rng, chars, weights, size)

def gen_tied(size: int, alphabet: int = 32, seed: int = 0) -> str:
    """Every symbol occurs equally often (all weights tie), in shuffled order."""
    rng = random.Random(seed)
    symbols = _pick_alphabet(alphabet)
    per_symbol = max(1, size // alphabet)
    out = list(symbols * per_symbol)
    rng.shuffle(out)
    return "".join(out)

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], str]] = {
    "uniform64": lambda size, seed: gen_uniform(size, alphabet=64, seed=seed),
    "uniform16": lambda size, seed: gen_uniform(size, alphabet=16, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "zipf32": lambda size, seed: gen_zipf_like(size, alphabet=32, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "tied32": lambda size, seed: gen_tied(size, alphabet=32, seed=seed),
}

def generate_dataset(name: str, size: int, seed: int) -> Tuple[str, str]:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"unknown generator {name!r}, choose from {', '.join(sorted(GENERATOR_REGISTRY))}")
    return name, fn(max(1, size), seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    text_length: int
    run_id: int
    decode_mode: str  # "lenient" or "strict"
    unique_symbols: int

    build_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    encoded_bits: int
    bits_per_symbol: float
    entropy_bits: float
    efficiency: float  # entropy / bits_per_symbol
    max_code_length: int
    correctness_ok: int  # 1 or 0


def run_one(text: str, decode_mode: str) -> MetricRow:
    if decode_mode not in DECODE_MODES:
        raise ValueError(f"decode_mode must be one of {DECODE_MODES}")

    t0 = now_ns()
    engine = HuffmanTree(text)
    t1 = now_ns()

    encoded = engine.encode(text)
    t2 = now_ns()

    decoded = engine.decode(encoded, strict=(decode_mode == "strict"))
    t3 = now_ns()

    codes = engine.get_code_table()
    freqs = count_symbols(text)
    bits_per_symbol = len(encoded) / max(1, len(text))
    entropy = shannon_entropy(freqs)

    return MetricRow(
        exp_name="",
        dataset_name="",
        text_length=len(text),
        run_id=0,
        decode_mode=decode_mode,
        unique_symbols=len(codes),
        build_ms=ns_to_ms(t1 - t0),
        encode_ms=ns_to_ms(t2 - t1),
        decode_ms=ns_to_ms(t3 - t2),
        total_ms=ns_to_ms(t3 - t0),
        encoded_bits=len(encoded),
        bits_per_symbol=bits_per_symbol,
        entropy_bits=entropy,
        efficiency=(entropy / bits_per_symbol) if bits_per_symbol else 0.0,
        max_code_length=max((len(c) for c in codes.values()), default=0),
        correctness_ok=1 if decoded == text else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)


SUMMARY_METRICS = ("bits_per_symbol", "efficiency", "build_ms", "encode_ms", "decode_ms", "total_ms")

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, text_length, decode_mode and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.text_length, r.decode_mode)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "text_length", "decode_mode", "n_runs"]
    for metric in SUMMARY_METRICS:
        summary_fields += [f"{metric}_mean", f"{metric}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, length, decode_mode = key
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "text_length": length,
                "decode_mode": decode_mode,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for metric in SUMMARY_METRICS:
                row[f"{metric}_mean"], row[f"{metric}_stdev"] = mean_stdev([getattr(x, metric) for x in items])
            w.writerow(row)


# Plotting

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, mode: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.decode_mode == mode]
        return statistics.mean(vals) if vals else float("nan")

    plt.figure()
    plt.plot(x, [mean_for(d, "lenient", "bits_per_symbol") for d in datasets], marker="o", label="huffman")
    plt.plot(x, [mean_for(d, "lenient", "entropy_bits") for d in datasets], marker="x", linestyle="--", label="entropy")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Experiment 1: Code Length vs Entropy by Distribution")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_bits_per_symbol.png", dpi=200)
    plt.close()

    plt.figure()
    for mode in DECODE_MODES:
        plt.plot(x, [mean_for(d, mode, "decode_ms") for d in datasets], marker="o", label=mode)
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Decode Time (ms)")
    plt.title("Experiment 1: Decode Time by Distribution")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_decode_time.png", dpi=200)
    plt.close()


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.text_length for r in dist_rows))

        def mean_size(size: int, mode: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.text_length == size and r.decode_mode == mode]
            return statistics.mean(vals) if vals else float("nan")

        for field, label in (("encode_ms", "Encode Time (ms)"), ("decode_ms", "Decode Time (ms)"),
                             ("total_ms", "Total Time (ms) (build + encode + decode)")):
            plt.figure()
            for mode in DECODE_MODES:
                plt.plot(sizes, [mean_size(s, mode, field) for s in sizes], marker="o", label=mode)
            plt.xlabel("Text Length (symbols)")
            plt.ylabel(label)
            plt.title(f"Experiment 2: {label.split(' (')[0]} vs Size ({dist})")
            plt.legend()
            plt.tight_layout()
            plt.savefig(outdir / f"exp2_{field}_{dist}.png", dpi=200)
            plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def size_steps(min_size: int, max_size: int) -> List[int]: # powers-of-two growth
    sizes = []
    s = max(1, min_size)
    while s <= max_size:
        sizes.append(s)
        s *= 2
    return sizes

def collect_rows(args: argparse.Namespace) -> List[MetricRow]:
    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.size_kb) * 1024
        for gen_name in parse_csv_list(args.generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, text = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                for mode in DECODE_MODES:
                    row = run_one(text, mode)
                    row.exp_name = "exp1_distribution"
                    row.dataset_name = dataset_name
                    row.run_id = run_id
                    rows.append(row)
            logger.info(f"exp1: finished {gen_name} ({args.runs} runs)")

    # Experiment 2: size scaling
    if not args.no_exp2:
        sizes = size_steps(args.min_kb * 1024, args.max_kb * 1024)
        for gen_name in parse_csv_list(args.scaling_generators):
            for size in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, text = generate_dataset(gen_name, size, args.seed + 10_000 + size + run_id)
                    for mode in DECODE_MODES:
                        row = run_one(text, mode)
                        row.exp_name = "exp2_size_scaling"
                        row.dataset_name = dataset_name
                        row.run_id = run_id
                        rows.append(row)
                logger.info(f"exp2: finished {gen_name} at {size} symbols")

    return rows

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Huffman prefix-code demo and experiments")
    ap.add_argument("--log-level", type=str, default="INFO", help="Log level for stderr output")
    sub = ap.add_subparsers(dest="command")

    sub.add_parser("demo", help="Encode/decode the fixed 'Hello world!' sample")

    run = sub.add_parser("run", help="Run experiments and write CSV + charts")
    run.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    run.add_argument("--runs", type=int, default=5, help="Repetitions per configuration")
    run.add_argument("--seed", type=int, default=123, help="Base random seed")
    run.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    run.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    run.add_argument("--no_plots", action="store_true", help="Only write CSV files")
    run.add_argument("--size_kb", type=int, default=64, help="Experiment 1 fixed text size in K symbols")
    run.add_argument("--generators", type=str, default="uniform64,zipf64,repetitive90,english_like,tied32",
                     help="Comma-separated generator names for experiment 1")
    run.add_argument("--min_kb", type=int, default=4, help="Experiment 2 min size in K symbols")
    run.add_argument("--max_kb", type=int, default=256, help="Experiment 2 max size in K symbols")
    run.add_argument("--scaling_generators", type=str, default="uniform64,zipf64",
                     help="Comma-separated generator names for experiment 2")
    return ap

def run_experiments(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows = collect_rows(args)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "run":
        return run_experiments(args)
    try:
        return run_demo()
    except HuffmanError as e:
        logger.error(f"Demo failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
