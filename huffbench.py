"""
Benchmark: tree-header Huffman compressor on synthetic data

Runs repeated compress/decompress rounds over generated datasets and records
timings, header overhead and compression ratio.

Outputs (in --outdir):
  - metrics.csv     (raw row per run)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python huffbench.py --outdir results --runs 5
  python huffbench.py --outdir results --runs 3 --size_kb 256 --scaling_max_kb 2048
  python huffbench.py --generators uniform256,repetitive99,empty --no_scaling
"""

from __future__ import annotations

import argparse
import csv
import io
import random
import statistics
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

import hufftree as huff
from huffbits import BitInputStream, BitOutputStream


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]


# Synthetic dataset generators

def _sample_weighted(symbols: List[int], weights: List[float], size: int, rng: random.Random) -> bytes:
    # rng.choices does the cumulative-weight bisect for us
    return bytes(rng.choices(symbols, weights=weights, k=size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(others) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return _sample_weighted(list(range(alphabet)), weights, size, random.Random(seed))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return _sample_weighted([ord(c) for c in chars], weights, size, random.Random(seed))

def gen_single_byte(size: int, seed: int = 0) -> bytes:
    # one distinct byte: smallest non-trivial tree, the byte plus PSEUDO_EOF
    return bytes([random.Random(seed).randrange(256)]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single_byte": lambda size, seed: gen_single_byte(size, seed=seed),
    "empty": lambda size, seed: b"",
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """Unknown names fall back to uniform256 so one typo does not sink a long run."""
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    unique_symbols: int # including PSEUDO_EOF

    build_ms: float # count + tree + code table
    encode_ms: float # header + payload
    decode_ms: float
    total_ms: float

    header_bits: int
    compressed_bytes: int
    compression_ratio: float
    max_code_length: int
    correctness_ok: int # 1 or 0


def run_one(data: bytes) -> MetricRow:
    """Compress and decompress data once, stage by stage, timing each stage."""
    t0 = now_ns()
    bit_in = BitInputStream(io.BytesIO(data))
    counts = huff.read_for_counts(bit_in)
    root = huff.build_huffman_tree(counts)
    codings = huff.make_codings_from_tree(root)
    t1 = now_ns()

    sink = io.BytesIO()
    bit_out = BitOutputStream(sink)
    bit_out.write_bits(huff.BITS_PER_INT, huff.HUFF_TREE)
    huff.write_header(root, bit_out)
    header_bits = bit_out.bits_written - huff.BITS_PER_INT
    bit_in.reset()
    huff.write_compressed_bits(codings, bit_in, bit_out)
    bit_out.close()
    packed = sink.getvalue()
    t2 = now_ns()

    decoded = huff.decompress_bytes(packed)
    t3 = now_ns()

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        unique_symbols=len(codings),
        build_ms=ns_to_ms(t1 - t0),
        encode_ms=ns_to_ms(t2 - t1),
        decode_ms=ns_to_ms(t3 - t2),
        total_ms=ns_to_ms(t3 - t0),
        header_bits=header_bits,
        compressed_bytes=len(packed),
        compression_ratio=len(packed) / max(1, len(data)),
        max_code_length=max(len(c) for c in codings.values()),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    names = [f.name for f in fields(MetricRow)]
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=names)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in names})


SUMMARY_METRICS = ["compression_ratio", "build_ms", "encode_ms", "decode_ms", "total_ms", "header_bits"]

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes and write mean/stdev of
    every SUMMARY_METRICS column plus the round-trip success rate
    """
    groups: Dict[Tuple[str, str, int], List[MetricRow]] = {}
    for r in rows:
        groups.setdefault((r.exp_name, r.dataset_name, r.file_size_bytes), []).append(r)

    header = ["exp_name", "dataset_name", "file_size_bytes", "n_runs"]
    for m in SUMMARY_METRICS:
        header += [f"{m}_mean", f"{m}_stdev"]
    header.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=header)
        w.writeheader()
        for (exp_name, dataset_name, size_b), items in sorted(groups.items()):
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "n_runs": len(items),
            }
            for m in SUMMARY_METRICS:
                vals = [getattr(x, m) for x in items]
                out[f"{m}_mean"] = statistics.mean(vals)
                out[f"{m}_stdev"] = statistics.stdev(vals) if len(vals) > 1 else 0.0
            out["correctness_ok_rate"] = sum(x.correctness_ok for x in items) / len(items)
            w.writerow(out)


# Plotting

def _mean_of(rows: List[MetricRow], field: str) -> float:
    vals = [getattr(r, field) for r in rows]
    return statistics.mean(vals) if vals else float("nan")


def plot_distribution(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    for field, ylabel, title, filename in [
        ("compression_ratio", "Compressed Bytes / Original Bytes", "Compression Ratio by Distribution", "distribution_ratio.png"),
        ("total_ms", "Total Time (ms) (build + encode + decode)", "Total Runtime by Distribution", "distribution_total_time.png"),
        ("header_bits", "Tree Header (bits)", "Header Size by Distribution", "distribution_header_bits.png"),
    ]:
        y = [_mean_of([r for r in exp_rows if r.dataset_name == d], field) for d in datasets]
        plt.figure()
        plt.bar(x, y)
        plt.xticks(x, datasets, rotation=20, ha="right")
        plt.ylabel(ylabel)
        plt.title(title)
        plt.tight_layout()
        plt.savefig(outdir / filename, dpi=200)
        plt.close()


def plot_scaling(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "size_scaling"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    for field, ylabel, filename in [
        ("encode_ms", "Encode Time (ms)", "scaling_encode_time.png"),
        ("decode_ms", "Decode Time (ms)", "scaling_decode_time.png"),
        ("compression_ratio", "Compressed Bytes / Original Bytes", "scaling_ratio.png"),
    ]:
        plt.figure()
        for d in datasets:
            d_rows = [r for r in exp_rows if r.dataset_name == d]
            sizes = sorted(set(r.file_size_bytes for r in d_rows))
            y = [_mean_of([r for r in d_rows if r.file_size_bytes == s], field) for s in sizes]
            plt.plot(sizes, y, marker="o", label=d)
        plt.xscale("log", base=2)
        plt.xlabel("File Size (bytes)")
        plt.ylabel(ylabel)
        plt.title(f"{ylabel} vs Size")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / filename, dpi=200)
        plt.close()


# Main

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")

    ap.add_argument("--no_distribution", action="store_true", help="Skip the fixed-size distribution experiment")
    ap.add_argument("--no_scaling", action="store_true", help="Skip the size scaling experiment")

    ap.add_argument("--size_kb", type=int, default=128, help="File size in KB for the distribution experiment")
    ap.add_argument("--generators", type=str,
                    default="uniform256,zipf128,repetitive90,repetitive99,english_like,single_byte",
                    help="Comma-separated dataset generator names for the distribution experiment")

    ap.add_argument("--scaling_min_kb", type=int, default=4, help="Smallest size in KB (doubles up to the max)")
    ap.add_argument("--scaling_max_kb", type=int, default=512, help="Largest size in KB")
    ap.add_argument("--scaling_generators", type=str, default="uniform256,english_like",
                    help="Comma-separated dataset generator names for the size scaling experiment")

    args = ap.parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    def record(exp_name: str, gen_name: str, size_b: int, seed: int) -> None:
        for run_id in range(1, args.runs + 1):
            dataset_name, data = generate_dataset(gen_name, size_b, seed + run_id)
            row = run_one(data)
            row.exp_name = exp_name
            row.dataset_name = dataset_name
            row.run_id = run_id
            rows.append(row)

    if not args.no_distribution:
        fixed_size = max(1, args.size_kb) * 1024
        for gen_name in parse_csv_list(args.generators):
            record("distribution", gen_name, fixed_size, args.seed)
            print(f"distribution: {gen_name} done")

    if not args.no_scaling:
        size_b = max(1, args.scaling_min_kb) * 1024
        max_bytes = max(1, args.scaling_max_kb) * 1024
        while size_b <= max_bytes:
            for gen_name in parse_csv_list(args.scaling_generators):
                record("size_scaling", gen_name, size_b, args.seed + 10_000 + size_b)
            print(f"size_scaling: {size_b} bytes done")
            size_b *= 2

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    plot_distribution(rows, outdir)
    plot_scaling(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Round-trip success rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
