#!/usr/bin/env python3
"""
Encode a text corpus (one document per line) into a .npy file of Mistral
token ids, recording time and memory usage.
"""

import os
import sys
import time
import json
from pathlib import Path

import psutil
from loguru import logger

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from mistral_tokenizer.bpe_tokenizer.tokenizer import MistralTokenizer


def get_process_memory_mb():
    """Get current process memory usage in MB"""
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024


def encode_and_report():
    config = {
        "input_path": "./data/corpus.txt",
        "vocab_path": "./data/tokenizer/vocab.b64",
        "merges_path": "./data/tokenizer/merges.b64",
        "output_dir": "./data/token",
        "log_path": "./output/log/encode_corpus.log",
    }
    logger.add(config["log_path"], rotation="1 day", retention="7 days", level="INFO")

    os.makedirs(config["output_dir"], exist_ok=True)
    output_path = os.path.join(config["output_dir"], f"{Path(config['input_path']).stem}_token_ids.npy")
    stats_path = os.path.join(config["output_dir"], f"{Path(config['input_path']).stem}_encode_stats.json")

    for key in ("vocab_path", "merges_path", "input_path"):
        if not os.path.exists(config[key]):
            logger.error(f"File not found: {config[key]}")
            return False

    initial_memory = get_process_memory_mb()
    logger.info(f"Initial process memory: {initial_memory:.2f} MB")

    load_start = time.time()
    tokenizer = MistralTokenizer.from_files(config["vocab_path"], config["merges_path"])
    load_time = time.time() - load_start
    logger.info(f"Tokenizer loaded in {load_time:.2f}s, vocabulary size {tokenizer.vocab_size}")

    encode_start = time.time()
    num_tokens = tokenizer.encode_to_npfile(config["input_path"], output_path)
    encode_time = time.time() - encode_start
    end_memory = get_process_memory_mb()

    input_bytes = os.path.getsize(config["input_path"])
    stats = {
        "input_file": config["input_path"],
        "input_bytes": input_bytes,
        "output_file": output_path,
        "total_tokens": num_tokens,
        "bytes_per_token": input_bytes / num_tokens if num_tokens else 0,
        "load_seconds": load_time,
        "encode_seconds": encode_time,
        "tokens_per_second": num_tokens / encode_time if encode_time > 0 else 0,
        "memory": {
            "initial_mb": initial_memory,
            "final_mb": end_memory,
            "used_mb": end_memory - initial_memory,
        },
    }
    with open(stats_path, "w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2)

    logger.info(f"Encoded {num_tokens} tokens in {encode_time:.2f}s ({stats['tokens_per_second']:.0f} tokens/s)")
    logger.info(f"Statistics saved to {stats_path}")
    return True


if __name__ == "__main__":
    sys.exit(0 if encode_and_report() else 1)
