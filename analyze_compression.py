#!/usr/bin/env python3
"""
Sample documents from a corpus, encode them with the Mistral tokenizer and
report the compression ratio (bytes/token).
"""
import os
import sys
import random
from pathlib import Path
import json

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from mistral_tokenizer.bpe_tokenizer.tokenizer import MistralTokenizer


def extract_documents(input_path: str, separator: str, num_documents: int = 10, random_seed: int = 42) -> list[str]:
    """
    Split the input file on `separator` and sample `num_documents` of the
    non-empty documents.
    """
    random.seed(random_seed)

    with open(input_path, 'r', encoding='utf-8', errors='ignore') as f:
        content = f.read()

    documents = [doc.strip() for doc in content.split(separator) if doc.strip()]
    print(f"Total documents in file: {len(documents)}")

    if len(documents) < num_documents:
        print(f"Warning: Only {len(documents)} documents available, less than requested {num_documents}")
        return documents
    return random.sample(documents, num_documents)


def analyze_compression(tokenizer: MistralTokenizer, documents: list[str]) -> dict:
    """
    Args:
        tokenizer: MistralTokenizer
        documents: documents to encode

    Returns:
        per-document and summary statistics
    """
    results = {
        "total_documents": len(documents),
        "documents": [],
        "summary": {}
    }

    total_bytes = 0
    total_tokens = 0
    ratios = []

    print("\n" + "=" * 100)
    print("Document Encoding and Compression Analysis")
    print("=" * 100)

    for idx, doc in enumerate(documents, 1):
        num_bytes = len(doc.encode('utf-8'))
        # BOS is not part of the text
        token_ids = tokenizer.encode(doc, add_bos_token=False)
        num_tokens = len(token_ids)
        ratio = num_bytes / num_tokens if num_tokens > 0 else 0
        round_trip_ok = tokenizer.decode(token_ids, add_bos_token=False) == doc

        ratios.append(ratio)
        total_bytes += num_bytes
        total_tokens += num_tokens

        doc_preview = doc[:100].replace('\n', ' ')
        print(f"\nDocument {idx}:")
        print(f"  Preview: {doc_preview}..." if len(doc) > 100 else f"  Content: {doc_preview}")
        print(f"  Bytes: {num_bytes:>8}")
        print(f"  Tokens: {num_tokens:>8}")
        print(f"  Compression ratio (bytes/token): {ratio:>8.4f}")
        print(f"  Round trip: {'ok' if round_trip_ok else 'MISMATCH'}")

        results["documents"].append({
            "index": idx,
            "bytes": num_bytes,
            "tokens": num_tokens,
            "compression_ratio": ratio,
            "round_trip_ok": round_trip_ok,
            "preview": doc_preview,
            "token_ids": token_ids[:20],
        })

    results["summary"] = {
        "total_bytes": total_bytes,
        "total_tokens": total_tokens,
        "overall_compression_ratio": total_bytes / total_tokens if total_tokens > 0 else 0,
        "average_compression_ratio": sum(ratios) / len(ratios) if ratios else 0,
        "min_compression_ratio": min(ratios) if ratios else 0,
        "max_compression_ratio": max(ratios) if ratios else 0,
        "round_trip_failures": sum(1 for doc in results["documents"] if not doc["round_trip_ok"]),
    }

    summary = results["summary"]
    print("\n" + "=" * 100)
    print("Summary Statistics")
    print("=" * 100)
    print(f"  Bytes: {total_bytes:>15}")
    print(f"  Tokens: {total_tokens:>15}")
    print(f"  Overall compression ratio (bytes/token): {summary['overall_compression_ratio']:>10.4f}")
    print(f"  Average: {summary['average_compression_ratio']:>15.4f} bytes/token")
    print(f"  Min: {summary['min_compression_ratio']:>15.4f} bytes/token")
    print(f"  Max: {summary['max_compression_ratio']:>15.4f} bytes/token")
    print(f"  Round trip failures: {summary['round_trip_failures']}")

    return results


def main():
    config = {
        "input_path": "./data/corpus.txt",
        "separator": "\n\n",
        "vocab_path": "./data/tokenizer/vocab.b64",
        "merges_path": "./data/tokenizer/merges.b64",
        "num_documents": 10,
        "output_json": "./output/compression_analysis.json",
    }

    for key in ("vocab_path", "merges_path", "input_path"):
        if not os.path.exists(config[key]):
            print(f"\nError: File not found: {config[key]}")
            sys.exit(1)

    tokenizer = MistralTokenizer.from_files(config["vocab_path"], config["merges_path"])
    print(f"Loaded tokenizer, vocabulary size: {tokenizer.vocab_size}")

    documents = extract_documents(config["input_path"], config["separator"], config["num_documents"])
    results = analyze_compression(tokenizer, documents)

    os.makedirs(os.path.dirname(config["output_json"]) or '.', exist_ok=True)
    with open(config["output_json"], 'w', encoding='utf-8') as f:
        json.dump(results, f, ensure_ascii=False, indent=2)
    print(f"\nResults saved to: {config['output_json']}")


if __name__ == "__main__":
    main()
