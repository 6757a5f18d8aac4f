#!/usr/bin/env python3
"""
Batch transcriber.
Transcribes a list of video URLs concurrently, all jobs sharing one key pool,
and writes one .txt transcript per URL.

Usage:
    python batch_transcribe.py urls.txt --workers 3 --language en
"""

import argparse
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from dotenv import load_dotenv

from metagrabber.config import get_settings
from metagrabber.errors import TranscriptionError
from metagrabber.services.key_pool import KeyPool
from metagrabber.services.key_store import create_key_store
from metagrabber.services.transcription_service import TranscriptionOrchestrator
from metagrabber.utils.logging_utils import setup_logger

OUTPUT_DIR = "./transcripts"


def read_urls(path: str) -> list:
    """Read one URL per line, skipping blanks and # comments."""
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.strip().startswith("#")]


def transcribe_one(orchestrator: TranscriptionOrchestrator, url: str, index: int,
                   language: str, prompt: str) -> tuple:
    try:
        result = orchestrator.run_job(url, language, prompt)
        output_path = os.path.join(OUTPUT_DIR, f"{index:03d}-{result.job_id}.txt")
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(result.text)
    except TranscriptionError as e:
        return index, url, None, e.message
    except Exception as e:
        return index, url, None, f"Error during transcription: {str(e)}"
    return index, url, output_path, None


def main():
    parser = argparse.ArgumentParser(description="Transcribe video URLs from a file")
    parser.add_argument("urls_file", help="Text file with one video URL per line")
    parser.add_argument("--workers", type=int, default=2, help="Concurrent jobs")
    parser.add_argument("--language", default=None, help="Language code (auto-detect if omitted)")
    parser.add_argument("--prompt", default=None, help="Vocabulary hint")
    args = parser.parse_args()

    load_dotenv()
    setup_logger()
    settings = get_settings()

    key_pool = KeyPool(create_key_store(settings))
    key_pool.load()
    if len(key_pool) == 0 and settings.openai_api_key:
        key_pool.add_key(settings.openai_api_key)
    if len(key_pool) == 0:
        print("ERROR: No API keys configured. Set OPENAI_API_KEY or add keys via POST /api/keys")
        sys.exit(1)

    urls = read_urls(args.urls_file)
    os.makedirs(OUTPUT_DIR, exist_ok=True)
    orchestrator = TranscriptionOrchestrator(key_pool, settings=settings)

    print(f"INFO: Transcribing {len(urls)} URL(s) with {args.workers} worker(s) "
          f"and {len(key_pool)} API key(s)")

    start_time = time.time()
    successful = 0
    failed = 0

    with ThreadPoolExecutor(max_workers=args.workers) as executor:
        futures = [
            executor.submit(transcribe_one, orchestrator, url, i, args.language, args.prompt)
            for i, url in enumerate(urls, 1)
        ]
        for future in as_completed(futures):
            index, url, output_path, error = future.result()
            if error:
                failed += 1
                print(f"[{index}/{len(urls)}] FAILED {url}: {error}")
            else:
                successful += 1
                print(f"[{index}/{len(urls)}] OK {url} -> {output_path}")

    elapsed_time = time.time() - start_time
    print(f"INFO: Done in {int(elapsed_time // 60)}m {int(elapsed_time % 60)}s - "
          f"{successful} succeeded, {failed} failed")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting...")
        sys.exit(1)
