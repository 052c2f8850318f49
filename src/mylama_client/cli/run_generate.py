"""Command line front end: send one prompt and print the generated text."""
from __future__ import annotations
import argparse
import logging
import sys
import time
from typing import Sequence

from mylama_client.client.generation import GenerationClient
from mylama_client.common.errors import MyLamaError
from mylama_client.common.logging_setup import setup_logging

LOGGER = logging.getLogger("mylama.cli")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Generate text with an Ollama-style inference server")
    ap.add_argument("--model", required=True, help="Model identifier")
    ap.add_argument("--prompt", required=True, help="Prompt text")
    ap.add_argument("--config", default=None, help="Config file (JSON or YAML)")
    ap.add_argument("--base-url", default=None, help="Override baseURL from the config")
    ap.add_argument("--max-tokens", type=int, default=256)
    ap.add_argument("--stream", action="store_true", help="Print fragments as they arrive")
    ap.add_argument("--log-level", default="WARNING")
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, stream=sys.stderr)

    dropped: list[str] = []
    override = {"baseURL": args.base_url} if args.base_url else None
    start = time.time()
    try:
        client = GenerationClient(args.config, override, on_drop=dropped.append)
        if args.stream:
            for fragment in client.generate(args.model, args.prompt, args.max_tokens, stream=True):
                sys.stdout.write(fragment)
                sys.stdout.flush()
            sys.stdout.write("\n")
        else:
            print(client.generate(args.model, args.prompt, args.max_tokens))
    except MyLamaError as e:
        LOGGER.error("%s: %s", type(e).__name__, e)
        return 1

    if dropped:
        LOGGER.warning("Dropped %d malformed stream line(s)", len(dropped))
    LOGGER.info("Latency: %sms", int((time.time() - start) * 1000))
    return 0


if __name__ == "__main__":
    sys.exit(main())
