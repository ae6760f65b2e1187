#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging

from llmock.payload import OpenAICompatibleGenerator, PayloadAPI, PayloadEvent, PayloadOptions

DEFAULT_SHAPE = '{"id": 1, "name": "string", "email": "string", "address": {"city": "string"}}'


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate a mock payload through an OpenAI-compatible backend")
    p.add_argument("path", nargs="?", default="/api/users?count=40")
    p.add_argument("--shape", default=DEFAULT_SHAPE)
    p.add_argument("--base-url", default="http://localhost:11434/v1")
    p.add_argument("--model", default="llama3")
    p.add_argument("--max-output-tokens", type=int, default=2048)
    p.add_argument("--repeat", type=int, default=1, help="Send the request several times (useful with ?cache=N)")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args()


def print_event(event: PayloadEvent) -> None:
    print(f"  [{event.event_type.value}] {event.metadata}")


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    options = PayloadOptions(max_output_tokens=args.max_output_tokens)
    generator = OpenAICompatibleGenerator(base_url=args.base_url, model=args.model)

    async with generator, PayloadAPI(options, generator=generator, on_event=print_event) as api:
        for i in range(args.repeat):
            response = await api.generate("GET", args.path, args.shape)
            print("=" * 65)
            print(f"Request    : {i + 1}/{args.repeat}")
            print(f"Route      : {response.route.value}")
            print(f"Chunks     : {response.chunk_count}")
            print(f"Capped     : {response.capped}")
            for warning in response.warnings:
                print(f"Warning    : {warning}")
            print("=" * 65)
            print(response.body[:2000])


if __name__ == "__main__":
    asyncio.run(main())
